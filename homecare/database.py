"""
Database Configuration and Session Management

SQLAlchemy engine, session factory and declarative base.
PostgreSQL is the production target; SQLite works for local runs and tests.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from homecare.config import get_settings
import logging

logger = logging.getLogger(__name__)

settings = get_settings()


def _engine_options(url: str) -> dict:
    """Pool options per backend. SQLite can't use a sized QueuePool."""
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            # In-memory databases only live as long as their connection
            options["poolclass"] = StaticPool
        return options
    return {
        "poolclass": QueuePool,
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "pool_pre_ping": True,
    }


engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,  # Log SQL in debug mode
    **_engine_options(settings.DATABASE_URL),
)

# expire_on_commit=False so handlers can serialize rows after commit
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False
)

# Base class for all models
Base = declarative_base()


@event.listens_for(engine, "connect")
def configure_connection(dbapi_connection, connection_record):
    """Set connection-level configuration on new connections."""
    cursor = dbapi_connection.cursor()
    if settings.DATABASE_URL.startswith("postgresql"):
        cursor.execute("SET TIME ZONE 'UTC'")
    elif settings.DATABASE_URL.startswith("sqlite"):
        # Needed for ON DELETE CASCADE
        cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    logger.debug("New database connection established")


def get_db() -> Session:
    """
    Dependency function that provides a database session.

    The session is closed after the request completes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """
    Create tables and load reference data (plans, service types, master tasks).

    Production deployments should manage the schema with migrations; this is
    the dev/test path.
    """
    # Importing the models registers them on Base.metadata
    import homecare.models  # noqa: F401
    from homecare.seed import seed_reference_data

    bind = bind or engine
    logger.warning("init_db() called - creating tables and seeding reference data")
    Base.metadata.create_all(bind=bind)

    db = Session(bind=bind, expire_on_commit=False)
    try:
        seed_reference_data(db)
    finally:
        db.close()
