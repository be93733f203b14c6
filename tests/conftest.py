"""
Test Configuration and Fixtures

Every test gets a fresh in-memory SQLite database with the reference data
(plans, service types, master tasks) seeded, plus user/token fixtures and
a fake Stripe client.
"""
import os
from datetime import datetime, time, timedelta
from typing import Optional
from unittest.mock import MagicMock

import pytest

# Set test environment variables before importing the app
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("REMINDER_JOB_SECRET", "job-secret")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from homecare.config import get_settings  # noqa: E402
from homecare.database import Base, engine, get_db, init_db  # noqa: E402
from homecare.main import app  # noqa: E402
from homecare.models.user import User, UserRole  # noqa: E402
from homecare.models.provider import ProviderProfile, ProviderService  # noqa: E402
from homecare.models.schedule import ProviderAvailability  # noqa: E402
from homecare.core.security import create_user_token, get_password_hash  # noqa: E402
from homecare.services.plans import ensure_user_plan  # noqa: E402
from homecare.services.storage import LocalStorage, get_storage  # noqa: E402
from homecare.services.stripe_client import StripeClient, get_stripe_client  # noqa: E402

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

PASSWORD = "password123"
PRICE_CORE = "price_core_test"
PRICE_RIVOPRO = "price_rivopro_test"
WEBHOOK_SECRET = "whsec_test"


# =============================================================================
# DATABASE / APP
# =============================================================================


@pytest.fixture(autouse=True)
def _database():
    """Fresh schema and reference data for every test."""
    Base.metadata.drop_all(bind=engine)
    init_db(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path / "uploads"))


@pytest.fixture
def client(storage):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


# =============================================================================
# STRIPE
# =============================================================================


@pytest.fixture
def stripe_settings(monkeypatch):
    """Switch billing on with test price ids."""
    settings = get_settings()
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setattr(settings, "STRIPE_PRICE_ID_CORE", PRICE_CORE)
    monkeypatch.setattr(settings, "STRIPE_PRICE_ID_RIVOPRO", PRICE_RIVOPRO)
    return settings


def make_subscription(price_id: str = PRICE_CORE, status: str = "active",
                      customer: str = "cus_123", sub_id: str = "sub_123",
                      period_end: int = 1900000000, cancel_at_period_end: bool = False) -> dict:
    return {
        "id": sub_id,
        "object": "subscription",
        "customer": customer,
        "status": status,
        "cancel_at_period_end": cancel_at_period_end,
        "current_period_end": period_end,
        "items": {"data": [{"id": "si_123", "price": {"id": price_id}}]},
    }


@pytest.fixture
def fake_stripe(stripe_settings):
    """A StripeClient stand-in wired into the app."""
    stripe = MagicMock(spec=StripeClient)
    stripe.create_customer.return_value = {"id": "cus_123"}
    stripe.create_checkout_session.return_value = {
        "id": "cs_test_123",
        "url": "https://checkout.stripe.com/c/pay/cs_test_123",
    }
    stripe.retrieve_subscription.return_value = make_subscription()
    stripe.list_subscriptions.return_value = [make_subscription()]
    stripe.set_cancel_at_period_end.return_value = make_subscription(cancel_at_period_end=True)
    stripe.change_subscription_price.return_value = make_subscription(price_id=PRICE_RIVOPRO)
    stripe.cancel_subscription.return_value = make_subscription(status="canceled")
    stripe.list_invoices.return_value = []
    stripe.preview_upcoming_invoice.return_value = None

    app.dependency_overrides[get_stripe_client] = lambda: stripe
    yield stripe
    app.dependency_overrides.pop(get_stripe_client, None)


# =============================================================================
# USERS / AUTH
# =============================================================================


def create_user(db, email: str, role: UserRole = UserRole.HOMEOWNER,
                full_name: str = "Test User", password: str = PASSWORD) -> User:
    user = User(
        email=email,
        hashed_password=get_password_hash(password),
        full_name=full_name,
        role=role,
        is_active=True,
    )
    db.add(user)
    db.flush()
    if role == UserRole.HOMEOWNER:
        ensure_user_plan(db, user.id)
    db.commit()
    return user


def auth_headers(user: User) -> dict:
    token = create_user_token(user)
    return {"Authorization": f"Bearer {token}"}


def create_provider_profile(db, user: User, status: str = "approved", is_active: bool = True,
                            founding: bool = False, service_type_ids=(1,),
                            windows: Optional[list] = None) -> ProviderProfile:
    profile = ProviderProfile(
        user_id=user.id,
        full_name=user.full_name,
        business_name=f"{user.full_name} Services",
        email=user.email,
        zip_code="02139",
        onboarding_status=status,
        is_active=is_active,
        is_founding_provider=founding,
    )
    profile.services = [ProviderService(service_type_id=sid) for sid in service_type_ids]
    db.add(profile)
    db.flush()

    # Default schedule: every day 09:00-17:00
    for day_of_week, start, end in windows or [(d, time(9), time(17)) for d in range(7)]:
        db.add(ProviderAvailability(
            provider_id=profile.id,
            day_of_week=day_of_week,
            start_time=start,
            end_time=end,
            buffer_min=0,
        ))
    db.commit()
    return profile


@pytest.fixture
def homeowner(db):
    return create_user(db, "owner@example.com", full_name="Olivia Owner")


@pytest.fixture
def homeowner_headers(homeowner):
    return auth_headers(homeowner)


@pytest.fixture
def provider_user(db):
    return create_user(db, "pro@example.com", role=UserRole.PROVIDER, full_name="Pat Pro")


@pytest.fixture
def provider_headers(provider_user):
    return auth_headers(provider_user)


@pytest.fixture
def provider_profile(db, provider_user):
    return create_provider_profile(db, provider_user)


@pytest.fixture
def admin_user(db):
    return create_user(db, "admin@example.com", role=UserRole.ADMIN, full_name="Ada Admin")


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


def next_day_at(hour: int, minute: int = 0, days: int = 1) -> datetime:
    """A naive UTC datetime `days` from now at hour:minute."""
    day = (datetime.utcnow() + timedelta(days=days)).date()
    return datetime.combine(day, time(hour, minute))
