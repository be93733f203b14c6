"""
Property Model

Homes owned by a homeowner. The region drives which maintenance
tasks get seeded.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from homecare.database import Base
import uuid


class Property(Base):
    __tablename__ = "properties"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    nickname = Column(String(255), nullable=False)
    address = Column(String(500), nullable=False)
    zip_code = Column(String(20), nullable=True)
    property_type = Column(String(50), nullable=False)  # single_family, condo, townhouse ...
    year_built = Column(Integer, nullable=True)
    square_feet = Column(Integer, nullable=True)
    region = Column(String(50), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    owner = relationship("User", back_populates="properties")
    tasks = relationship("UserTask", back_populates="property", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        Index('idx_property_user_created', 'user_id', 'created_at'),
    )

    def __repr__(self):
        return f"<Property {self.nickname} ({self.region})>"
