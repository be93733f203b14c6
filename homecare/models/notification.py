"""
Notification Model

In-app notifications (booking updates, application decisions, task reminders).
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Index
from datetime import datetime
from homecare.database import Base
import uuid


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(30), default="info", nullable=False)  # info, success, warning, booking, reminder
    link = Column(String(500), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    read_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index('idx_notification_user_read', 'user_id', 'is_read'),
    )

    def __repr__(self):
        return f"<Notification {self.title} user={self.user_id}>"
