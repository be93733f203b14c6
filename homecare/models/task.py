"""
Maintenance Task Models

MasterTask: seeded catalogue, optionally scoped to a region and/or plan.
UserTask: a task instance scheduled on a homeowner's property.
TaskHistory: completed work, with a confidence score by evidence source.
"""
from sqlalchemy import Column, String, Text, Boolean, Date, DateTime, Float, ForeignKey, Integer, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from homecare.database import Base
import uuid


class MasterTask(Base):
    __tablename__ = "master_tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=False)
    frequency_months = Column(Integer, nullable=True)

    # NULL means "applies everywhere" / "applies to every plan"
    region = Column(String(50), nullable=True, index=True)
    plan_name = Column(String(50), nullable=True, index=True)

    def __repr__(self):
        return f"<MasterTask {self.title}>"


class UserTask(Base):
    __tablename__ = "user_tasks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    property_id = Column(String(36), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    master_task_id = Column(Integer, ForeignKey("master_tasks.id", ondelete="SET NULL"), nullable=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=True)
    due_date = Column(Date, nullable=False, index=True)

    status = Column(String(20), default="pending", nullable=False, index=True)  # pending, completed
    completed_at = Column(DateTime, nullable=True)
    completed_by = Column(String(20), nullable=True)  # diy, professional

    reminder_sent_1day = Column(Boolean, default=False, nullable=False)
    reminder_sent_7day = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    property = relationship("Property", back_populates="tasks")
    master_task = relationship("MasterTask")

    __table_args__ = (
        Index('idx_user_task_status_due', 'status', 'due_date'),
    )

    def __repr__(self):
        return f"<UserTask {self.title} due={self.due_date} ({self.status})>"


class TaskHistory(Base):
    __tablename__ = "task_history"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    property_id = Column(String(36), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    user_task_id = Column(String(36), ForeignKey("user_tasks.id", ondelete="SET NULL"), nullable=True)

    title = Column(String(255), nullable=False)
    completed_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    source = Column(String(30), nullable=False)  # verified_pro, diy_upload
    confidence = Column(Float, nullable=False)
    notes = Column(Text, nullable=True)

    def __repr__(self):
        return f"<TaskHistory {self.title} ({self.source})>"
