"""SQLAlchemy models for daily check-in records and the prompts sent for them."""

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.infrastructure.database import Base
from app.utils import now_in_app_naive_datetime


class DailyNotificationModel(Base):
    """Database representation of one subject's check-in day."""

    __tablename__ = "daily_notification"
    __table_args__ = (
        UniqueConstraint("subject_id", "day", name="uq_daily_notification_subject_day"),
        Index("ix_daily_notification_owner_day", "owner_id", "day"),
    )

    id = Column(Integer, primary_key=True, index=True)
    subject_id = Column(Integer, ForeignKey("subject.id"), nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("caregiver.id"), nullable=False)
    day = Column(Date, nullable=False, index=True)
    responded_at = Column(DateTime(), nullable=True)
    responded_token = Column(String(64), nullable=True)
    admin_notified_at = Column(DateTime(), nullable=True)
    escalation_claimed_at = Column(DateTime(), nullable=True)
    scheduled_sent_at = Column(DateTime(), nullable=True)
    first_notice_at = Column(DateTime(), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(DateTime(), nullable=True, onupdate=now_in_app_naive_datetime)

    entries = relationship(
        "NotificationEntryModel",
        order_by="NotificationEntryModel.id",
        lazy="selectin",
        back_populates="record",
    )
    subject = relationship("SubjectModel", lazy="joined")


class NotificationEntryModel(Base):
    """Append-only row describing one prompt sent to the subject."""

    __tablename__ = "notification_entry"

    id = Column(Integer, primary_key=True, index=True)
    record_id = Column(
        Integer, ForeignKey("daily_notification.id"), nullable=False, index=True
    )
    sent_at = Column(DateTime(), nullable=False)
    level = Column(String(20), nullable=False)
    token = Column(String(64), nullable=False, unique=True)
    token_expires_at = Column(DateTime(), nullable=False)

    record = relationship("DailyNotificationModel", back_populates="entries")


__all__ = ["DailyNotificationModel", "NotificationEntryModel"]
