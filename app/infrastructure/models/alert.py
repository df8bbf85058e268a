"""SQLAlchemy model for persisted caregiver alerts."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Text

from app.infrastructure.database import Base
from app.utils import now_in_app_naive_datetime


class AlertModel(Base):
    """Database representation for caregiver alerts."""

    __tablename__ = "alert"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("caregiver.id"), nullable=False, index=True)
    event_type = Column(String(50), nullable=False)
    title = Column(String(120), nullable=False)
    message = Column(Text, nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    read_at = Column(DateTime(), nullable=True)


__all__ = ["AlertModel"]
