"""SQLAlchemy model for caregiver retry policies."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer
from sqlalchemy.sql import expression

from app.infrastructure.database import Base
from app.utils import now_in_app_naive_datetime


class RetryPolicyModel(Base):
    """Per-caregiver retry ladder settings. Null columns use configured defaults."""

    __tablename__ = "retry_policy"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("caregiver.id"), nullable=False, unique=True)
    max_retries = Column(Integer, nullable=True)
    retry_interval_minutes = Column(Integer, nullable=True)
    escalation_enabled = Column(
        Boolean,
        nullable=False,
        default=True,
        server_default=expression.true(),
    )
    updated_at = Column(
        DateTime(), nullable=True, onupdate=now_in_app_naive_datetime
    )


__all__ = ["RetryPolicyModel"]
