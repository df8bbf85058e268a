"""Pydantic models for check-in prompts, responses and sweeps."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


class CheckinResponseRead(BaseModel):
    """Body returned to the subject after tapping the response link."""

    subject_name: str | None = None
    message: str


class CheckinTriggerRead(BaseModel):
    """Outcome of sending a scheduled or test prompt."""

    record_id: int
    subject_id: int
    day: date
    level: str
    delivered: bool
    retry_count: int
    sent_at: datetime
    token_expires_at: datetime


class SweepSummaryRead(BaseModel):
    started_at: datetime
    records: int = Field(..., ge=0)
    notices: int = Field(..., ge=0)
    retries: int = Field(..., ge=0)
    escalations: int = Field(..., ge=0)
    skipped: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)


__all__ = ["CheckinResponseRead", "CheckinTriggerRead", "SweepSummaryRead"]
