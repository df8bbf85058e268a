"""Pydantic models describing check-in history and statistics."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class HistoryRowRead(BaseModel):
    """One prompt of a daily record as shown to caregivers."""

    model_config = ConfigDict(from_attributes=True)

    record_id: int
    subject_id: int
    subject_name: str
    day: date
    level: str
    sent_at: datetime
    token_expires_at: datetime
    status: Literal["success", "expired", "pending"]
    responded_at: datetime | None = None
    notes: str | None = None


class HistoryPageRead(BaseModel):
    items: list[HistoryRowRead]
    total_records: int
    page: int
    limit: int
    total_pages: int


class CheckinStatsRead(BaseModel):
    """Prompt outcome counts over a period."""

    model_config = ConfigDict(from_attributes=True)

    period: str
    start: datetime
    end: datetime
    total: int
    success: int
    pending: int
    expired: int
    response_rate: float


class RecordNotesUpdate(BaseModel):
    notes: str | None = Field(default=None, max_length=2000)


class RecordRead(BaseModel):
    """Summary of a daily record after an update."""

    id: int
    subject_id: int
    day: date
    status: str
    retry_count: int
    responded_at: datetime | None = None
    admin_notified_at: datetime | None = None
    notes: str | None = None


__all__ = [
    "CheckinStatsRead",
    "HistoryPageRead",
    "HistoryRowRead",
    "RecordNotesUpdate",
    "RecordRead",
]
