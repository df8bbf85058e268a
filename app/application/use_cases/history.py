"""Use cases exposing check-in history and statistics to caregivers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session

from app.domain.entities import DailyNotification, entry_status
from app.infrastructure.repositories import DailyNotificationRepository
from app.utils import now_in_app_timezone, to_app_day

STATS_PERIODS: dict[str, timedelta] = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}
DEFAULT_STATS_PERIOD = "7d"


@dataclass
class HistoryRow:
    """A single prompt of a daily record, flattened for display."""

    record_id: int
    subject_id: int
    subject_name: str
    day: date
    level: str
    sent_at: datetime
    token_expires_at: datetime
    status: str
    responded_at: datetime | None
    notes: str | None


@dataclass
class HistoryPage:
    items: list[HistoryRow]
    total_records: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total_records + self.limit - 1) // self.limit


@dataclass
class CheckinStats:
    """Prompt counts by outcome over a period."""

    period: str
    start: datetime
    end: datetime
    total: int = 0
    success: int = 0
    pending: int = 0
    expired: int = 0

    @property
    def response_rate(self) -> float:
        if not self.total:
            return 0.0
        return round(self.success / self.total * 100, 2)


def _flatten(record: DailyNotification, subject_name: str, now: datetime) -> list[HistoryRow]:
    responded_at = record.response.responded_at if record.response else None
    rows = [
        HistoryRow(
            record_id=record.id,
            subject_id=record.subject_id,
            subject_name=subject_name,
            day=record.day,
            level=entry.level,
            sent_at=entry.sent_at,
            token_expires_at=entry.token_expires_at,
            status=entry_status(record, entry, now),
            responded_at=responded_at,
            notes=record.notes,
        )
        for entry in record.notifications
    ]
    rows.sort(key=lambda row: row.sent_at, reverse=True)
    return rows


def list_history(
    session: Session,
    owner_id: int,
    *,
    subject_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    page: int = 1,
    limit: int = 50,
    now: datetime | None = None,
) -> HistoryPage:
    """Return one page of records of ``owner_id``, newest day first.

    Pagination applies to daily records; each record contributes one row per
    prompt it holds.
    """

    if page < 1:
        raise ValueError("page must be 1 or greater")
    if limit < 1:
        raise ValueError("limit must be 1 or greater")

    now = now or now_in_app_timezone()
    records, total = DailyNotificationRepository(session).list_for_owner(
        owner_id,
        subject_id=subject_id,
        start_day=start_date,
        end_day=end_date,
        skip=(page - 1) * limit,
        limit=limit,
    )
    items: list[HistoryRow] = []
    for record, subject_name in records:
        items.extend(_flatten(record, subject_name, now))
    return HistoryPage(items=items, total_records=total, page=page, limit=limit)


def compute_stats(
    session: Session,
    owner_id: int,
    *,
    period: str = DEFAULT_STATS_PERIOD,
    subject_id: int | None = None,
    now: datetime | None = None,
) -> CheckinStats:
    """Count the prompts sent within ``period`` by their outcome."""

    if period not in STATS_PERIODS:
        raise ValueError(
            f"Unsupported period '{period}'. Expected one of: {', '.join(STATS_PERIODS)}"
        )

    now = now or now_in_app_timezone()
    start = now - STATS_PERIODS[period]
    records, _ = DailyNotificationRepository(session).list_for_owner(
        owner_id,
        subject_id=subject_id,
        start_day=to_app_day(start),
        limit=None,
    )

    stats = CheckinStats(period=period, start=start, end=now)
    for record, _subject_name in records:
        for entry in record.notifications:
            if entry.sent_at < start:
                continue
            stats.total += 1
            status = entry_status(record, entry, now)
            setattr(stats, status, getattr(stats, status) + 1)
    return stats


def update_record_notes(
    session: Session, owner_id: int, record_id: int, notes: str | None
) -> DailyNotification:
    """Replace the caregiver notes of an owned record."""

    cleaned = notes.strip() if notes is not None else None
    record = DailyNotificationRepository(session).update_notes(
        record_id, owner_id=owner_id, notes=cleaned or None
    )
    if record is None:
        raise LookupError(f"Record {record_id} not found")
    return record


__all__ = [
    "CheckinStats",
    "DEFAULT_STATS_PERIOD",
    "HistoryPage",
    "HistoryRow",
    "STATS_PERIODS",
    "compute_stats",
    "list_history",
    "update_record_notes",
]
