"""Domain entities describing the per-day check-in record of a subject."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Final, Sequence

LEVEL_SCHEDULED: Final[str] = "scheduled"
LEVEL_TEST: Final[str] = "test"
_RETRY_LEVEL_PATTERN: Final[re.Pattern[str]] = re.compile(r"^retry-(?P<number>[1-9]\d*)$")

RECORD_STATUS_PENDING: Final[str] = "pending"
RECORD_STATUS_RESPONDED: Final[str] = "responded"
RECORD_STATUS_EXPIRED: Final[str] = "expired"
RECORD_STATUS_ADMIN_NOTIFIED: Final[str] = "admin_notified"


def retry_level(number: int) -> str:
    """Return the level name of the ``number``-th retry (1-based)."""

    if number < 1:
        raise ValueError("Retry levels start at 1")
    return f"retry-{number}"


def retry_number(level: str) -> int | None:
    """Return the retry ordinal encoded in ``level`` or ``None`` for other levels."""

    match = _RETRY_LEVEL_PATTERN.match(level)
    if match is None:
        return None
    return int(match.group("number"))


def is_retry_level(level: str) -> bool:
    return retry_number(level) is not None


def ensure_valid_level(level: str) -> str:
    """Return ``level`` unchanged when it is a known notification level."""

    if level in (LEVEL_SCHEDULED, LEVEL_TEST) or is_retry_level(level):
        return level
    raise ValueError(f"Unknown notification level '{level}'")


@dataclass(frozen=True)
class NotificationEntry:
    """A single prompt sent to the subject, with the token embedded in it."""

    sent_at: datetime
    level: str
    token: str
    token_expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.token_expires_at


@dataclass(frozen=True)
class ResponseRecord:
    """The subject's confirmation for the day."""

    responded_at: datetime
    responded_token: str


@dataclass
class DailyNotification:
    """All prompts, the response and the escalation state of one subject-day."""

    id: int | None
    subject_id: int
    owner_id: int
    day: date
    notifications: Sequence[NotificationEntry] = field(default_factory=tuple)
    response: ResponseRecord | None = None
    admin_notified_at: datetime | None = None
    first_notice_at: datetime | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def retry_count(self) -> int:
        return sum(1 for entry in self.notifications if is_retry_level(entry.level))

    @property
    def last_notification(self) -> NotificationEntry | None:
        return self.notifications[-1] if self.notifications else None

    @property
    def last_ladder_notification(self) -> NotificationEntry | None:
        """Return the most recent prompt that belongs to the retry ladder.

        Test prompts are ignored so that operators can send them without
        shifting the retry timing of the day.
        """

        for entry in reversed(self.notifications):
            if entry.level != LEVEL_TEST:
                return entry
        return None

    @property
    def is_pending(self) -> bool:
        return self.response is None and self.admin_notified_at is None

    def find_entry(self, token: str) -> NotificationEntry | None:
        for entry in self.notifications:
            if entry.token == token:
                return entry
        return None


def current_status(record: DailyNotification, now: datetime) -> str:
    """Derive the display status of ``record`` at ``now``."""

    if record.response is not None:
        return RECORD_STATUS_RESPONDED
    if record.admin_notified_at is not None:
        return RECORD_STATUS_ADMIN_NOTIFIED
    if record.notifications and all(
        entry.is_expired(now) for entry in record.notifications
    ):
        return RECORD_STATUS_EXPIRED
    return RECORD_STATUS_PENDING


def entry_status(record: DailyNotification, entry: NotificationEntry, now: datetime) -> str:
    """Return ``success``, ``expired`` or ``pending`` for a single prompt."""

    if record.response is not None and record.response.responded_token == entry.token:
        return "success"
    if entry.is_expired(now):
        return "expired"
    return "pending"


__all__ = [
    "LEVEL_SCHEDULED",
    "LEVEL_TEST",
    "RECORD_STATUS_PENDING",
    "RECORD_STATUS_RESPONDED",
    "RECORD_STATUS_EXPIRED",
    "RECORD_STATUS_ADMIN_NOTIFIED",
    "DailyNotification",
    "NotificationEntry",
    "ResponseRecord",
    "current_status",
    "ensure_valid_level",
    "entry_status",
    "is_retry_level",
    "retry_level",
    "retry_number",
]
