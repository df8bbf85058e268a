"""Entry points used by the external daily trigger and by operators."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from app.domain.entities import LEVEL_SCHEDULED, LEVEL_TEST, DailyNotification, Subject
from app.domain.exceptions import (
    CheckinAlreadySentError,
    NotificationPersistenceError,
    PersistenceConflict,
    SubjectNotFoundError,
)
from app.infrastructure.repositories import DailyNotificationRepository, SubjectRepository
from app.utils import now_in_app_timezone, to_app_day

from .dispatch import NotificationDispatcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TriggerResult:
    subject: Subject
    record: DailyNotification
    level: str
    delivered: bool


def _require_active_subject(session: Session, subject_id: int) -> Subject:
    subject = SubjectRepository(session).get(subject_id)
    if subject is None or not subject.is_active:
        raise SubjectNotFoundError(f"Subject {subject_id} not found")
    return subject


def _send(
    session: Session,
    dispatcher: NotificationDispatcher,
    subject: Subject,
    level: str,
    now: datetime,
) -> TriggerResult:
    day = to_app_day(now)
    delivered = dispatcher.dispatch(session, subject, day, level)
    record = DailyNotificationRepository(session).get_for_subject_day(subject.id, day)
    assert record is not None
    return TriggerResult(subject=subject, record=record, level=level, delivered=delivered)


def send_daily_checkin(
    session: Session,
    dispatcher: NotificationDispatcher,
    subject_id: int,
    *,
    now: datetime | None = None,
) -> TriggerResult:
    """Send the first ``scheduled`` prompt of the day to ``subject_id``.

    Raises :class:`CheckinAlreadySentError` when the scheduled prompt of the
    day was already claimed, so a repeated or concurrent trigger never
    restarts the ladder. The claim is released when the prompt could not be
    recorded.
    """

    now = now or now_in_app_timezone()
    subject = _require_active_subject(session, subject_id)
    day = to_app_day(now)
    records = DailyNotificationRepository(session)
    if not records.claim_scheduled_prompt(
        subject_id=subject.id, owner_id=subject.owner_id, day=day, claimed_at=now
    ):
        raise CheckinAlreadySentError(
            f"The check-in of subject {subject.id} for {day} was already sent"
        )
    try:
        return _send(session, dispatcher, subject, LEVEL_SCHEDULED, now)
    except NotificationPersistenceError:
        records.release_scheduled_claim(subject.id, day, claimed_at=now)
        raise


def send_test_checkin(
    session: Session,
    dispatcher: NotificationDispatcher,
    subject_id: int,
    *,
    now: datetime | None = None,
) -> TriggerResult:
    """Send a ``test`` prompt; it is answerable but does not drive retries."""

    now = now or now_in_app_timezone()
    subject = _require_active_subject(session, subject_id)
    return _send(session, dispatcher, subject, LEVEL_TEST, now)


def send_daily_checkins(
    session: Session,
    dispatcher: NotificationDispatcher,
    *,
    owner_id: int | None = None,
    now: datetime | None = None,
) -> dict[str, int]:
    """Trigger the scheduled prompt for every active subject.

    Each subject is handled on its own; a failure is logged and counted
    without stopping the others.
    """

    now = now or now_in_app_timezone()
    summary = {"sent": 0, "undelivered": 0, "already_sent": 0, "failed": 0}
    for subject in SubjectRepository(session).list_active(owner_id=owner_id):
        try:
            result = send_daily_checkin(session, dispatcher, subject.id, now=now)
        except CheckinAlreadySentError:
            summary["already_sent"] += 1
            continue
        except (NotificationPersistenceError, PersistenceConflict, SubjectNotFoundError):
            logger.exception("Daily check-in for subject %s failed", subject.id)
            summary["failed"] += 1
            continue
        summary["sent" if result.delivered else "undelivered"] += 1

    logger.info("Daily check-in trigger finished: %s", summary)
    return summary


__all__ = [
    "TriggerResult",
    "send_daily_checkin",
    "send_daily_checkins",
    "send_test_checkin",
]
