"""Utility helpers to generate caregiver alerts for check-in events."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.domain.entities import (
    ALERT_ESCALATION,
    ALERT_NO_RESPONSE,
    ALERT_RESPONSE,
    Alert,
    DailyNotification,
    Subject,
)
from app.infrastructure.repositories import AlertRepository, DailyNotificationRepository
from app.utils import ensure_app_timezone

logger = logging.getLogger(__name__)


def _persist_alert(
    session: Session,
    *,
    owner_id: int,
    event_type: str,
    title: str,
    message: str,
    created_at: datetime,
    payload: dict | None = None,
) -> Alert:
    alert = Alert(
        id=None,
        owner_id=owner_id,
        event_type=event_type,
        title=title,
        message=message,
        payload=payload or {},
        created_at=created_at,
        read_at=None,
    )
    return AlertRepository(session).create(alert)


def _record_payload(record: DailyNotification, subject: Subject) -> dict:
    return {
        "record_id": record.id,
        "subject_id": subject.id,
        "subject_name": subject.name,
        "day": record.day.isoformat(),
    }


def notify_no_response(
    session: Session,
    *,
    record: DailyNotification,
    subject: Subject,
    now: datetime,
    elapsed: timedelta,
) -> Alert | None:
    """Tell the caregiver the first prompt of the day is still unanswered.

    The notice is emitted at most once per record; ``None`` is returned when
    another sweep already did it.
    """

    if record.id is None:
        return None
    if not DailyNotificationRepository(session).mark_first_notice(record.id, noticed_at=now):
        session.rollback()
        return None
    session.commit()

    minutes = int(elapsed.total_seconds() // 60)
    logger.info(
        "No response from subject %s after %s minutes; notifying caregiver %s",
        subject.id,
        minutes,
        record.owner_id,
    )
    return _persist_alert(
        session,
        owner_id=record.owner_id,
        event_type=ALERT_NO_RESPONSE,
        title="No response yet",
        message=f"{subject.name} has not answered today's check-in for {minutes} minutes.",
        created_at=now,
        payload={**_record_payload(record, subject), "elapsed_minutes": minutes},
    )


def notify_response_received(
    session: Session,
    *,
    record: DailyNotification,
    subject: Subject,
    responded_at: datetime,
) -> Alert:
    """Let the caregiver know ``subject`` checked in."""

    local_time = ensure_app_timezone(responded_at)
    return _persist_alert(
        session,
        owner_id=record.owner_id,
        event_type=ALERT_RESPONSE,
        title="Check-in received",
        message=f"{subject.name} checked in at {local_time:%H:%M}.",
        created_at=responded_at,
        payload={
            **_record_payload(record, subject),
            "responded_at": local_time.isoformat() if local_time else None,
        },
    )


def notify_escalation_sent(
    session: Session,
    *,
    record: DailyNotification,
    subject: Subject,
    notified_at: datetime,
    recipient: str,
) -> Alert:
    """Keep an in-app trace of the escalation email sent to the caregiver."""

    return _persist_alert(
        session,
        owner_id=record.owner_id,
        event_type=ALERT_ESCALATION,
        title="No check-in today",
        message=(
            f"{subject.name} did not answer any of today's prompts. "
            f"An email was sent to {recipient}."
        ),
        created_at=notified_at,
        payload={**_record_payload(record, subject), "retry_count": record.retry_count},
    )


__all__ = ["notify_escalation_sent", "notify_no_response", "notify_response_received"]
