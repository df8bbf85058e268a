"""Use case for recording a subject's answer to a check-in prompt."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.application.use_cases.alerts import notify_response_received
from app.infrastructure.repositories import DailyNotificationRepository, SubjectRepository
from app.utils import now_in_app_timezone

logger = logging.getLogger(__name__)


class ResponseStatus(Enum):
    """Possible outcomes when a subject submits a response token."""

    SUCCESS = auto()
    INVALID_TOKEN = auto()
    TOKEN_EXPIRED = auto()
    INTERNAL_ERROR = auto()


@dataclass(frozen=True)
class ResponseResult:
    status: ResponseStatus
    subject_name: str | None = None


def record_response(
    session: Session, token: str, *, now: datetime | None = None
) -> ResponseResult:
    """Record the response carried by ``token`` exactly once.

    Only records without a response are searched, so a token that already
    answered its day (or any other token of that day) is reported as invalid.
    The response is written with a conditional update; when two valid tokens
    of the same record race, the loser also gets ``INVALID_TOKEN``.
    """

    now = now or now_in_app_timezone()
    try:
        return _record_response(session, token, now)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to record check-in response")
        return ResponseResult(ResponseStatus.INTERNAL_ERROR)


def _record_response(session: Session, token: str, now: datetime) -> ResponseResult:
    records = DailyNotificationRepository(session)
    record = records.find_open_by_token(token)
    if record is None or record.id is None:
        return ResponseResult(ResponseStatus.INVALID_TOKEN)

    entry = record.find_entry(token)
    if entry is None:
        return ResponseResult(ResponseStatus.INVALID_TOKEN)
    if entry.is_expired(now):
        logger.info("Expired token submitted for record %s", record.id)
        return ResponseResult(ResponseStatus.TOKEN_EXPIRED)

    if not records.mark_responded(record.id, token=token, responded_at=now):
        session.rollback()
        logger.info("Record %s was answered concurrently; rejecting token", record.id)
        return ResponseResult(ResponseStatus.INVALID_TOKEN)

    subjects = SubjectRepository(session)
    subjects.update_last_response_at(record.subject_id, now)
    session.commit()

    subject = subjects.get(record.subject_id)
    if subject is None:  # pragma: no cover - foreign key guarantees the subject
        return ResponseResult(ResponseStatus.SUCCESS)

    logger.info("Check-in recorded for subject %s (record %s)", subject.id, record.id)
    try:
        notify_response_received(session, record=record, subject=subject, responded_at=now)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Could not store the response alert of record %s", record.id)
    return ResponseResult(ResponseStatus.SUCCESS, subject_name=subject.name)


__all__ = ["ResponseResult", "ResponseStatus", "record_response"]
