"""Endpoints used by the external daily trigger and by operators."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.application.use_cases.checkins import (
    NotificationDispatcher,
    RetryScheduler,
    TriggerResult,
    send_daily_checkin,
    send_test_checkin,
)
from app.domain.exceptions import (
    CheckinAlreadySentError,
    NotificationPersistenceError,
    SubjectNotFoundError,
    SweepInProgressError,
)
from app.infrastructure.database import get_db
from app.interfaces.api.dependencies import (
    get_dispatcher,
    get_retry_scheduler,
    require_internal_key,
)
from app.interfaces.api.schemas import CheckinTriggerRead, SweepSummaryRead

router = APIRouter(
    prefix="/internal",
    tags=["internal"],
    dependencies=[Depends(require_internal_key)],
)


def _trigger_to_schema(result: TriggerResult) -> CheckinTriggerRead:
    entry = next(
        entry for entry in reversed(result.record.notifications) if entry.level == result.level
    )
    return CheckinTriggerRead(
        record_id=result.record.id or 0,
        subject_id=result.subject.id,
        day=result.record.day,
        level=result.level,
        delivered=result.delivered,
        retry_count=result.record.retry_count,
        sent_at=entry.sent_at,
        token_expires_at=entry.token_expires_at,
    )


def _run_trigger(trigger, db: Session, dispatcher: NotificationDispatcher, subject_id: int):
    try:
        result = trigger(db, dispatcher, subject_id)
    except SubjectNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except CheckinAlreadySentError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except NotificationPersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc
    return _trigger_to_schema(result)


@router.post(
    "/subjects/{subject_id}/checkins",
    response_model=CheckinTriggerRead,
    status_code=status.HTTP_201_CREATED,
)
def trigger_daily_checkin(
    subject_id: int,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> CheckinTriggerRead:
    """Send today's scheduled prompt to the subject."""

    return _run_trigger(send_daily_checkin, db, dispatcher, subject_id)


@router.post(
    "/subjects/{subject_id}/test-checkins",
    response_model=CheckinTriggerRead,
    status_code=status.HTTP_201_CREATED,
)
def trigger_test_checkin(
    subject_id: int,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> CheckinTriggerRead:
    """Send a test prompt that does not affect the retry ladder."""

    return _run_trigger(send_test_checkin, db, dispatcher, subject_id)


@router.post("/retry-sweeps", response_model=SweepSummaryRead)
def run_retry_sweep(
    scheduler: RetryScheduler = Depends(get_retry_scheduler),
) -> SweepSummaryRead:
    """Run one retry sweep immediately."""

    try:
        summary = scheduler.sweep()
    except SweepInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return SweepSummaryRead(**summary.as_dict())


__all__ = ["router"]
