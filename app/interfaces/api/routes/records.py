"""Caregiver endpoints over the check-in history."""

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.application.use_cases.history import (
    DEFAULT_STATS_PERIOD,
    compute_stats,
    list_history,
    update_record_notes,
)
from app.domain.entities import Caregiver, current_status
from app.infrastructure.database import get_db
from app.interfaces.api.dependencies import get_current_caregiver
from app.interfaces.api.schemas import (
    CheckinStatsRead,
    HistoryPageRead,
    HistoryRowRead,
    RecordNotesUpdate,
    RecordRead,
)
from app.utils import now_in_app_timezone

router = APIRouter(prefix="/records", tags=["records"])


@router.get("/", response_model=HistoryPageRead)
def read_history(
    subject_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_caregiver: Caregiver = Depends(get_current_caregiver),
) -> HistoryPageRead:
    """Return the prompts sent to the caregiver's subjects, newest day first."""

    history = list_history(
        db,
        current_caregiver.id,
        subject_id=subject_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return HistoryPageRead(
        items=[HistoryRowRead.model_validate(row) for row in history.items],
        total_records=history.total_records,
        page=history.page,
        limit=history.limit,
        total_pages=history.total_pages,
    )


@router.get("/stats", response_model=CheckinStatsRead)
def read_stats(
    period: Literal["24h", "7d", "30d"] = DEFAULT_STATS_PERIOD,
    subject_id: int | None = None,
    db: Session = Depends(get_db),
    current_caregiver: Caregiver = Depends(get_current_caregiver),
) -> CheckinStatsRead:
    """Count prompts by outcome over the requested period."""

    stats = compute_stats(db, current_caregiver.id, period=period, subject_id=subject_id)
    return CheckinStatsRead.model_validate(stats)


@router.patch("/{record_id}/notes", response_model=RecordRead)
def update_notes(
    record_id: int,
    payload: RecordNotesUpdate,
    db: Session = Depends(get_db),
    current_caregiver: Caregiver = Depends(get_current_caregiver),
) -> RecordRead:
    """Replace the notes attached to a daily record."""

    try:
        record = update_record_notes(db, current_caregiver.id, record_id, payload.notes)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return RecordRead(
        id=record.id or record_id,
        subject_id=record.subject_id,
        day=record.day,
        status=current_status(record, now_in_app_timezone()),
        retry_count=record.retry_count,
        responded_at=record.response.responded_at if record.response else None,
        admin_notified_at=record.admin_notified_at,
        notes=record.notes,
    )


__all__ = ["router"]
