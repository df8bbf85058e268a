"""Caregiver endpoints for in-app alerts."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.domain.entities import Alert, Caregiver
from app.infrastructure.database import get_db
from app.infrastructure.repositories import AlertRepository
from app.interfaces.api.dependencies import get_current_caregiver
from app.interfaces.api.schemas import AlertMarkReadRequest, AlertMarkReadResponse, AlertRead

router = APIRouter(prefix="/alerts", tags=["alerts"])


def _alert_to_schema(alert: Alert) -> AlertRead:
    return AlertRead(
        id=alert.id or 0,
        owner_id=alert.owner_id,
        event_type=alert.event_type,
        title=alert.title,
        message=alert.message,
        payload=alert.payload or {},
        created_at=alert.created_at,
        read_at=alert.read_at,
    )


@router.get("/", response_model=list[AlertRead])
def list_alerts(
    unread_only: bool = False,
    db: Session = Depends(get_db),
    current_caregiver: Caregiver = Depends(get_current_caregiver),
) -> list[AlertRead]:
    """Return the most recent alerts of the authenticated caregiver."""

    alerts = AlertRepository(db).list_for_owner(current_caregiver.id, unread_only=unread_only)
    return [_alert_to_schema(alert) for alert in alerts]


@router.post("/read", response_model=AlertMarkReadResponse)
def mark_alerts_read(
    payload: AlertMarkReadRequest,
    db: Session = Depends(get_db),
    current_caregiver: Caregiver = Depends(get_current_caregiver),
) -> AlertMarkReadResponse:
    updated = AlertRepository(db).mark_as_read(payload.unique_ids(), owner_id=current_caregiver.id)
    return AlertMarkReadResponse(updated=updated)


__all__ = ["router"]
