"""FastAPI dependency utilities."""

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.application.use_cases.checkins import NotificationDispatcher, RetryScheduler
from app.domain.entities import Caregiver
from app.infrastructure.database import get_db
from app.infrastructure.repositories import CaregiverRepository
from app.infrastructure.security import decode_access_token, verify_internal_key

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token")


def _unauthorized(detail: str = "Invalid credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def resolve_current_caregiver(token: str, db: Session) -> Caregiver:
    """Resolve the caregiver identified by the ``sub`` claim of ``token``."""

    try:
        payload = decode_access_token(token)
    except ValueError as exc:
        raise _unauthorized() from exc

    subject_claim = payload.get("sub")
    try:
        caregiver_id = int(subject_claim)
    except (TypeError, ValueError) as exc:
        raise _unauthorized() from exc

    caregiver = CaregiverRepository(db).get(caregiver_id)
    if caregiver is None:
        raise _unauthorized("Caregiver not found")
    return caregiver


def get_current_caregiver(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> Caregiver:
    """Return the active caregiver authenticated by the bearer token."""

    caregiver = resolve_current_caregiver(token, db)
    if not caregiver.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive caregiver",
        )
    return caregiver


def require_internal_key(
    x_internal_key: str | None = Header(default=None, alias="X-Internal-Key"),
) -> None:
    """Guard endpoints meant for the daily trigger and operators."""

    if not verify_internal_key(x_internal_key):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized",
        )


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


def get_retry_scheduler(request: Request) -> RetryScheduler:
    return request.app.state.retry_scheduler
