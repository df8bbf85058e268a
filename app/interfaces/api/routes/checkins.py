"""Public endpoint reached from the link embedded in check-in prompts."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.application.use_cases.checkins import ResponseStatus, record_response
from app.infrastructure.database import get_db
from app.interfaces.api.schemas import CheckinResponseRead

router = APIRouter(prefix="/checkins", tags=["checkins"])

_ERRORS = {
    ResponseStatus.INVALID_TOKEN: (status.HTTP_404_NOT_FOUND, "This link is not valid."),
    ResponseStatus.TOKEN_EXPIRED: (status.HTTP_410_GONE, "This link has expired."),
    ResponseStatus.INTERNAL_ERROR: (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Something went wrong. Please try again later.",
    ),
}


@router.post("/{token}", response_model=CheckinResponseRead)
def submit_checkin(token: str, db: Session = Depends(get_db)) -> CheckinResponseRead:
    """Record that the subject confirmed they are well."""

    result = record_response(db, token)
    if result.status is not ResponseStatus.SUCCESS:
        status_code, detail = _ERRORS[result.status]
        raise HTTPException(status_code=status_code, detail=detail)
    return CheckinResponseRead(
        subject_name=result.subject_name,
        message="Thank you! Your family has been told you are well.",
    )


__all__ = ["router"]
