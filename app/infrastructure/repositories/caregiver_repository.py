"""Persistence layer for caregiver accounts."""

from sqlalchemy.orm import Session

from app.domain.entities import Caregiver
from app.infrastructure.models import CaregiverModel


class CaregiverRepository:
    """Read access to caregivers for escalation and authentication."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, caregiver_id: int) -> Caregiver | None:
        model = self.session.get(CaregiverModel, caregiver_id)
        if model is None:
            return None
        return Caregiver(
            id=model.id,
            name=model.name,
            email=model.email,
            is_active=model.is_active,
        )


__all__ = ["CaregiverRepository"]
