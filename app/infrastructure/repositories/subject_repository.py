"""Persistence layer for monitored individuals."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy.orm import Session

from app.domain.entities import Subject
from app.infrastructure.models import SubjectModel
from app.utils import ensure_app_naive_datetime, ensure_app_timezone


class SubjectRepository:
    """Directory of subjects consumed by the check-in engine."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, subject_id: int) -> Subject | None:
        model = self.session.get(SubjectModel, subject_id)
        if model is None:
            return None
        return self._to_entity(model)

    def list_active(self, *, owner_id: int | None = None) -> Sequence[Subject]:
        query = self.session.query(SubjectModel).filter(SubjectModel.is_active.is_(True))
        if owner_id is not None:
            query = query.filter(SubjectModel.owner_id == owner_id)
        return [self._to_entity(model) for model in query.order_by(SubjectModel.id).all()]

    def update_last_response_at(self, subject_id: int, responded_at: datetime) -> None:
        """Store the latest check-in time of ``subject_id``. The caller commits."""

        self.session.query(SubjectModel).filter(SubjectModel.id == subject_id).update(
            {SubjectModel.last_response_at: ensure_app_naive_datetime(responded_at)},
            synchronize_session=False,
        )

    @staticmethod
    def _to_entity(model: SubjectModel) -> Subject:
        return Subject(
            id=model.id,
            owner_id=model.owner_id,
            name=model.name,
            contact_id=model.contact_id,
            is_active=model.is_active,
            last_response_at=ensure_app_timezone(model.last_response_at),
        )


__all__ = ["SubjectRepository"]
