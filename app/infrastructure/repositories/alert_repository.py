"""Persistence helpers for caregiver alerts."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Iterable

from sqlalchemy.orm import Session

from app.domain.entities import Alert
from app.infrastructure.models import AlertModel
from app.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)


class AlertRepository:
    """Provide CRUD operations for :class:`Alert` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_for_owner(
        self,
        owner_id: int,
        *,
        unread_only: bool = False,
        limit: int | None = 50,
    ) -> Sequence[Alert]:
        query = self.session.query(AlertModel).filter(AlertModel.owner_id == owner_id)
        if unread_only:
            query = query.filter(AlertModel.read_at.is_(None))
        query = query.order_by(AlertModel.created_at.desc(), AlertModel.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def create(self, alert: Alert) -> Alert:
        model = AlertModel(
            owner_id=alert.owner_id,
            event_type=alert.event_type,
            title=alert.title,
            message=alert.message,
            payload=alert.payload or {},
            created_at=(
                ensure_app_naive_datetime(alert.created_at)
                or ensure_app_naive_datetime(now_in_app_timezone())
            ),
            read_at=ensure_app_naive_datetime(alert.read_at),
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def mark_as_read(self, alert_ids: Iterable[int], *, owner_id: int) -> int:
        ids = [alert_id for alert_id in alert_ids if alert_id is not None]
        if not ids:
            return 0
        updated = (
            self.session.query(AlertModel)
            .filter(
                AlertModel.id.in_(ids),
                AlertModel.owner_id == owner_id,
                AlertModel.read_at.is_(None),
            )
            .update(
                {AlertModel.read_at: ensure_app_naive_datetime(now_in_app_timezone())},
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated

    @staticmethod
    def _to_entity(model: AlertModel) -> Alert:
        return Alert(
            id=model.id,
            owner_id=model.owner_id,
            event_type=model.event_type,
            title=model.title,
            message=model.message,
            payload=model.payload or {},
            created_at=ensure_app_timezone(model.created_at),
            read_at=ensure_app_timezone(model.read_at),
        )


__all__ = ["AlertRepository"]
