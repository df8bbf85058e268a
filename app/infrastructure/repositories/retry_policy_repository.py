"""Persistence layer for caregiver retry policies."""

from __future__ import annotations

from sqlalchemy.orm import Session

from app.config import get_settings
from app.domain.entities import RetryPolicy
from app.infrastructure.models import RetryPolicyModel


class RetryPolicyRepository:
    """Owner policy store.

    Columns left empty in the database are filled with the configured
    ``DEFAULT_MAX_RETRIES`` and ``DEFAULT_RETRY_INTERVAL_MINUTES`` here, so the
    rest of the engine only ever sees complete :class:`RetryPolicy` values.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, owner_id: int) -> RetryPolicy | None:
        model = (
            self.session.query(RetryPolicyModel)
            .filter(RetryPolicyModel.owner_id == owner_id)
            .first()
        )
        if model is None:
            return None

        settings = get_settings()
        max_retries = model.max_retries
        interval = model.retry_interval_minutes
        return RetryPolicy(
            max_retries=settings.default_max_retries if max_retries is None else max_retries,
            retry_interval_minutes=(
                settings.default_retry_interval_minutes if interval is None else interval
            ),
            escalation_enabled=bool(model.escalation_enabled),
        )


__all__ = ["RetryPolicyRepository"]
