"""Persistence helpers for daily check-in records."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, datetime

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.domain.entities import DailyNotification, NotificationEntry, ResponseRecord
from app.domain.exceptions import DuplicateRecordError, PersistenceConflict
from app.infrastructure.models import DailyNotificationModel, NotificationEntryModel
from app.utils import ensure_app_naive_datetime, ensure_app_timezone

logger = logging.getLogger(__name__)


class DailyNotificationRepository:
    """Provide the atomic operations the check-in engine needs on daily records.

    Methods that take part in a larger unit of work (``mark_responded`` and
    ``mark_first_notice``) leave the commit to the caller; every other write
    commits before returning.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, record_id: int) -> DailyNotification | None:
        model = self.session.get(DailyNotificationModel, record_id)
        if model is None:
            return None
        return self._to_entity(model)

    def get_for_subject_day(self, subject_id: int, day: date) -> DailyNotification | None:
        model = self._find_model(subject_id, day)
        if model is None:
            return None
        return self._to_entity(model)

    def append_notification(
        self,
        *,
        subject_id: int,
        owner_id: int,
        day: date,
        entry: NotificationEntry,
    ) -> DailyNotification:
        """Create the record for ``(subject_id, day)`` if missing and append ``entry``.

        The entry is stored as its own row, so concurrent appends to the same
        record never overwrite each other.
        """

        record_id = self._ensure_record(subject_id=subject_id, owner_id=owner_id, day=day)
        self.session.add(
            NotificationEntryModel(
                record_id=record_id,
                sent_at=ensure_app_naive_datetime(entry.sent_at),
                level=entry.level,
                token=entry.token,
                token_expires_at=ensure_app_naive_datetime(entry.token_expires_at),
            )
        )
        self.session.commit()
        record = self.get(record_id)
        assert record is not None
        return record

    def claim_scheduled_prompt(
        self, *, subject_id: int, owner_id: int, day: date, claimed_at: datetime
    ) -> bool:
        """Reserve the single ``scheduled`` prompt of ``(subject_id, day)``.

        The record is created when missing. Only one caller per day gets
        ``True``, however many triggers run at once.
        """

        record_id = self._ensure_record(subject_id=subject_id, owner_id=owner_id, day=day)
        updated = (
            self.session.query(DailyNotificationModel)
            .filter(
                DailyNotificationModel.id == record_id,
                DailyNotificationModel.scheduled_sent_at.is_(None),
            )
            .update(
                {DailyNotificationModel.scheduled_sent_at: ensure_app_naive_datetime(claimed_at)},
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated == 1

    def release_scheduled_claim(self, subject_id: int, day: date, *, claimed_at: datetime) -> None:
        self.session.query(DailyNotificationModel).filter(
            DailyNotificationModel.subject_id == subject_id,
            DailyNotificationModel.day == day,
            DailyNotificationModel.scheduled_sent_at == ensure_app_naive_datetime(claimed_at),
        ).update(
            {DailyNotificationModel.scheduled_sent_at: None},
            synchronize_session=False,
        )
        self.session.commit()

    def list_pending_ids(self, *, since_day: date) -> list[int]:
        """Return ids of unanswered, unescalated records from ``since_day`` onwards."""

        rows = (
            self.session.query(DailyNotificationModel.id)
            .filter(DailyNotificationModel.day >= since_day)
            .filter(DailyNotificationModel.responded_at.is_(None))
            .filter(DailyNotificationModel.admin_notified_at.is_(None))
            .order_by(DailyNotificationModel.id)
            .all()
        )
        return [row.id for row in rows]

    def find_open_by_token(self, token: str) -> DailyNotification | None:
        """Return the unanswered record holding a prompt with ``token``."""

        model = (
            self.session.query(DailyNotificationModel)
            .join(NotificationEntryModel, NotificationEntryModel.record_id == DailyNotificationModel.id)
            .filter(NotificationEntryModel.token == token)
            .filter(DailyNotificationModel.responded_at.is_(None))
            .first()
        )
        if model is None:
            return None
        return self._to_entity(model)

    def mark_responded(self, record_id: int, *, token: str, responded_at: datetime) -> bool:
        """Set the response only if none is stored yet. The caller commits."""

        updated = (
            self.session.query(DailyNotificationModel)
            .filter(
                DailyNotificationModel.id == record_id,
                DailyNotificationModel.responded_at.is_(None),
            )
            .update(
                {
                    DailyNotificationModel.responded_at: ensure_app_naive_datetime(responded_at),
                    DailyNotificationModel.responded_token: token,
                },
                synchronize_session=False,
            )
        )
        return updated == 1

    def mark_first_notice(self, record_id: int, *, noticed_at: datetime) -> bool:
        """Flag the first non-response notice as emitted. The caller commits."""

        updated = (
            self.session.query(DailyNotificationModel)
            .filter(
                DailyNotificationModel.id == record_id,
                DailyNotificationModel.first_notice_at.is_(None),
            )
            .update(
                {DailyNotificationModel.first_notice_at: ensure_app_naive_datetime(noticed_at)},
                synchronize_session=False,
            )
        )
        return updated == 1

    def claim_escalation(
        self, record_id: int, *, claimed_at: datetime, stale_before: datetime
    ) -> bool:
        """Take the exclusive right to send the escalation for ``record_id``.

        A claim older than ``stale_before`` belongs to a sweep that died while
        sending and may be taken over. Answered records are never claimed.
        """

        stale = ensure_app_naive_datetime(stale_before)
        updated = (
            self.session.query(DailyNotificationModel)
            .filter(
                DailyNotificationModel.id == record_id,
                DailyNotificationModel.responded_at.is_(None),
                DailyNotificationModel.admin_notified_at.is_(None),
                or_(
                    DailyNotificationModel.escalation_claimed_at.is_(None),
                    DailyNotificationModel.escalation_claimed_at < stale,
                ),
            )
            .update(
                {DailyNotificationModel.escalation_claimed_at: ensure_app_naive_datetime(claimed_at)},
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated == 1

    def release_escalation_claim(self, record_id: int, *, claimed_at: datetime) -> None:
        self.session.query(DailyNotificationModel).filter(
            DailyNotificationModel.id == record_id,
            DailyNotificationModel.escalation_claimed_at == ensure_app_naive_datetime(claimed_at),
        ).update(
            {DailyNotificationModel.escalation_claimed_at: None},
            synchronize_session=False,
        )
        self.session.commit()

    def mark_admin_notified(self, record_id: int, *, notified_at: datetime) -> bool:
        updated = (
            self.session.query(DailyNotificationModel)
            .filter(
                DailyNotificationModel.id == record_id,
                DailyNotificationModel.responded_at.is_(None),
                DailyNotificationModel.admin_notified_at.is_(None),
            )
            .update(
                {DailyNotificationModel.admin_notified_at: ensure_app_naive_datetime(notified_at)},
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated == 1

    def update_notes(
        self, record_id: int, *, owner_id: int, notes: str | None
    ) -> DailyNotification | None:
        model = (
            self.session.query(DailyNotificationModel)
            .filter(
                DailyNotificationModel.id == record_id,
                DailyNotificationModel.owner_id == owner_id,
            )
            .first()
        )
        if model is None:
            return None
        model.notes = notes
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def list_for_owner(
        self,
        owner_id: int,
        *,
        subject_id: int | None = None,
        start_day: date | None = None,
        end_day: date | None = None,
        skip: int = 0,
        limit: int | None = 50,
    ) -> tuple[Sequence[tuple[DailyNotification, str]], int]:
        """Return ``(record, subject name)`` pairs newest first and the total count."""

        query = self.session.query(DailyNotificationModel).filter(
            DailyNotificationModel.owner_id == owner_id
        )
        if subject_id is not None:
            query = query.filter(DailyNotificationModel.subject_id == subject_id)
        if start_day is not None:
            query = query.filter(DailyNotificationModel.day >= start_day)
        if end_day is not None:
            query = query.filter(DailyNotificationModel.day <= end_day)

        total = query.count()
        query = query.order_by(DailyNotificationModel.day.desc(), DailyNotificationModel.id.desc())
        if skip:
            query = query.offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return (
            [(self._to_entity(model), model.subject.name) for model in query.all()],
            total,
        )

    def _ensure_record(self, *, subject_id: int, owner_id: int, day: date) -> int:
        existing = self._find_model(subject_id, day)
        if existing is not None:
            return existing.id

        model = DailyNotificationModel(subject_id=subject_id, owner_id=owner_id, day=day)
        self.session.add(model)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            logger.info(
                "Daily record for subject %s on %s was created concurrently; appending to it",
                subject_id,
                day,
            )
            existing = self._find_model(subject_id, day)
            if existing is None:
                raise PersistenceConflict(
                    f"Could not create or load the record of subject {subject_id} for {day}"
                ) from exc
            return existing.id
        return model.id

    def _find_model(self, subject_id: int, day: date) -> DailyNotificationModel | None:
        models = (
            self.session.query(DailyNotificationModel)
            .filter(
                DailyNotificationModel.subject_id == subject_id,
                DailyNotificationModel.day == day,
            )
            .order_by(DailyNotificationModel.id)
            .all()
        )
        if len(models) > 1:
            message = (
                f"Found {len(models)} daily records for subject {subject_id} on {day}; "
                "expected at most one"
            )
            if get_settings().environment == "development":
                raise DuplicateRecordError(message)
            logger.error("%s. Using record %s", message, models[0].id)
        return models[0] if models else None

    @staticmethod
    def _to_entity(model: DailyNotificationModel) -> DailyNotification:
        response = None
        if model.responded_at is not None:
            response = ResponseRecord(
                responded_at=ensure_app_timezone(model.responded_at),
                responded_token=model.responded_token,
            )
        return DailyNotification(
            id=model.id,
            subject_id=model.subject_id,
            owner_id=model.owner_id,
            day=model.day,
            notifications=tuple(
                NotificationEntry(
                    sent_at=ensure_app_timezone(entry.sent_at),
                    level=entry.level,
                    token=entry.token,
                    token_expires_at=ensure_app_timezone(entry.token_expires_at),
                )
                for entry in model.entries
            ),
            response=response,
            admin_notified_at=ensure_app_timezone(model.admin_notified_at),
            first_notice_at=ensure_app_timezone(model.first_notice_at),
            notes=model.notes,
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["DailyNotificationRepository"]
