"""Send check-in prompts and record them on the subject's daily record."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.domain.entities import NotificationEntry, Subject, ensure_valid_level
from app.domain.exceptions import NotificationPersistenceError
from app.infrastructure.messaging import MessagingChannel
from app.infrastructure.repositories import DailyNotificationRepository
from app.infrastructure.security import ResponseTokenIssuer
from app.utils import now_in_app_timezone

from .messages import build_checkin_message, build_response_url

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Compose, send and persist one check-in prompt at a time."""

    def __init__(
        self,
        *,
        messaging_channel: MessagingChannel,
        token_issuer: ResponseTokenIssuer | None = None,
        clock: Callable[[], datetime] = now_in_app_timezone,
        response_base_url: str | None = None,
    ) -> None:
        self._messaging_channel = messaging_channel
        self._token_issuer = token_issuer or ResponseTokenIssuer()
        self._clock = clock
        self._response_base_url = response_base_url or get_settings().frontend_url

    def dispatch(self, session: Session, subject: Subject, day: date, level: str) -> bool:
        """Send a ``level`` prompt to ``subject`` for ``day``.

        Returns whether the messaging channel accepted the message. The prompt
        is recorded on the daily record either way, so a failed send still
        counts as an attempt. A failure to record it raises
        :class:`NotificationPersistenceError`.
        """

        ensure_valid_level(level)
        now = self._clock()
        issued = self._token_issuer.issue(now)
        body = build_checkin_message(
            subject.name,
            level=level,
            sent_at=now,
            response_url=build_response_url(self._response_base_url, issued.token),
        )

        sent = self._send(subject, body, level)

        entry = NotificationEntry(
            sent_at=now,
            level=level,
            token=issued.token,
            token_expires_at=issued.expires_at,
        )
        try:
            DailyNotificationRepository(session).append_notification(
                subject_id=subject.id,
                owner_id=subject.owner_id,
                day=day,
                entry=entry,
            )
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception(
                "Could not record %s prompt for subject %s on %s", level, subject.id, day
            )
            raise NotificationPersistenceError(
                f"Failed to record the {level} prompt of subject {subject.id} for {day}"
            ) from exc

        logger.info(
            "Recorded %s prompt for subject %s on %s (delivered=%s)",
            level,
            subject.id,
            day,
            sent,
        )
        return sent

    def _send(self, subject: Subject, body: str, level: str) -> bool:
        if not subject.contact_id:
            logger.warning(
                "Subject %s has no messaging contact; %s prompt not delivered",
                subject.id,
                level,
            )
            return False
        try:
            return self._messaging_channel.send(subject.contact_id, body)
        except Exception:
            logger.exception("Dispatch failure for subject %s (%s prompt)", subject.id, level)
            return False


__all__ = ["NotificationDispatcher"]
