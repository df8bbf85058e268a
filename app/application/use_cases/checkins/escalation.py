"""Alert the caregiver once a subject exhausted every retry of the day."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.orm import Session

from app.application.use_cases.alerts import notify_escalation_sent
from app.config import get_settings
from app.domain.entities import Caregiver, DailyNotification, Subject
from app.infrastructure.email import build_escalation_email, send_email
from app.infrastructure.repositories import DailyNotificationRepository
from app.utils import now_in_app_timezone

logger = logging.getLogger(__name__)

EmailSender = Callable[[str, str, str], bool]


class EscalationNotifier:
    """Send the no-response summary email at most once per record.

    Sending is guarded by a claim on the record; only the sweep holding the
    claim may send, and ``admin_notified_at`` is written only after the email
    went out. A failed send releases the claim so the next sweep retries.
    """

    def __init__(
        self,
        *,
        email_sender: EmailSender = send_email,
        clock: Callable[[], datetime] = now_in_app_timezone,
        claim_ttl: timedelta | None = None,
    ) -> None:
        self._email_sender = email_sender
        self._clock = clock
        self._claim_ttl = claim_ttl or timedelta(
            minutes=get_settings().escalation_claim_ttl_minutes
        )

    def escalate(
        self,
        session: Session,
        record: DailyNotification,
        subject: Subject,
        owner: Caregiver,
    ) -> bool:
        if record.id is None:
            raise ValueError("Only persisted records can be escalated")

        now = self._clock()
        records = DailyNotificationRepository(session)
        if not records.claim_escalation(
            record.id, claimed_at=now, stale_before=now - self._claim_ttl
        ):
            logger.info("Escalation of record %s already claimed or sent; skipping", record.id)
            return False

        if not owner.email:
            logger.warning(
                "Caregiver %s has no email address; cannot escalate record %s",
                owner.id,
                record.id,
            )
            records.release_escalation_claim(record.id, claimed_at=now)
            return False

        last = record.last_ladder_notification
        last_prompt_at = last.sent_at if last else None
        elapsed = now - last_prompt_at if last_prompt_at else timedelta(0)
        subject_line, html_content = build_escalation_email(subject.name, last_prompt_at, elapsed)

        try:
            sent = self._email_sender(subject_line, html_content, owner.email)
        except Exception:
            logger.exception("Escalation email for record %s raised", record.id)
            sent = False

        if not sent:
            logger.error(
                "Escalation email for record %s was not delivered; will retry next sweep",
                record.id,
            )
            records.release_escalation_claim(record.id, claimed_at=now)
            return False

        if not records.mark_admin_notified(record.id, notified_at=now):
            logger.warning(
                "Record %s was answered or escalated while the email was sent", record.id
            )
            return False

        logger.info(
            "Escalated record %s of subject %s to caregiver %s",
            record.id,
            subject.id,
            owner.id,
        )
        notify_escalation_sent(
            session, record=record, subject=subject, notified_at=now, recipient=owner.email
        )
        return True


__all__ = ["EmailSender", "EscalationNotifier"]
