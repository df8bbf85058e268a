"""Periodic sweep escalating unanswered check-ins through the retry ladder."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.orm import Session

from app.application.use_cases.alerts import notify_no_response
from app.config import get_settings
from app.domain.entities import DailyNotification, RetryPolicy, retry_level
from app.domain.exceptions import PolicyMissing, SweepInProgressError
from app.infrastructure.repositories import (
    CaregiverRepository,
    DailyNotificationRepository,
    RetryPolicyRepository,
    SubjectRepository,
)
from app.utils import now_in_app_timezone, to_app_day

from .dispatch import NotificationDispatcher
from .escalation import EscalationNotifier

logger = logging.getLogger(__name__)

ACTION_NOTICE = "notice"
ACTION_RETRY = "retry"
ACTION_ESCALATION = "escalation"
ACTION_IDLE = "idle"
ACTION_SKIPPED = "skipped"
ACTION_FAILED = "failed"

ELIGIBILITY_WINDOW = timedelta(hours=24)


@dataclass(frozen=True)
class SweepDecision:
    """What a sweep should do with one record at a given instant."""

    send_notice: bool = False
    next_level: str | None = None
    escalate: bool = False
    elapsed: timedelta = timedelta(0)

    @property
    def is_noop(self) -> bool:
        return not (self.send_notice or self.next_level or self.escalate)


@dataclass
class SweepSummary:
    started_at: datetime
    records: int = 0
    actions: Counter = field(default_factory=Counter)

    def as_dict(self) -> dict[str, object]:
        return {
            "started_at": self.started_at.isoformat(),
            "records": self.records,
            "notices": self.actions[ACTION_NOTICE],
            "retries": self.actions[ACTION_RETRY],
            "escalations": self.actions[ACTION_ESCALATION],
            "skipped": self.actions[ACTION_SKIPPED],
            "failed": self.actions[ACTION_FAILED],
        }


def plan_next_step(
    record: DailyNotification,
    policy: RetryPolicy,
    now: datetime,
    grace_period: timedelta,
) -> SweepDecision:
    """Decide the next transition of ``record``.

    Retries go strictly one level at a time, and escalation is only
    considered once ``max_retries`` retries were sent. With ``max_retries``
    set to zero the initial prompt leads directly to escalation.
    """

    if not record.is_pending:
        return SweepDecision()
    last = record.last_ladder_notification
    if last is None:
        return SweepDecision()

    elapsed = now - last.sent_at
    retries = record.retry_count
    interval_passed = elapsed >= policy.retry_interval
    send_notice = retries == 0 and interval_passed and record.first_notice_at is None

    if retries < policy.max_retries:
        return SweepDecision(
            send_notice=send_notice,
            next_level=retry_level(retries + 1) if interval_passed else None,
            elapsed=elapsed,
        )

    return SweepDecision(
        send_notice=send_notice,
        escalate=policy.escalation_enabled and elapsed >= grace_period,
        elapsed=elapsed,
    )


class RetryScheduler:
    """Own the periodic retry sweep.

    The composition root builds one instance with its collaborators and
    calls :meth:`start` / :meth:`stop` from the application lifespan. Each
    tick awaits the previous sweep before sleeping, and :meth:`sweep` holds a
    lock so an operator-triggered sweep never overlaps a background one.
    """

    def __init__(
        self,
        *,
        session_factory: Callable[[], Session],
        dispatcher: NotificationDispatcher,
        escalation_notifier: EscalationNotifier,
        clock: Callable[[], datetime] = now_in_app_timezone,
        tick_seconds: float | None = None,
        grace_period: timedelta | None = None,
        max_workers: int | None = None,
    ) -> None:
        settings = get_settings()
        self._session_factory = session_factory
        self._dispatcher = dispatcher
        self._escalation_notifier = escalation_notifier
        self._clock = clock
        self._tick_seconds = tick_seconds or settings.retry_sweep_interval_seconds
        self._grace_period = (
            grace_period
            if grace_period is not None
            else timedelta(minutes=settings.escalation_grace_period_minutes)
        )
        self._max_workers = max_workers or settings.scheduler_max_workers
        self._task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None
        self._sweep_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking on the running event loop."""

        if self.is_running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("Retry scheduler started (every %s seconds)", self._tick_seconds)

    async def stop(self) -> None:
        """Stop ticking, waiting for a sweep in progress to finish."""

        if self._task is None:
            return
        assert self._stop_event is not None
        self._stop_event.set()
        await self._task
        self._task = None
        logger.info("Retry scheduler stopped")

    async def _run(self) -> None:
        assert self._stop_event is not None
        while not self._stop_event.is_set():
            try:
                await asyncio.to_thread(self.sweep)
            except SweepInProgressError:
                logger.info("Previous retry sweep still running; skipping this tick")
            except Exception:
                logger.exception("Retry sweep failed")
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._tick_seconds)
            except asyncio.TimeoutError:
                pass

    def sweep(self, now: datetime | None = None) -> SweepSummary:
        """Evaluate every eligible record once.

        Raises :class:`SweepInProgressError` when another sweep is running.
        """

        if not self._sweep_lock.acquire(blocking=False):
            raise SweepInProgressError("A retry sweep is already running")
        try:
            return self._sweep(now or self._clock())
        finally:
            self._sweep_lock.release()

    def _sweep(self, now: datetime) -> SweepSummary:
        summary = SweepSummary(started_at=now)
        with self._session_factory() as session:
            record_ids = DailyNotificationRepository(session).list_pending_ids(
                since_day=to_app_day(now - ELIGIBILITY_WINDOW)
            )
        summary.records = len(record_ids)
        if not record_ids:
            return summary

        if self._max_workers > 1 and len(record_ids) > 1:
            with ThreadPoolExecutor(
                max_workers=self._max_workers, thread_name_prefix="retry-sweep"
            ) as executor:
                results = list(executor.map(lambda rid: self._process_record(rid, now), record_ids))
        else:
            results = [self._process_record(record_id, now) for record_id in record_ids]

        for actions in results:
            summary.actions.update(actions)
        logger.info("Retry sweep finished: %s", summary.as_dict())
        return summary

    def _process_record(self, record_id: int, now: datetime) -> tuple[str, ...]:
        with self._session_factory() as session:
            try:
                return self._process(session, record_id, now)
            except Exception:
                session.rollback()
                logger.exception("Failed to process daily record %s", record_id)
                return (ACTION_FAILED,)

    def _process(self, session: Session, record_id: int, now: datetime) -> tuple[str, ...]:
        record = DailyNotificationRepository(session).get(record_id)
        if record is None or not record.is_pending:
            return (ACTION_SKIPPED,)

        try:
            policy = self._require_policy(session, record.owner_id)
        except PolicyMissing as exc:
            logger.warning("%s; skipping record %s", exc, record_id)
            return (ACTION_SKIPPED,)

        decision = plan_next_step(record, policy, now, self._grace_period)
        if decision.is_noop:
            return (ACTION_IDLE,)

        subject = SubjectRepository(session).get(record.subject_id)
        if subject is None or not subject.is_active:
            logger.warning(
                "Subject %s of record %s is missing or inactive; skipping",
                record.subject_id,
                record_id,
            )
            return (ACTION_SKIPPED,)

        actions: list[str] = []
        if decision.send_notice:
            notice = notify_no_response(
                session, record=record, subject=subject, now=now, elapsed=decision.elapsed
            )
            if notice is not None:
                actions.append(ACTION_NOTICE)

        if decision.next_level:
            logger.info(
                "Sending %s to subject %s (%s since last prompt)",
                decision.next_level,
                subject.id,
                decision.elapsed,
            )
            self._dispatcher.dispatch(session, subject, record.day, decision.next_level)
            actions.append(ACTION_RETRY)
        elif decision.escalate:
            owner = CaregiverRepository(session).get(record.owner_id)
            if owner is None:
                logger.warning("Caregiver %s of record %s not found", record.owner_id, record_id)
            elif self._escalation_notifier.escalate(session, record, subject, owner):
                actions.append(ACTION_ESCALATION)

        return tuple(actions) or (ACTION_IDLE,)

    @staticmethod
    def _require_policy(session: Session, owner_id: int) -> RetryPolicy:
        policy = RetryPolicyRepository(session).get(owner_id)
        if policy is None:
            raise PolicyMissing(f"Caregiver {owner_id} has no retry policy configured")
        return policy


__all__ = [
    "ACTION_ESCALATION",
    "ACTION_FAILED",
    "ACTION_IDLE",
    "ACTION_NOTICE",
    "ACTION_RETRY",
    "ACTION_SKIPPED",
    "RetryScheduler",
    "SweepDecision",
    "SweepSummary",
    "plan_next_step",
]
