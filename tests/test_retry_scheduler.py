"""Tests for the retry sweep: retries, notices and escalation."""

from __future__ import annotations

import asyncio
import threading
from datetime import date, timedelta

import pytest

from app.application.use_cases.checkins import (
    NotificationDispatcher,
    RetryScheduler,
    SweepDecision,
    plan_next_step,
    send_daily_checkin,
)
from app.domain.entities import DailyNotification, NotificationEntry, ResponseRecord, RetryPolicy
from app.domain.exceptions import SweepInProgressError
from app.infrastructure.models import AlertModel, SubjectModel
from app.infrastructure.repositories import DailyNotificationRepository, SubjectRepository

from conftest import T0, FakeChannel

DAY = date(2026, 10, 19)
GRACE = timedelta(minutes=30)
POLICY = RetryPolicy(max_retries=2, retry_interval_minutes=30)


def _record(*levels_and_minutes, **kwargs) -> DailyNotification:
    entries = tuple(
        NotificationEntry(
            sent_at=T0 + timedelta(minutes=minutes),
            level=level,
            token=f"tok-{index}",
            token_expires_at=T0 + timedelta(minutes=minutes, hours=24),
        )
        for index, (level, minutes) in enumerate(levels_and_minutes)
    )
    return DailyNotification(
        id=1, subject_id=1, owner_id=1, day=DAY, notifications=entries, **kwargs
    )


def _at(minutes: int):
    return T0 + timedelta(minutes=minutes)


def _load(session_factory, subject_id, day=DAY) -> DailyNotification:
    with session_factory() as session:
        return DailyNotificationRepository(session).get_for_subject_day(subject_id, day)


def _alerts(session_factory, event_type) -> int:
    with session_factory() as session:
        return session.query(AlertModel).filter(AlertModel.event_type == event_type).count()


def _start_day(session_factory, dispatcher, clock, subject_id):
    with session_factory() as session:
        send_daily_checkin(session, dispatcher, subject_id, now=clock.now)


class TestPlanNextStep:
    def test_waits_for_the_retry_interval(self):
        record = _record(("scheduled", 0))

        assert plan_next_step(record, POLICY, _at(29), GRACE).is_noop

    def test_first_retry_comes_with_the_first_notice(self):
        decision = plan_next_step(_record(("scheduled", 0)), POLICY, _at(30), GRACE)

        assert decision == SweepDecision(
            send_notice=True, next_level="retry-1", elapsed=timedelta(minutes=30)
        )

    def test_notice_is_not_repeated(self):
        record = _record(("scheduled", 0), first_notice_at=_at(30))

        decision = plan_next_step(record, POLICY, _at(45), GRACE)

        assert not decision.send_notice

    def test_retries_advance_one_level_at_a_time(self):
        decision = plan_next_step(_record(("scheduled", 0)), POLICY, _at(300), GRACE)

        assert decision.next_level == "retry-1"
        assert not decision.escalate

    def test_escalates_after_grace_once_retries_are_exhausted(self):
        record = _record(("scheduled", 0), ("retry-1", 30), ("retry-2", 60))

        assert plan_next_step(record, POLICY, _at(89), GRACE).is_noop
        assert plan_next_step(record, POLICY, _at(90), GRACE).escalate

    def test_zero_retries_goes_straight_to_escalation(self):
        policy = RetryPolicy(max_retries=0, retry_interval_minutes=30)

        decision = plan_next_step(_record(("scheduled", 0)), policy, _at(30), GRACE)

        assert decision.next_level is None
        assert decision.escalate
        assert decision.send_notice

    def test_disabled_escalation_never_escalates(self):
        policy = RetryPolicy(max_retries=0, retry_interval_minutes=30, escalation_enabled=False)

        assert not plan_next_step(_record(("scheduled", 0)), policy, _at(600), GRACE).escalate

    def test_test_prompts_do_not_shift_timing(self):
        record = _record(("scheduled", 0), ("test", 20))

        assert plan_next_step(record, POLICY, _at(30), GRACE).next_level == "retry-1"

    def test_record_with_only_test_prompts_is_ignored(self):
        assert plan_next_step(_record(("test", 0)), POLICY, _at(600), GRACE).is_noop

    def test_escalated_record_is_ignored(self):
        record = _record(("scheduled", 0), admin_notified_at=_at(90))

        assert plan_next_step(record, POLICY, _at(600), GRACE).is_noop

    def test_answered_record_is_ignored(self):
        record = _record(
            ("scheduled", 0),
            response=ResponseRecord(responded_at=_at(10), responded_token="tok-0"),
        )

        assert plan_next_step(record, POLICY, _at(600), GRACE).is_noop


def test_full_ladder_ends_in_a_single_escalation(
    session_factory, dispatcher, scheduler, make_subject, clock, channel, email_sender
):
    seeded = make_subject()
    _start_day(session_factory, dispatcher, clock, seeded.subject_id)

    clock.now = _at(29)
    assert scheduler.sweep().actions["retry"] == 0

    clock.now = _at(31)
    summary = scheduler.sweep()
    assert summary.actions["retry"] == 1
    assert summary.actions["notice"] == 1
    assert _load(session_factory, seeded.subject_id).retry_count == 1

    clock.now = _at(60)
    assert scheduler.sweep().actions["retry"] == 0

    clock.now = _at(62)
    assert scheduler.sweep().actions["retry"] == 1
    assert _load(session_factory, seeded.subject_id).retry_count == 2

    clock.now = _at(91)
    assert scheduler.sweep().actions["escalation"] == 0

    clock.now = _at(92)
    assert scheduler.sweep().actions["escalation"] == 1

    clock.now = _at(150)
    assert scheduler.sweep().records == 0

    record = _load(session_factory, seeded.subject_id)
    assert record.admin_notified_at == _at(92)
    assert [entry.level for entry in record.notifications] == ["scheduled", "retry-1", "retry-2"]
    assert len(channel.sent) == 3
    [(subject_line, html_content, recipient)] = email_sender.calls
    assert recipient == "family@example.com"
    assert "Hanako" in subject_line
    assert "2026-10-19 10:02" in html_content
    assert _alerts(session_factory, "no_response") == 1
    assert _alerts(session_factory, "escalation") == 1


def test_zero_retries_escalates_without_retrying(
    session_factory, dispatcher, scheduler, make_subject, clock, email_sender
):
    seeded = make_subject(max_retries=0)
    _start_day(session_factory, dispatcher, clock, seeded.subject_id)

    clock.now = _at(30)
    summary = scheduler.sweep()

    assert summary.actions["escalation"] == 1
    assert summary.actions["notice"] == 1
    assert _load(session_factory, seeded.subject_id).retry_count == 0
    assert len(email_sender.calls) == 1

    clock.now = _at(120)
    scheduler.sweep()
    assert _alerts(session_factory, "no_response") == 1
    assert len(email_sender.calls) == 1


def test_missing_policy_skips_record_with_warning(
    session_factory, dispatcher, scheduler, make_subject, clock, caplog
):
    seeded = make_subject(with_policy=False)
    _start_day(session_factory, dispatcher, clock, seeded.subject_id)

    clock.now = _at(45)
    with caplog.at_level("WARNING"):
        summary = scheduler.sweep()

    assert summary.actions["skipped"] == 1
    assert "no retry policy" in caplog.text
    assert _load(session_factory, seeded.subject_id).retry_count == 0


def test_policy_defaults_fill_unset_columns(
    session_factory, dispatcher, scheduler, make_subject, clock
):
    seeded = make_subject(max_retries=None, retry_interval_minutes=None)
    _start_day(session_factory, dispatcher, clock, seeded.subject_id)

    clock.now = _at(30)
    assert scheduler.sweep().actions["retry"] == 1


def test_disabled_escalation_keeps_record_pending(
    session_factory, dispatcher, scheduler, make_subject, clock, email_sender
):
    seeded = make_subject(max_retries=1, escalation_enabled=False)
    _start_day(session_factory, dispatcher, clock, seeded.subject_id)

    clock.now = _at(30)
    scheduler.sweep()
    clock.now = _at(300)
    scheduler.sweep()

    record = _load(session_factory, seeded.subject_id)
    assert record.retry_count == 1
    assert record.admin_notified_at is None
    assert email_sender.calls == []


@pytest.mark.parametrize("failure", [False, RuntimeError("smtp down")])
def test_failed_escalation_is_retried_on_next_sweep(
    session_factory, dispatcher, scheduler, make_subject, clock, email_sender, failure
):
    seeded = make_subject(max_retries=0)
    _start_day(session_factory, dispatcher, clock, seeded.subject_id)
    email_sender.result = failure

    clock.now = _at(30)
    assert scheduler.sweep().actions["escalation"] == 0
    assert _load(session_factory, seeded.subject_id).admin_notified_at is None

    email_sender.result = True
    clock.now = _at(31)
    assert scheduler.sweep().actions["escalation"] == 1
    assert _load(session_factory, seeded.subject_id).admin_notified_at == _at(31)
    assert len(email_sender.calls) == 2


def test_inactive_subject_is_skipped(session_factory, dispatcher, scheduler, make_subject, clock):
    seeded = make_subject()
    _start_day(session_factory, dispatcher, clock, seeded.subject_id)
    with session_factory() as session:
        session.query(SubjectModel).filter(SubjectModel.id == seeded.subject_id).update(
            {SubjectModel.is_active: False}
        )
        session.commit()

    clock.now = _at(40)
    assert scheduler.sweep().actions["skipped"] == 1
    assert _load(session_factory, seeded.subject_id).retry_count == 0


def test_sweep_covers_yesterday_but_not_older_days(
    session_factory, dispatcher, scheduler, make_subject, clock
):
    recent = make_subject(name="Recent")
    old = make_subject(name="Old")
    clock.now = T0 - timedelta(days=1)
    _start_day(session_factory, dispatcher, clock, recent.subject_id)
    clock.now = T0 - timedelta(days=2)
    _start_day(session_factory, dispatcher, clock, old.subject_id)

    clock.now = T0
    summary = scheduler.sweep()

    assert summary.records == 1
    assert _load(session_factory, recent.subject_id, DAY - timedelta(days=1)).retry_count == 1
    assert _load(session_factory, old.subject_id, DAY - timedelta(days=2)).retry_count == 0


def test_failure_on_one_record_does_not_stop_others(
    session_factory, dispatcher, scheduler, make_subject, clock, monkeypatch
):
    first = make_subject(name="First")
    second = make_subject(name="Second")
    _start_day(session_factory, dispatcher, clock, first.subject_id)
    _start_day(session_factory, dispatcher, clock, second.subject_id)

    original = SubjectRepository.get

    def _flaky_get(self, subject_id):
        if subject_id == first.subject_id:
            raise RuntimeError("directory unavailable")
        return original(self, subject_id)

    monkeypatch.setattr(SubjectRepository, "get", _flaky_get)
    clock.now = _at(30)
    summary = scheduler.sweep()

    assert summary.actions["failed"] == 1
    assert summary.actions["retry"] == 1
    assert _load(session_factory, second.subject_id).retry_count == 1


def test_parallel_sweep_processes_every_record(
    session_factory, dispatcher, notifier, make_subject, clock
):
    subjects = [make_subject(name=f"Subject {index}") for index in range(4)]
    for seeded in subjects:
        _start_day(session_factory, dispatcher, clock, seeded.subject_id)
    scheduler = RetryScheduler(
        session_factory=session_factory,
        dispatcher=dispatcher,
        escalation_notifier=notifier,
        clock=clock,
        tick_seconds=1,
        grace_period=GRACE,
        max_workers=4,
    )

    clock.now = _at(30)
    summary = scheduler.sweep()

    assert summary.actions["retry"] == 4
    assert all(_load(session_factory, s.subject_id).retry_count == 1 for s in subjects)


def test_start_and_stop_run_the_loop(scheduler):
    calls: list[int] = []
    scheduler.sweep = lambda now=None: calls.append(1)

    async def _run():
        scheduler.start()
        assert scheduler.is_running
        await asyncio.sleep(0.1)
        await scheduler.stop()

    asyncio.run(_run())

    assert calls == [1]
    assert not scheduler.is_running


class GatedChannel(FakeChannel):
    """Channel whose sends block until the test opens the gate."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.gate = threading.Event()

    def send(self, recipient_id: str, message_body: str) -> bool:
        self.entered.set()
        self.gate.wait(timeout=5)
        return super().send(recipient_id, message_body)


def test_overlapping_sweep_is_refused(
    session_factory, dispatcher, notifier, make_subject, clock
):
    seeded = make_subject()
    _start_day(session_factory, dispatcher, clock, seeded.subject_id)
    gated = GatedChannel()
    scheduler = RetryScheduler(
        session_factory=session_factory,
        dispatcher=NotificationDispatcher(
            messaging_channel=gated, clock=clock, response_base_url="https://app.example.com"
        ),
        escalation_notifier=notifier,
        clock=clock,
        tick_seconds=1,
        grace_period=GRACE,
        max_workers=1,
    )
    clock.now = _at(31)

    background = threading.Thread(target=scheduler.sweep)
    background.start()
    try:
        assert gated.entered.wait(timeout=5)
        with pytest.raises(SweepInProgressError):
            scheduler.sweep()
    finally:
        gated.gate.set()
        background.join()

    record = _load(session_factory, seeded.subject_id)
    assert [entry.level for entry in record.notifications] == ["scheduled", "retry-1"]
    assert record.retry_count == 1
    assert scheduler.sweep().actions["retry"] == 0
