"""Tests for sending and recording check-in prompts."""

from __future__ import annotations

import threading
from datetime import date, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.application.use_cases.checkins import NotificationDispatcher
from app.domain.exceptions import NotificationPersistenceError
from app.infrastructure.models import DailyNotificationModel, NotificationEntryModel
from app.infrastructure.repositories import DailyNotificationRepository, SubjectRepository

from conftest import FakeChannel

DAY = date(2026, 10, 19)


def _subject(session_factory, subject_id):
    with session_factory() as session:
        return SubjectRepository(session).get(subject_id)


def test_dispatch_creates_record_and_sends_link(session, dispatcher, channel, make_subject, clock):
    seeded = make_subject()
    subject = SubjectRepository(session).get(seeded.subject_id)

    delivered = dispatcher.dispatch(session, subject, DAY, "scheduled")

    assert delivered is True
    record = DailyNotificationRepository(session).get_for_subject_day(subject.id, DAY)
    assert record is not None
    assert record.owner_id == seeded.caregiver_id
    [entry] = record.notifications
    assert entry.level == "scheduled"
    assert entry.sent_at == clock.now
    assert entry.token_expires_at == clock.now + timedelta(hours=24)
    [(recipient, body)] = channel.sent
    assert recipient == "U-hanako"
    assert f"https://app.example.com/checkins/{entry.token}" in body


def test_dispatch_appends_to_existing_record(session, dispatcher, make_subject, clock):
    seeded = make_subject()
    subject = SubjectRepository(session).get(seeded.subject_id)

    dispatcher.dispatch(session, subject, DAY, "scheduled")
    clock.advance(minutes=30)
    dispatcher.dispatch(session, subject, DAY, "retry-1")

    assert session.query(DailyNotificationModel).count() == 1
    record = DailyNotificationRepository(session).get_for_subject_day(subject.id, DAY)
    assert [entry.level for entry in record.notifications] == ["scheduled", "retry-1"]
    assert record.retry_count == 1
    assert len({entry.token for entry in record.notifications}) == 2


def test_failed_send_is_still_recorded(session, clock, make_subject):
    seeded = make_subject()
    subject = SubjectRepository(session).get(seeded.subject_id)
    dispatcher = NotificationDispatcher(
        messaging_channel=FakeChannel(result=False), clock=clock, response_base_url="https://x"
    )

    assert dispatcher.dispatch(session, subject, DAY, "scheduled") is False
    record = DailyNotificationRepository(session).get_for_subject_day(subject.id, DAY)
    assert len(record.notifications) == 1


def test_channel_exception_is_contained(session, clock, make_subject, caplog):
    class ExplodingChannel:
        def send(self, recipient_id, message_body):
            raise RuntimeError("provider down")

    seeded = make_subject()
    subject = SubjectRepository(session).get(seeded.subject_id)
    dispatcher = NotificationDispatcher(
        messaging_channel=ExplodingChannel(), clock=clock, response_base_url="https://x"
    )

    with caplog.at_level("ERROR"):
        assert dispatcher.dispatch(session, subject, DAY, "scheduled") is False

    assert "Dispatch failure" in caplog.text
    assert session.query(NotificationEntryModel).count() == 1


def test_subject_without_contact_is_recorded_but_not_sent(session, dispatcher, channel, make_subject):
    seeded = make_subject(contact_id=None)
    subject = SubjectRepository(session).get(seeded.subject_id)

    assert dispatcher.dispatch(session, subject, DAY, "scheduled") is False
    assert channel.sent == []
    assert session.query(NotificationEntryModel).count() == 1


def test_unknown_level_is_rejected_before_sending(session, dispatcher, channel, make_subject):
    seeded = make_subject()
    subject = SubjectRepository(session).get(seeded.subject_id)

    with pytest.raises(ValueError):
        dispatcher.dispatch(session, subject, DAY, "shout")
    assert channel.sent == []


def test_persistence_failure_raises_retryable_error(session, dispatcher, make_subject, monkeypatch):
    seeded = make_subject()
    subject = SubjectRepository(session).get(seeded.subject_id)

    def _fail(self, **kwargs):
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(DailyNotificationRepository, "append_notification", _fail)

    with pytest.raises(NotificationPersistenceError):
        dispatcher.dispatch(session, subject, DAY, "scheduled")


def test_concurrent_dispatches_share_one_record(session_factory, dispatcher, make_subject):
    seeded = make_subject()
    subject = _subject(session_factory, seeded.subject_id)
    barrier = threading.Barrier(2)
    errors: list[BaseException] = []

    def _worker(level):
        with session_factory() as worker_session:
            barrier.wait()
            try:
                dispatcher.dispatch(worker_session, subject, DAY, level)
            except BaseException as exc:  # pragma: no cover - surfaced by the assertion
                errors.append(exc)

    threads = [
        threading.Thread(target=_worker, args=(level,)) for level in ("scheduled", "test")
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    with session_factory() as check:
        assert check.query(DailyNotificationModel).count() == 1
        record = DailyNotificationRepository(check).get_for_subject_day(subject.id, DAY)
        assert sorted(entry.level for entry in record.notifications) == ["scheduled", "test"]
