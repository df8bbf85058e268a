"""Shared fixtures for the check-in engine test-suite."""

from __future__ import annotations

import os
import sys
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ["DATABASE_URL"] = f"sqlite:///{Path(tempfile.gettempdir()) / 'checkin-engine-tests.db'}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["INTERNAL_API_KEY"] = "internal-test-key"
os.environ["APP_TIMEZONE"] = "Asia/Tokyo"
os.environ["ENVIRONMENT"] = "production"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["FRONTEND_URL"] = "https://app.example.com"
for _name in ("SENDGRID_API_KEY", "SENDGRID_SENDER", "LINE_CHANNEL_ACCESS_TOKEN"):
    os.environ.pop(_name, None)

from app.application.use_cases.checkins import (  # noqa: E402
    EscalationNotifier,
    NotificationDispatcher,
    RetryScheduler,
)
from app.config import reset_settings_cache  # noqa: E402
from app.infrastructure.database import (  # noqa: E402
    build_engine,
    build_session_factory,
    get_db,
    initialize_database,
)
from app.infrastructure.models import (  # noqa: E402
    CaregiverModel,
    RetryPolicyModel,
    SubjectModel,
)
from app.infrastructure.security import create_access_token  # noqa: E402

TOKYO = ZoneInfo("Asia/Tokyo")
T0 = datetime(2026, 10, 19, 9, 0, tzinfo=TOKYO)


class FakeClock:
    """Manually advanced clock shared by every component of a test."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeChannel:
    """Messaging channel recording every message instead of sending it."""

    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.sent: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def send(self, recipient_id: str, message_body: str) -> bool:
        with self._lock:
            self.sent.append((recipient_id, message_body))
        return self.result


class FakeEmailSender:
    """Email sender stand-in; ``result`` may be a bool or an exception to raise."""

    def __init__(self, result: bool | Exception = True) -> None:
        self.result = result
        self.calls: list[tuple[str, str, str]] = []

    def __call__(self, subject: str, html_content: str, recipient: str) -> bool:
        self.calls.append((subject, html_content, recipient))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@dataclass
class Seeded:
    caregiver_id: int
    subject_id: int


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture()
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'checkins.db'}")
    initialize_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture()
def session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture()
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture()
def email_sender() -> FakeEmailSender:
    return FakeEmailSender()


@pytest.fixture()
def dispatcher(channel, clock) -> NotificationDispatcher:
    return NotificationDispatcher(
        messaging_channel=channel,
        clock=clock,
        response_base_url="https://app.example.com",
    )


@pytest.fixture()
def notifier(email_sender, clock) -> EscalationNotifier:
    return EscalationNotifier(
        email_sender=email_sender, clock=clock, claim_ttl=timedelta(minutes=10)
    )


@pytest.fixture()
def scheduler(session_factory, dispatcher, notifier, clock) -> RetryScheduler:
    return RetryScheduler(
        session_factory=session_factory,
        dispatcher=dispatcher,
        escalation_notifier=notifier,
        clock=clock,
        tick_seconds=1,
        grace_period=timedelta(minutes=30),
        max_workers=1,
    )


@pytest.fixture()
def make_subject(session_factory):
    """Return a helper creating a caregiver, a subject and optionally a policy."""

    def _make(
        *,
        name: str = "Hanako",
        email: str | None = "family@example.com",
        contact_id: str | None = "U-hanako",
        max_retries: int | None = 2,
        retry_interval_minutes: int | None = 30,
        with_policy: bool = True,
        escalation_enabled: bool = True,
        is_active: bool = True,
        caregiver_id: int | None = None,
    ) -> Seeded:
        with session_factory() as session:
            if caregiver_id is None:
                caregiver = CaregiverModel(name=f"Family of {name}", email=email)
                session.add(caregiver)
                session.flush()
                caregiver_id = caregiver.id
                if with_policy:
                    session.add(
                        RetryPolicyModel(
                            owner_id=caregiver_id,
                            max_retries=max_retries,
                            retry_interval_minutes=retry_interval_minutes,
                            escalation_enabled=escalation_enabled,
                        )
                    )
            subject = SubjectModel(
                owner_id=caregiver_id,
                name=name,
                contact_id=contact_id,
                is_active=is_active,
            )
            session.add(subject)
            session.commit()
            return Seeded(caregiver_id=caregiver_id, subject_id=subject.id)

    return _make


@pytest.fixture()
def api_app(session_factory, channel, email_sender):
    from main import create_app

    app = create_app(
        session_factory=session_factory,
        messaging_channel=channel,
        email_sender=email_sender,
    )

    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    return app


@pytest.fixture()
def client(api_app):
    with TestClient(api_app) as test_client:
        yield test_client


@pytest.fixture()
def auth_headers():
    def _headers(caregiver_id: int) -> dict[str, str]:
        token = create_access_token({"sub": str(caregiver_id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def internal_headers() -> dict[str, str]:
    return {"X-Internal-Key": "internal-test-key"}
