import logging
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from app.application.use_cases.checkins import (
    EmailSender,
    EscalationNotifier,
    NotificationDispatcher,
    RetryScheduler,
)
from app.config import get_settings
from app.infrastructure.database import SessionLocal, initialize_database
from app.infrastructure.email import send_email
from app.infrastructure.messaging import LineMessagingChannel, MessagingChannel
from app.interfaces.api.routes import register_routes

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the tables, run the retry scheduler and release resources on shutdown."""

    settings = get_settings()
    configure_logging(settings.log_level)
    with app.state.session_factory() as session:
        bind = session.get_bind()
    initialize_database(bind)

    scheduler: RetryScheduler = app.state.retry_scheduler
    if settings.scheduler_enabled:
        scheduler.start()
    else:
        logger.info("Retry scheduler disabled by configuration")
    try:
        yield
    finally:
        await scheduler.stop()
        bind.dispose()


def create_app(
    *,
    session_factory: Callable[[], Session] = SessionLocal,
    messaging_channel: MessagingChannel | None = None,
    email_sender: EmailSender = send_email,
) -> FastAPI:
    """Build the FastAPI application and wire the check-in components."""

    settings = get_settings()
    app = FastAPI(title="Daily Check-in Engine", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    dispatcher = NotificationDispatcher(
        messaging_channel=messaging_channel or LineMessagingChannel(),
    )
    app.state.session_factory = session_factory
    app.state.dispatcher = dispatcher
    app.state.retry_scheduler = RetryScheduler(
        session_factory=session_factory,
        dispatcher=dispatcher,
        escalation_notifier=EscalationNotifier(email_sender=email_sender),
    )

    register_routes(app)
    return app


app = create_app()
