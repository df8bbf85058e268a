"""Aggregate application use cases."""

from .checkins import (
    EscalationNotifier,
    NotificationDispatcher,
    RetryScheduler,
    record_response,
    send_daily_checkin,
    send_daily_checkins,
    send_test_checkin,
)
from .create_greeting import create_greeting
from .history import compute_stats, list_history, update_record_notes

__all__ = [
    "EscalationNotifier",
    "NotificationDispatcher",
    "RetryScheduler",
    "compute_stats",
    "create_greeting",
    "list_history",
    "record_response",
    "send_daily_checkin",
    "send_daily_checkins",
    "send_test_checkin",
    "update_record_notes",
]
