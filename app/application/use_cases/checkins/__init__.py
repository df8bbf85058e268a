"""Use cases driving the daily check-in lifecycle."""

from .daily_trigger import (
    TriggerResult,
    send_daily_checkin,
    send_daily_checkins,
    send_test_checkin,
)
from .dispatch import NotificationDispatcher
from .escalation import EmailSender, EscalationNotifier
from .messages import build_checkin_message, build_response_url, urgency_for_level
from .record_response import ResponseResult, ResponseStatus, record_response
from .retry_scheduler import RetryScheduler, SweepDecision, SweepSummary, plan_next_step

__all__ = [
    "EmailSender",
    "EscalationNotifier",
    "NotificationDispatcher",
    "ResponseResult",
    "ResponseStatus",
    "RetryScheduler",
    "SweepDecision",
    "SweepSummary",
    "TriggerResult",
    "build_checkin_message",
    "build_response_url",
    "plan_next_step",
    "record_response",
    "send_daily_checkin",
    "send_daily_checkins",
    "send_test_checkin",
    "urgency_for_level",
]
