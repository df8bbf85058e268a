"""Domain entities exposed by the application."""

from .alert import ALERT_ESCALATION, ALERT_NO_RESPONSE, ALERT_RESPONSE, Alert
from .caregiver import Caregiver
from .daily_notification import (
    LEVEL_SCHEDULED,
    LEVEL_TEST,
    RECORD_STATUS_ADMIN_NOTIFIED,
    RECORD_STATUS_EXPIRED,
    RECORD_STATUS_PENDING,
    RECORD_STATUS_RESPONDED,
    DailyNotification,
    NotificationEntry,
    ResponseRecord,
    current_status,
    ensure_valid_level,
    entry_status,
    is_retry_level,
    retry_level,
    retry_number,
)
from .greeting import Greeting
from .retry_policy import RetryPolicy
from .subject import Subject

__all__ = [
    "ALERT_ESCALATION",
    "ALERT_NO_RESPONSE",
    "ALERT_RESPONSE",
    "Alert",
    "Caregiver",
    "LEVEL_SCHEDULED",
    "LEVEL_TEST",
    "RECORD_STATUS_ADMIN_NOTIFIED",
    "RECORD_STATUS_EXPIRED",
    "RECORD_STATUS_PENDING",
    "RECORD_STATUS_RESPONDED",
    "DailyNotification",
    "NotificationEntry",
    "ResponseRecord",
    "current_status",
    "ensure_valid_level",
    "entry_status",
    "is_retry_level",
    "retry_level",
    "retry_number",
    "Greeting",
    "RetryPolicy",
    "Subject",
]
