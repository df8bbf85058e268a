"""Repository implementations for infrastructure layer."""

from .alert_repository import AlertRepository
from .caregiver_repository import CaregiverRepository
from .daily_notification_repository import DailyNotificationRepository
from .retry_policy_repository import RetryPolicyRepository
from .subject_repository import SubjectRepository

__all__ = [
    "AlertRepository",
    "CaregiverRepository",
    "DailyNotificationRepository",
    "RetryPolicyRepository",
    "SubjectRepository",
]
