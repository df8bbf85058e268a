"""ORM models used by the application infrastructure."""

from .alert import AlertModel
from .caregiver import CaregiverModel
from .daily_notification import DailyNotificationModel, NotificationEntryModel
from .retry_policy import RetryPolicyModel
from .subject import SubjectModel

__all__ = [
    "AlertModel",
    "CaregiverModel",
    "DailyNotificationModel",
    "NotificationEntryModel",
    "RetryPolicyModel",
    "SubjectModel",
]
