"""Errors raised by the check-in engine."""

from __future__ import annotations


class CheckinError(Exception):
    """Base class for check-in engine errors."""


class DispatchFailure(CheckinError):
    """The messaging or email provider rejected or timed out a send."""


class PersistenceConflict(CheckinError):
    """A concurrent writer created the same daily record first."""


class NotificationPersistenceError(CheckinError):
    """Appending a prompt to the daily record failed; the caller may retry."""


class DuplicateRecordError(CheckinError):
    """More than one daily record exists for the same subject and day."""


class PolicyMissing(CheckinError):
    """The caregiver owning a record has no retry policy configured."""


class SubjectNotFoundError(CheckinError):
    """The subject does not exist or is not active."""


class CheckinAlreadySentError(CheckinError):
    """The scheduled prompt for the day was already sent."""


class SweepInProgressError(CheckinError):
    """A retry sweep is already running on this scheduler."""


__all__ = [
    "CheckinAlreadySentError",
    "CheckinError",
    "DispatchFailure",
    "DuplicateRecordError",
    "NotificationPersistenceError",
    "PersistenceConflict",
    "PolicyMissing",
    "SubjectNotFoundError",
    "SweepInProgressError",
]
