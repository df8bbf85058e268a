"""Public helpers for emitting caregiver alerts."""

from .events import notify_escalation_sent, notify_no_response, notify_response_received

__all__ = [
    "notify_escalation_sent",
    "notify_no_response",
    "notify_response_received",
]
