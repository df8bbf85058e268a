"""Domain entity representing an in-app notice for a caregiver."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Final

ALERT_NO_RESPONSE: Final[str] = "no_response"
ALERT_RESPONSE: Final[str] = "response"
ALERT_ESCALATION: Final[str] = "escalation"


@dataclass
class Alert:
    """Information message delivered to a specific caregiver."""

    id: int | None
    owner_id: int
    event_type: str
    title: str
    message: str
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    read_at: datetime | None = None


__all__ = ["ALERT_ESCALATION", "ALERT_NO_RESPONSE", "ALERT_RESPONSE", "Alert"]
