"""Domain entity representing a monitored individual."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Subject:
    """Person expected to confirm their wellbeing every day."""

    id: int | None
    owner_id: int
    name: str
    contact_id: str | None
    is_active: bool = True
    last_response_at: datetime | None = None


__all__ = ["Subject"]
