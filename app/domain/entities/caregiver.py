"""Domain entity representing the account holder responsible for subjects."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Caregiver:
    """Owner of one or more subjects and recipient of escalations."""

    id: int | None
    name: str
    email: str | None
    is_active: bool = True


__all__ = ["Caregiver"]
