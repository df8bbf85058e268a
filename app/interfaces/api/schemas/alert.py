"""Pydantic models describing caregiver alerts."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class AlertMarkReadRequest(BaseModel):
    """Payload used to mark a batch of alerts as read."""

    ids: list[int] = Field(..., min_length=1, description="Alert identifiers")

    def unique_ids(self) -> list[int]:
        """Return the identifiers without duplicates, preserving order."""

        return list(dict.fromkeys(self.ids))


class AlertMarkReadResponse(BaseModel):
    updated: int


class AlertRead(BaseModel):
    """Representation of an alert delivered to the caregiver."""

    id: int
    owner_id: int
    event_type: str
    title: str
    message: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    read_at: datetime | None = None


__all__ = ["AlertMarkReadRequest", "AlertMarkReadResponse", "AlertRead"]
