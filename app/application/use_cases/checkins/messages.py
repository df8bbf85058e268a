"""Compose the text of check-in prompts."""

from __future__ import annotations

from datetime import datetime

from app.application.use_cases.create_greeting import create_greeting
from app.domain.entities import LEVEL_TEST, ensure_valid_level, retry_number
from app.utils import ensure_app_timezone


def urgency_for_level(level: str) -> str:
    """Return the urgency line for ``level`` (empty for the scheduled prompt)."""

    ensure_valid_level(level)
    if level == LEVEL_TEST:
        return "[Test message] This prompt was sent manually by an operator."
    number = retry_number(level)
    if number is None:
        return ""
    return f"⚠️ This is check number {number + 1} for today."


def build_response_url(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/checkins/{token}"


def build_checkin_message(
    subject_name: str, *, level: str, sent_at: datetime, response_url: str
) -> str:
    """Return the prompt body sent to ``subject_name`` at ``sent_at``."""

    local_time = ensure_app_timezone(sent_at)
    assert local_time is not None
    greeting = create_greeting(local_time)
    urgency = urgency_for_level(level)
    date_label = f"{local_time:%B} {local_time.day}"

    lines = [f"{greeting.message}, {subject_name}! {greeting.emoji}"]
    if urgency:
        lines.append(urgency)
    lines.append("")
    if retry_number(level) is None:
        lines.append(f"It's time for today's check-in ({date_label}).")
    else:
        lines.append(f"We haven't heard from you yet today ({date_label}).")
    lines.extend(
        [
            "How are you doing?",
            "",
            "Please tap the link below to let your family know you're well:",
            response_url,
            "",
            f"Your family is looking forward to hearing from you, {subject_name} 💝",
        ]
    )
    return "\n".join(lines)


__all__ = ["build_checkin_message", "build_response_url", "urgency_for_level"]
