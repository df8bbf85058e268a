"""Email channel used to alert caregivers, backed by SendGrid."""

from __future__ import annotations

import html
import json
import logging
from datetime import datetime, timedelta
from typing import Any

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from app.config import get_settings

logger = logging.getLogger(__name__)


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    if body in (None, ""):
        return None

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    parsed: Any = body
    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body

    if isinstance(parsed, dict):
        messages: list[str] = []
        for item in parsed.get("errors") or []:
            if not isinstance(item, dict) or not item.get("message"):
                continue
            help_link = item.get("help")
            messages.append(
                f"{item['message']} (help: {help_link})" if help_link else str(item["message"])
            )
        if messages:
            return "; ".join(messages)
        try:
            return json.dumps(parsed)
        except (TypeError, ValueError):
            return None

    if isinstance(parsed, list):
        return "; ".join(str(item) for item in parsed)

    return None


def _log_sendgrid_failure(status_code: Any, body: Any, exc: Exception | None = None) -> None:
    """Log a failed SendGrid call with whatever details the provider returned."""

    details = _extract_sendgrid_error_details(body)
    if status_code and details:
        logger.error("SendGrid API request failed with status %s: %s", status_code, details)
    elif status_code:
        logger.error("SendGrid API request failed with status %s", status_code)
    elif details:
        logger.error("SendGrid API request failed: %s", details)
    elif exc is not None:
        logger.error("Error sending email via SendGrid: %s", exc)
    else:
        logger.error("SendGrid API request failed without details")


def send_email(subject: str, html_content: str, recipient: str) -> bool:
    """Send an email using the configured SendGrid credentials."""

    settings = get_settings()
    if not (settings.sendgrid_api_key and settings.sendgrid_sender):
        logger.info("SendGrid configuration incomplete; skipping email delivery")
        return False

    message = Mail(
        from_email=settings.sendgrid_sender,
        to_emails=recipient,
        subject=subject,
        html_content=html_content,
    )

    try:
        client = SendGridAPIClient(settings.sendgrid_api_key)
        http_client = getattr(client, "client", None)
        if http_client is not None:
            http_client.timeout = settings.external_send_timeout_seconds
        response = client.send(message)
    except Exception as exc:  # pragma: no cover - network failures depend on environment
        _log_sendgrid_failure(getattr(exc, "status_code", None), getattr(exc, "body", None), exc)
        return False

    status_code = getattr(response, "status_code", None)
    if not isinstance(status_code, int) or not 200 <= status_code < 300:
        _log_sendgrid_failure(status_code, getattr(response, "body", None))
        return False

    return True


def _describe_elapsed(elapsed: timedelta) -> str:
    minutes = max(int(elapsed.total_seconds() // 60), 0)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours} h {minutes} min"
    return f"{minutes} min"


def build_escalation_email(
    subject_name: str, last_prompt_at: datetime | None, elapsed: timedelta
) -> tuple[str, str]:
    """Return ``(subject line, html body)`` of the no-response escalation email."""

    name = html.escape(subject_name)
    last_prompt = (
        last_prompt_at.strftime("%Y-%m-%d %H:%M") if last_prompt_at else "unknown"
    )
    subject_line = f"No check-in from {subject_name} today"
    html_content = "".join(
        (
            "<p>Hello,</p>",
            f"<p>We have not received today's check-in from <strong>{name}</strong>.</p>",
            f"<p><strong>Last prompt sent:</strong> {last_prompt}<br>",
            f"<strong>Time without response:</strong> {_describe_elapsed(elapsed)}</p>",
            "<p>All reminders for today have been sent. Please contact them to make sure they are well.</p>",
        )
    )
    return subject_line, html_content


def send_escalation_email(
    recipient: str,
    subject_name: str,
    last_prompt_at: datetime | None,
    elapsed: timedelta,
) -> bool:
    """Tell a caregiver that ``subject_name`` did not answer any of today's prompts."""

    subject_line, html_content = build_escalation_email(subject_name, last_prompt_at, elapsed)
    return send_email(subject_line, html_content, recipient)


__all__ = ["build_escalation_email", "send_email", "send_escalation_email"]
