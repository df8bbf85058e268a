"""Messaging channel used to push check-in prompts to subjects via LINE."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from app.config import get_settings
from app.domain.exceptions import DispatchFailure

logger = logging.getLogger(__name__)

_PUSH_PATH = "/v2/bot/message/push"


class MessagingChannel(Protocol):
    """Anything able to deliver a text message to a subject's contact id."""

    def send(self, recipient_id: str, message_body: str) -> bool: ...


class LineMessagingChannel:
    """Push text messages through the LINE Messaging API."""

    def __init__(
        self,
        *,
        access_token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._access_token = access_token or settings.line_channel_access_token
        self._base_url = (base_url or settings.line_api_base_url).rstrip("/")
        self._timeout = timeout or settings.external_send_timeout_seconds
        self._transport = transport

    def send(self, recipient_id: str, message_body: str) -> bool:
        """Send ``message_body`` to ``recipient_id``. Failures are logged, never raised."""

        if not self._access_token:
            logger.info("LINE configuration incomplete; skipping message delivery")
            return False

        try:
            self._push(recipient_id, message_body)
        except DispatchFailure as exc:
            logger.error("LINE push to %s failed: %s", recipient_id, exc)
            return False
        return True

    def _push(self, recipient_id: str, message_body: str) -> None:
        payload = {
            "to": recipient_id,
            "messages": [{"type": "text", "text": message_body}],
        }
        headers = {"Authorization": f"Bearer {self._access_token}"}

        try:
            with httpx.Client(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                response = client.post(_PUSH_PATH, json=payload, headers=headers)
        except httpx.TimeoutException as exc:
            raise DispatchFailure(f"timed out after {self._timeout} seconds") from exc
        except httpx.HTTPError as exc:
            raise DispatchFailure(str(exc)) from exc

        if not response.is_success:
            raise DispatchFailure(
                f"status {response.status_code}: {_extract_line_error_details(response)}"
            )


def _extract_line_error_details(response: httpx.Response) -> str:
    """Return the ``message`` field of a LINE error payload when available."""

    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or "<empty body>"
    if isinstance(body, dict):
        message = body.get("message")
        details = body.get("details")
        if message and isinstance(details, list) and details:
            described = "; ".join(
                str(item.get("message")) for item in details if isinstance(item, dict)
            )
            return f"{message} ({described})"
        if message:
            return str(message)
    return str(body)


__all__ = ["LineMessagingChannel", "MessagingChannel"]
