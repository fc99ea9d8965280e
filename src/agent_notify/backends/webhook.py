"""
Generic webhook backend — POST the notification as JSON to any URL.

The body is a flat object: event, title, message and the event metadata.
Supports HMAC signatures and configurable headers.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from typing import Any

import httpx

from agent_notify.backend import NotificationBackend
from agent_notify.errors import BackendError
from agent_notify.events import NotificationContext

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Notify-Signature"


def build_payload(context: NotificationContext) -> dict[str, Any]:
    metadata = context.metadata
    payload: dict[str, Any] = {
        "event": context.event.value,
        "title": context.title,
        "message": context.message,
        "project": metadata.project_name,
        "session_id": metadata.session_id,
        "is_subagent": metadata.is_subagent,
        "timestamp": metadata.timestamp,
    }
    # Optional fields only appear when the event carries them
    if metadata.error is not None:
        payload["error"] = metadata.error
    if metadata.permission_type is not None:
        payload["permission_type"] = metadata.permission_type
    if metadata.permission_patterns is not None:
        payload["permission_patterns"] = list(metadata.permission_patterns)
    return payload


class WebhookBackend(NotificationBackend):
    """Generic webhook notification backend."""

    name: str = "webhook"

    def __init__(
        self,
        url: str,
        *,
        secret: str = "",
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.url = url
        self.secret = secret
        self.headers = headers or {}
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        self._client = httpx.AsyncClient(timeout=self.timeout)

    async def disconnect(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def sign(self, body: str) -> str:
        digest = hmac.new(self.secret.encode(), body.encode(), hashlib.sha256).hexdigest()
        return f"sha256={digest}"

    def _headers(self, body: str) -> dict[str, str]:
        headers = {"Content-Type": "application/json", **self.headers}
        if self.secret:
            headers[SIGNATURE_HEADER] = self.sign(body)
        return headers

    async def send(self, context: NotificationContext) -> None:
        body = json.dumps(build_payload(context))
        client = self._client or httpx.AsyncClient(timeout=self.timeout)
        try:
            resp = await client.post(self.url, content=body, headers=self._headers(body))
            resp.raise_for_status()
            logger.debug("Webhook %s notification sent to %s", context.event.value, self.url)
        except httpx.HTTPError as exc:
            raise BackendError(f"Webhook delivery failed to {self.url}") from exc
        finally:
            if not self._client:
                await client.aclose()
