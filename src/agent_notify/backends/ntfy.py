"""
ntfy backend — push notifications through an ntfy server.

Publishes the message body to ``<server>/<topic>`` with the title,
priority and tags carried in headers.
"""

from __future__ import annotations

import logging

import httpx

from agent_notify.backend import NotificationBackend
from agent_notify.errors import BackendError
from agent_notify.events import NotificationContext, NotificationEvent

logger = logging.getLogger(__name__)

DEFAULT_SERVER = "https://ntfy.sh"

_EVENT_PRIORITY = {
    NotificationEvent.SESSION_ERROR: "high",
    NotificationEvent.PERMISSION_ASKED: "high",
    NotificationEvent.QUESTION_ASKED: "high",
}

_EVENT_TAGS = {
    NotificationEvent.SESSION_IDLE: "white_check_mark",
    NotificationEvent.SUBAGENT_COMPLETE: "robot",
    NotificationEvent.SESSION_ERROR: "rotating_light",
    NotificationEvent.PERMISSION_ASKED: "lock",
    NotificationEvent.QUESTION_ASKED: "question",
}


class NtfyBackend(NotificationBackend):
    """ntfy.sh (or self-hosted ntfy) notification backend."""

    name: str = "ntfy"

    def __init__(
        self,
        topic: str,
        *,
        server: str = DEFAULT_SERVER,
        token: str = "",
        priority: str = "",
        timeout: float = 30.0,
    ) -> None:
        if not topic:
            raise BackendError("ntfy backend requires a topic")
        self.topic = topic
        self.server = server.rstrip("/")
        self.token = token
        self.priority = priority
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def url(self) -> str:
        return f"{self.server}/{self.topic}"

    async def connect(self) -> None:
        self._client = httpx.AsyncClient(timeout=self.timeout)

    async def disconnect(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _headers(self, context: NotificationContext) -> dict[str, str]:
        headers = {
            "Title": context.title,
            "Priority": self.priority or _EVENT_PRIORITY.get(context.event, "default"),
            "Tags": _EVENT_TAGS.get(context.event, "bell"),
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def send(self, context: NotificationContext) -> None:
        client = self._client or httpx.AsyncClient(timeout=self.timeout)
        try:
            resp = await client.post(
                self.url,
                content=context.message.encode(),
                headers=self._headers(context),
            )
            resp.raise_for_status()
            logger.debug("ntfy notification sent to %s", self.url)
        except httpx.HTTPError as exc:
            raise BackendError(f"ntfy delivery failed to {self.url}") from exc
        finally:
            if not self._client:
                await client.aclose()
