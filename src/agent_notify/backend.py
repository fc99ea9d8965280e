"""
NotificationBackend — abstract base class for delivery sinks.

Each backend (console, webhook, ntfy, ...) inherits from this ABC and
implements `send()`. The pipeline calls `send()` at most once per host
event and never lets a backend failure escape to the host.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from agent_notify.events import NotificationContext


class NotificationBackend(ABC):
    """Base class for notification backends."""

    name: str = "unnamed"

    @abstractmethod
    async def send(self, context: NotificationContext) -> None:
        """Deliver one resolved notification."""
        ...

    async def connect(self) -> None:
        """Open long-lived resources (e.g. an HTTP client). No-op by default."""

    async def disconnect(self) -> None:
        """Release resources opened by `connect()`. No-op by default."""
