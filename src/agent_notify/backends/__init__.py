"""
Reference delivery backends and a factory that builds one from config.

Heavier backends are imported lazily so only the one in use is loaded.
"""

from __future__ import annotations

from typing import Any

from agent_notify.backend import NotificationBackend
from agent_notify.errors import BackendError

BACKEND_NAMES = ("console", "webhook", "ntfy")


def create_backend(name: str, backend_config: dict[str, Any] | None = None) -> NotificationBackend:
    """Build a backend from its name and the opaque ``backend`` config section."""
    options = backend_config or {}

    if name == "console":
        from agent_notify.backends.console import ConsoleBackend

        return ConsoleBackend()
    if name == "webhook":
        from agent_notify.backends.webhook import WebhookBackend

        url = options.get("url", "")
        if not url:
            raise BackendError("webhook backend requires a url")
        return WebhookBackend(
            url=url,
            secret=options.get("secret", ""),
            headers=options.get("headers"),
        )
    if name == "ntfy":
        from agent_notify.backends.ntfy import DEFAULT_SERVER, NtfyBackend

        return NtfyBackend(
            topic=options.get("topic", ""),
            server=options.get("server", DEFAULT_SERVER),
            token=options.get("token", ""),
            priority=options.get("priority", ""),
        )
    raise BackendError(f"Unknown backend: {name!r} (expected one of {', '.join(BACKEND_NAMES)})")


__all__ = ["BACKEND_NAMES", "create_backend"]
