"""
Host plugin adapter.

Wraps a NotificationPipeline in the shape an agent host expects: an
async factory that receives the host's capabilities once and returns
the hooks the host calls for every event and tool execution.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from agent_notify.backend import NotificationBackend
from agent_notify.config import NotificationConfig, load_config
from agent_notify.pipeline import NotificationPipeline
from agent_notify.session import SessionLookup
from agent_notify.templates import CommandExecutor

logger = logging.getLogger(__name__)


@dataclass
class PluginInput:
    """Capabilities the host hands to a plugin."""

    session_lookup: SessionLookup
    directory: str = ""
    executor: Optional[CommandExecutor] = None


class PluginHooks:
    """Hooks registered with the host."""

    def __init__(self, pipeline: NotificationPipeline) -> None:
        self.pipeline = pipeline

    async def event(self, payload: Any) -> None:
        """Host event hook; ``payload`` is ``{"event": {...}}``."""
        await self.pipeline.handle_event(_unwrap_event(payload))

    async def tool_execute_before(self, tool_input: Any, output: Any = None) -> None:
        await self.pipeline.handle_tool_before(tool_input)


Plugin = Callable[[PluginInput], Awaitable[PluginHooks]]


def _unwrap_event(payload: Any) -> Any:
    # Accept the bare event as well as the {"event": ...} envelope
    if isinstance(payload, Mapping) and "type" not in payload:
        return payload.get("event")
    return payload


def create_notification_plugin(
    backend: NotificationBackend,
    *,
    backend_config_key: str | None = None,
    config: NotificationConfig | None = None,
) -> Plugin:
    """Build a host plugin that delivers notifications through ``backend``.

    Config is loaded once per plugin instantiation from
    ``notification-<backend_config_key>.json`` (or ``notification.json``)
    unless one is passed in.
    """

    async def plugin(plugin_input: PluginInput) -> PluginHooks:
        plugin_config = config if config is not None else load_config(backend_config_key)
        pipeline = NotificationPipeline(
            backend,
            plugin_config,
            session_lookup=plugin_input.session_lookup,
            directory=plugin_input.directory,
            executor=plugin_input.executor,
        )
        logger.debug("Notification plugin ready for %s", pipeline.project_name or "<no project>")
        return PluginHooks(pipeline)

    return plugin
