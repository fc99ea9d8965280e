"""
NotificationPipeline — decides whether a host event becomes a notification.

Per host event: global switch, classification, per-kind switch, sub-agent
handling, rate limiting, content resolution, then at most one backend
call. Anything that stops an event along the way drops it silently (with
a debug log); backend failures are logged and never reach the host.
"""

from __future__ import annotations

import functools
import logging
import os
from typing import Any

from agent_notify.backend import NotificationBackend
from agent_notify.config import NotificationConfig
from agent_notify.defaults import get_default_message, get_default_title
from agent_notify.events import (
    EventMetadata,
    NotificationContext,
    NotificationEvent,
    build_template_variables,
    classify_raw_event,
    extract_permission_metadata,
    extract_question_metadata,
    extract_session_error_metadata,
    extract_session_idle_metadata,
    is_question_tool,
    session_id_of,
)
from agent_notify.rate_limiter import RateLimiter
from agent_notify.session import SessionLookup, classify_session, is_subagent
from agent_notify.templates import CommandExecutor, ShellExecutor, resolve_field

logger = logging.getLogger(__name__)

Classified = tuple[NotificationEvent, EventMetadata]


def project_name_from(directory: str) -> str:
    return os.path.basename(os.path.normpath(directory)) if directory else ""


class NotificationPipeline:
    """Turns raw host events into at most one backend call each."""

    def __init__(
        self,
        backend: NotificationBackend,
        config: NotificationConfig,
        *,
        session_lookup: SessionLookup,
        directory: str = "",
        executor: CommandExecutor | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self.backend = backend
        self.config = config
        self.session_lookup = session_lookup
        self.project_name = project_name_from(directory)
        self.executor = executor or ShellExecutor(cwd=directory or None)
        if rate_limiter is None and config.cooldown is not None:
            rate_limiter = RateLimiter.from_config(config.cooldown)
        self.rate_limiter = rate_limiter

    # ------------------------------------------------------------------
    # Host entry points
    # ------------------------------------------------------------------

    async def handle_event(self, raw_event: Any) -> None:
        """Process one raw host event."""
        if not self.config.enabled:
            logger.debug("Notifications disabled, dropping event")
            return

        kind = classify_raw_event(raw_event)
        if kind is None:
            return

        properties = raw_event.get("properties")
        if kind is NotificationEvent.SESSION_IDLE:
            classified = await self._classify_idle(properties)
        elif kind is NotificationEvent.SESSION_ERROR:
            classified = await self._classify_error(properties)
        else:
            classified = self._classify_permission(properties)

        if classified is not None:
            await self._deliver(*classified)

    async def handle_tool_before(self, tool_input: Any) -> None:
        """Process a tool-execution hook; only the question tool notifies."""
        if not self.config.enabled or not is_question_tool(tool_input):
            return
        kind = NotificationEvent.QUESTION_ASKED
        if not self.config.events.enabled_for(kind):
            logger.debug("%s disabled, dropping", kind.value)
            return
        await self._deliver(kind, extract_question_metadata(tool_input, self.project_name))

    async def aclose(self) -> None:
        """Cancel trailing-edge notifications that have not fired yet."""
        if self.rate_limiter is not None:
            await self.rate_limiter.aclose()

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    async def _classify_idle(self, properties: Any) -> Classified | None:
        events = self.config.events
        mode = self.config.subagent_notifications

        # Switch checks come before the session lookup, which is the expensive part
        candidates = [NotificationEvent.SESSION_IDLE]
        if mode == "separate":
            candidates.append(NotificationEvent.SUBAGENT_COMPLETE)
        if not any(events.enabled_for(candidate) for candidate in candidates):
            logger.debug("session.idle disabled, dropping")
            return None

        kind = await classify_session(self.session_lookup, session_id_of(properties), mode)
        if kind is None:
            logger.debug("Idle event from sub-agent session suppressed")
            return None
        if not events.enabled_for(kind):
            logger.debug("%s disabled, dropping", kind.value)
            return None

        metadata = extract_session_idle_metadata(
            properties,
            self.project_name,
            is_subagent=kind is NotificationEvent.SUBAGENT_COMPLETE,
        )
        return kind, metadata

    async def _classify_error(self, properties: Any) -> Classified | None:
        kind = NotificationEvent.SESSION_ERROR
        if not self.config.events.enabled_for(kind):
            logger.debug("session.error disabled, dropping")
            return None

        mode = self.config.subagent_notifications
        child = False
        if mode != "always":
            child = await is_subagent(self.session_lookup, session_id_of(properties))
            if child and mode == "never":
                logger.debug("Error event from sub-agent session suppressed")
                return None

        metadata = extract_session_error_metadata(
            properties, self.project_name, is_subagent=child
        )
        return kind, metadata

    def _classify_permission(self, properties: Any) -> Classified | None:
        kind = NotificationEvent.PERMISSION_ASKED
        if not self.config.events.enabled_for(kind):
            logger.debug("permission.asked disabled, dropping")
            return None
        return kind, extract_permission_metadata(properties, self.project_name)

    # ------------------------------------------------------------------
    # Rate limiting, content, delivery
    # ------------------------------------------------------------------

    async def _deliver(self, kind: NotificationEvent, metadata: EventMetadata) -> None:
        limiter = self.rate_limiter
        if limiter is not None and not limiter.disabled and limiter.edge == "trailing":
            limiter.debounce(kind.value, functools.partial(self._resolve_and_send, kind, metadata))
            return
        if limiter is not None and not limiter.should_allow(kind.value):
            logger.debug("%s rate limited, dropping", kind.value)
            return
        await self._resolve_and_send(kind, metadata)

    async def build_context(
        self, kind: NotificationEvent, metadata: EventMetadata
    ) -> NotificationContext:
        """Resolve title and message from configured templates or built-in text."""
        template = self.config.template_for(kind)
        variables = build_template_variables(kind, metadata)

        title = await resolve_field(
            self.executor,
            template.title_cmd if template else None,
            variables,
            get_default_title(kind),
        )
        message = await resolve_field(
            self.executor,
            template.message_cmd if template else None,
            variables,
            get_default_message(kind),
        )
        return NotificationContext(event=kind, title=title, message=message, metadata=metadata)

    async def _resolve_and_send(self, kind: NotificationEvent, metadata: EventMetadata) -> None:
        context = await self.build_context(kind, metadata)
        await self._safe_send(context)

    async def _safe_send(self, context: NotificationContext) -> None:
        """Send with error handling so a broken backend never reaches the host."""
        try:
            await self.backend.send(context)
        except Exception:
            logger.exception(
                "Failed to send %s notification via %s", context.event.value, self.backend.name
            )

