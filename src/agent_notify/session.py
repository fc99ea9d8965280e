"""
Session classification — root session or sub-agent (child) session.

A session is a child when the host's session record carries a parent
id. Lookup failures fail open: the session is treated as root so a
transient host error never swallows a legitimate notification.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Optional

from agent_notify.events import NotificationEvent

logger = logging.getLogger(__name__)

# Host capability: fetch the session record for an id.
SessionLookup = Callable[[str], Awaitable[Any]]


def _parent_id(session: Any) -> Optional[str]:
    if session is None:
        return None
    if isinstance(session, Mapping):
        return session.get("parentID") or session.get("parent_id")
    return getattr(session, "parentID", None) or getattr(session, "parent_id", None)


async def is_subagent(lookup: SessionLookup, session_id: str) -> bool:
    """True when ``session_id`` names a child session. Never raises."""
    if not session_id:
        return False
    try:
        session = await lookup(session_id)
    except Exception:
        logger.debug("Session lookup failed for %s, treating as root", session_id, exc_info=True)
        return False
    return bool(_parent_id(session))


async def classify_session(
    lookup: SessionLookup,
    session_id: str,
    mode: str,
) -> NotificationEvent | None:
    """Classify an idle session by sub-agent mode.

    ``always`` never looks the session up. ``never`` suppresses children
    (returns None). ``separate`` reports children as SUBAGENT_COMPLETE.
    """
    if mode == "always":
        return NotificationEvent.SESSION_IDLE

    child = await is_subagent(lookup, session_id)
    if not child:
        return NotificationEvent.SESSION_IDLE
    if mode == "separate":
        return NotificationEvent.SUBAGENT_COMPLETE
    return None
