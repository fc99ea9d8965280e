"""
Notification events — the data flowing from host events to backends.

Defines the canonical event kinds, the metadata attached to each
occurrence, and the NotificationContext that backends consume. Also
holds the extractors that turn loosely-typed host event properties
into metadata without ever raising.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class NotificationEvent(str, Enum):
    SESSION_IDLE = "session.idle"
    SUBAGENT_COMPLETE = "subagent.complete"
    SESSION_ERROR = "session.error"
    PERMISSION_ASKED = "permission.asked"
    QUESTION_ASKED = "question.asked"


# Raw host event type -> canonical kind. Host events outside this map are dropped.
_RAW_EVENT_KINDS: dict[str, NotificationEvent] = {
    "session.idle": NotificationEvent.SESSION_IDLE,
    "session.error": NotificationEvent.SESSION_ERROR,
    "permission.asked": NotificationEvent.PERMISSION_ASKED,
    "permission.updated": NotificationEvent.PERMISSION_ASKED,
}

# Kinds whose child-session occurrences go through sub-agent handling
SUBAGENT_SENSITIVE = frozenset(
    {NotificationEvent.SESSION_IDLE, NotificationEvent.SESSION_ERROR}
)

QUESTION_TOOL = "question"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class EventMetadata(BaseModel):
    """Per-occurrence metadata. Built once, never mutated."""

    model_config = ConfigDict(frozen=True)

    session_id: str = ""
    is_subagent: bool = False
    project_name: str = ""
    timestamp: str = Field(default_factory=_now)
    error: Optional[str] = None
    permission_type: Optional[str] = None
    permission_patterns: Optional[list[str]] = None


class NotificationContext(BaseModel):
    """What a backend receives: the event kind, resolved content and metadata."""

    model_config = ConfigDict(frozen=True)

    event: NotificationEvent
    title: str
    message: str
    metadata: EventMetadata


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def classify_raw_event(raw: Any) -> NotificationEvent | None:
    """Map a raw host event to its canonical kind, or None if unrecognized."""
    if not isinstance(raw, Mapping):
        return None
    event_type = raw.get("type")
    if not isinstance(event_type, str):
        return None
    return _RAW_EVENT_KINDS.get(event_type)


def is_question_tool(tool_input: Any) -> bool:
    return isinstance(tool_input, Mapping) and tool_input.get("tool") == QUESTION_TOOL


# ---------------------------------------------------------------------------
# Metadata extraction
# ---------------------------------------------------------------------------


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _str_or_empty(value: Any) -> str:
    return value if isinstance(value, str) else ""


def session_id_of(properties: Any) -> str:
    """Session id from host event properties; empty when absent or not a string."""
    return _str_or_empty(_as_mapping(properties).get("sessionID"))


def extract_session_idle_metadata(
    properties: Any, project_name: str, *, is_subagent: bool = False
) -> EventMetadata:
    return EventMetadata(
        session_id=session_id_of(properties),
        project_name=project_name,
        is_subagent=is_subagent,
    )


def _error_message(error: Any) -> str | None:
    # Host errors look like {"name": "UnknownError", "data": {"message": "..."}}
    message = _as_mapping(_as_mapping(error).get("data")).get("message")
    return message if isinstance(message, str) else None


def extract_session_error_metadata(
    properties: Any, project_name: str, *, is_subagent: bool = False
) -> EventMetadata:
    props = _as_mapping(properties)
    return EventMetadata(
        session_id=session_id_of(props),
        project_name=project_name,
        is_subagent=is_subagent,
        error=_error_message(props.get("error")),
    )


def _patterns(value: Any) -> list[str] | None:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    return None


def extract_permission_metadata(properties: Any, project_name: str) -> EventMetadata:
    """Permission metadata; a pattern list with any non-string entry is omitted."""
    props = _as_mapping(properties)
    return EventMetadata(
        session_id=session_id_of(props),
        project_name=project_name,
        permission_type=_str_or_empty(props.get("type")),
        permission_patterns=_patterns(props.get("pattern")),
    )


def extract_question_metadata(tool_input: Any, project_name: str) -> EventMetadata:
    return EventMetadata(
        session_id=session_id_of(tool_input),
        project_name=project_name,
    )


def build_template_variables(
    event: NotificationEvent, metadata: EventMetadata
) -> dict[str, str]:
    """The fixed variable set available to title/message templates."""
    return {
        "event": event.value,
        "time": metadata.timestamp,
        "project": metadata.project_name,
        "session_id": metadata.session_id,
        "error": metadata.error or "",
        "permission_type": metadata.permission_type or "",
        "permission_patterns": ",".join(metadata.permission_patterns or []),
    }
