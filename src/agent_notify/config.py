"""
Configuration for agent-notify.

Provides:
- Path constants (CONFIG_DIR, CONFIG_FILE)
- Configuration models (NotificationConfig, EventsConfig, CooldownConfig, TemplateConfig)
- Secret substitution for ``{env:NAME}`` and ``{file:path}`` placeholders
- Config loading, parsing and serialization

Validation is lenient per field: a field whose value has the wrong type
falls back to its default instead of failing the whole file. Only
malformed JSON and a non-object top level are errors.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from agent_notify.errors import ConfigNotFoundError, ConfigParseError, ConfigShapeError
from agent_notify.events import NotificationEvent
from agent_notify.rate_limiter import parse_iso8601_duration

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Path constants
# ---------------------------------------------------------------------------

CONFIG_DIR: Path = Path.home() / ".config" / "opencode"
CONFIG_FILE: Path = CONFIG_DIR / "notification.json"

SubagentMode = Literal["always", "never", "separate"]


def get_config_path(backend_key: str | None = None) -> Path:
    """``notification.json``, or ``notification-<key>.json`` for a backend key."""
    if backend_key:
        return CONFIG_DIR / f"notification-{backend_key}.json"
    return CONFIG_DIR / CONFIG_FILE.name


# ---------------------------------------------------------------------------
# Configuration models
# ---------------------------------------------------------------------------


class _LenientModel(BaseModel):
    """Base model whose optional fields fall back to their default on bad input."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("*", mode="wrap")
    @classmethod
    def _fallback_to_default(cls, value: Any, handler: Any, info: ValidationInfo) -> Any:
        try:
            return handler(value)
        except ValidationError:
            field = cls.model_fields[info.field_name]
            if field.is_required():
                raise
            logger.debug(
                "Ignoring invalid value for %s.%s: %r", cls.__name__, info.field_name, value
            )
            return field.get_default(call_default_factory=True)


class EventConfig(_LenientModel):
    enabled: StrictBool = True


class EventsConfig(_LenientModel):
    """Per-kind switches. Every canonical kind is always present."""

    session_idle: EventConfig = Field(default_factory=EventConfig, alias="session.idle")
    subagent_complete: EventConfig = Field(
        default_factory=EventConfig, alias="subagent.complete"
    )
    session_error: EventConfig = Field(default_factory=EventConfig, alias="session.error")
    permission_asked: EventConfig = Field(
        default_factory=EventConfig, alias="permission.asked"
    )
    question_asked: EventConfig = Field(default_factory=EventConfig, alias="question.asked")

    def enabled_for(self, event: NotificationEvent) -> bool:
        entry: EventConfig = getattr(self, event.value.replace(".", "_"))
        return entry.enabled


class CooldownConfig(_LenientModel):
    duration: StrictStr
    edge: Literal["leading", "trailing"] = "leading"

    @field_validator("duration")
    @classmethod
    def _check_duration(cls, value: str) -> str:
        parse_iso8601_duration(value)
        return value

    @property
    def duration_ms(self) -> int:
        return parse_iso8601_duration(self.duration)


class TemplateConfig(_LenientModel):
    """Shell commands whose stdout becomes the title/message. None means built-in text."""

    title_cmd: Optional[StrictStr] = Field(default=None, alias="titleCmd")
    message_cmd: Optional[StrictStr] = Field(default=None, alias="messageCmd")


_KNOWN_EVENTS = frozenset(event.value for event in NotificationEvent)


class NotificationConfig(_LenientModel):
    """Top-level notification configuration, one per pipeline."""

    enabled: StrictBool = True
    subagent_notifications: SubagentMode = Field(
        default="never", alias="subagentNotifications"
    )
    events: EventsConfig = Field(default_factory=EventsConfig)
    cooldown: Optional[CooldownConfig] = None
    templates: Optional[dict[str, TemplateConfig]] = None
    backend: dict[str, Any] = Field(default_factory=dict)

    @field_validator("templates", mode="before")
    @classmethod
    def _known_templates_only(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        return {
            key: entry
            for key, entry in value.items()
            if key in _KNOWN_EVENTS and isinstance(entry, dict)
        }

    def template_for(self, event: NotificationEvent) -> TemplateConfig | None:
        if not self.templates:
            return None
        return self.templates.get(event.value)


# ---------------------------------------------------------------------------
# Secret substitution
# ---------------------------------------------------------------------------

_PLACEHOLDER = re.compile(r"\{(env|file):([^}]*)\}")


def _read_secret_file(raw_path: str, base_dir: Path | None) -> str:
    path = Path(raw_path).expanduser()
    if not path.is_absolute():
        path = (base_dir or Path.cwd()) / path
    try:
        return path.read_text(encoding="utf-8").strip()
    except (OSError, ValueError):
        logger.debug("Could not read secret file %s", path)
        return ""


def _substitute_string(text: str, base_dir: Path | None) -> str:
    def replace(match: re.Match[str]) -> str:
        kind, name = match.group(1), match.group(2)
        if kind == "env":
            return os.environ.get(name, "")
        return _read_secret_file(name, base_dir)

    return _PLACEHOLDER.sub(replace, text)


def substitute_secrets(value: Any, base_dir: Path | None = None) -> Any:
    """Expand placeholders in every string leaf of a parsed JSON tree."""
    if isinstance(value, str):
        return _substitute_string(value, base_dir)
    if isinstance(value, dict):
        return {key: substitute_secrets(item, base_dir) for key, item in value.items()}
    if isinstance(value, list):
        return [substitute_secrets(item, base_dir) for item in value]
    return value


# ---------------------------------------------------------------------------
# Loading / parsing
# ---------------------------------------------------------------------------


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, list):
        return "array"
    if isinstance(value, str):
        return "string"
    if isinstance(value, bool):
        return "boolean"
    return "number"


def parse_config(raw_text: str, base_dir: Path | None = None) -> NotificationConfig:
    """Parse config file text, substitute secrets and merge over defaults."""
    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise ConfigParseError(f"Invalid notification config: {exc}") from exc

    data = substitute_secrets(data, base_dir)
    if not isinstance(data, dict):
        raise ConfigShapeError(
            f"Invalid notification config: expected a JSON object, got {_json_type(data)}"
        )
    return NotificationConfig.model_validate(data)


def load_config(
    backend_key: str | None = None,
    *,
    path: Path | str | None = None,
    missing_ok: bool = True,
) -> NotificationConfig:
    """Load configuration from its JSON file, or return defaults if it is absent."""
    config_path = Path(path) if path is not None else get_config_path(backend_key)
    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        if not missing_ok:
            raise ConfigNotFoundError(f"Config file not found: {config_path}") from None
        logger.info("No config at %s, using defaults", config_path)
        return NotificationConfig()
    except UnicodeDecodeError as exc:
        raise ConfigParseError(f"Invalid notification config: {exc}") from exc

    logger.info("Loaded notification config from %s", config_path)
    return parse_config(raw_text, base_dir=config_path.parent)


def serialize_config(config: NotificationConfig) -> str:
    """JSON text in the config file's own key spelling."""
    return config.model_dump_json(by_alias=True, indent=2)


def get_backend_config(config: NotificationConfig, backend_name: str) -> dict[str, Any]:
    """The opaque backend section, passed through as-is."""
    logger.debug("Backend config requested for %s", backend_name)
    return dict(config.backend)
