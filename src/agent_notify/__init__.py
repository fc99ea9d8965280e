"""
agent-notify — notification decisions for coding-agent hosts.

Turns host lifecycle events (session idle, session error, permission
asked, question asked) into at most one call to a pluggable backend,
honouring user configuration, sub-agent suppression, cooldowns and
shell-command templates.
"""

__version__ = "0.3.0"

from agent_notify.backend import NotificationBackend
from agent_notify.config import (
    NotificationConfig,
    get_backend_config,
    get_config_path,
    load_config,
    parse_config,
)
from agent_notify.errors import (
    BackendError,
    CommandError,
    ConfigError,
    ConfigNotFoundError,
    ConfigParseError,
    ConfigShapeError,
    NotifyError,
)
from agent_notify.events import EventMetadata, NotificationContext, NotificationEvent
from agent_notify.pipeline import NotificationPipeline
from agent_notify.plugin import PluginInput, create_notification_plugin
from agent_notify.rate_limiter import RateLimiter, create_rate_limiter, parse_iso8601_duration
from agent_notify.templates import exec_command, exec_template, render_template, resolve_field

__all__ = [
    "BackendError",
    "CommandError",
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigParseError",
    "ConfigShapeError",
    "EventMetadata",
    "NotificationBackend",
    "NotificationConfig",
    "NotificationContext",
    "NotificationEvent",
    "NotificationPipeline",
    "NotifyError",
    "PluginInput",
    "RateLimiter",
    "create_notification_plugin",
    "create_rate_limiter",
    "exec_command",
    "exec_template",
    "get_backend_config",
    "get_config_path",
    "load_config",
    "parse_config",
    "parse_iso8601_duration",
    "render_template",
    "resolve_field",
]
