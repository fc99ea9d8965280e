"""Built-in notification content used when no template is configured."""

from __future__ import annotations

from agent_notify.events import NotificationEvent

_DEFAULT_TITLES = {
    NotificationEvent.SESSION_IDLE: "Agent Idle",
    NotificationEvent.SUBAGENT_COMPLETE: "Sub-agent Complete",
    NotificationEvent.SESSION_ERROR: "Agent Error",
    NotificationEvent.PERMISSION_ASKED: "Permission Requested",
    NotificationEvent.QUESTION_ASKED: "Question Asked",
}

_DEFAULT_MESSAGES = {
    NotificationEvent.SESSION_IDLE: "The agent has finished and is waiting for input.",
    NotificationEvent.SUBAGENT_COMPLETE: "A sub-agent has completed its task.",
    NotificationEvent.SESSION_ERROR: "An error occurred. Check the session for details.",
    NotificationEvent.PERMISSION_ASKED: "The agent needs permission to continue.",
    NotificationEvent.QUESTION_ASKED: "The agent has a question and is waiting for your answer.",
}


def get_default_title(event: NotificationEvent) -> str:
    return _DEFAULT_TITLES[event]


def get_default_message(event: NotificationEvent) -> str:
    return _DEFAULT_MESSAGES[event]
