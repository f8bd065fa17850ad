"""Notification delivery for kubehubot.

Exports:
    Notifier          -- Abstract base for chat backends.
    NotifierError     -- Raised by a Notifier on delivery failure.
    NotificationSink  -- Fire-and-forget delivery wrapper used by the
                         watch supervisor.
    HubotNotifier     -- Posts to Hubot's ``/hubot/notify/{room}`` endpoint.
    LoggingNotifier   -- Logs messages; used when Hubot is not configured.
    format_event      -- Maps a NormalizedEvent to ``(room, message)``.
    build_notifier    -- Factory used by the application bootstrap.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from kubehubot.notifications.console import LoggingNotifier
from kubehubot.notifications.formatter import format_event
from kubehubot.notifications.hubot import HubotNotifier
from kubehubot.notifications.manager import NotificationSink, Notifier, NotifierError

if TYPE_CHECKING:
    from kubehubot.models.config import HubotConfig

_log = structlog.get_logger(component="notifications")

__all__ = [
    "HubotNotifier",
    "LoggingNotifier",
    "NotificationSink",
    "Notifier",
    "NotifierError",
    "build_notifier",
    "format_event",
]


def build_notifier(config: HubotConfig) -> Notifier:
    """Return a HubotNotifier when a Hubot URL is configured, else a LoggingNotifier."""
    if config.url:
        _log.info("hubot_notifier_enabled", url=config.url)
        return HubotNotifier(base_url=config.url, timeout=config.timeout_seconds)
    _log.info("hubot_notifier_skipped", reason="KUBEHUBOT_HUBOT_URL is empty; logging notifications instead")
    return LoggingNotifier()
