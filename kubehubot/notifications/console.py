"""Notifier that writes messages to the log instead of a chat backend."""

from __future__ import annotations

import structlog

from kubehubot.notifications.manager import Notifier

_log = structlog.get_logger(component="notifications.console")


class LoggingNotifier(Notifier):
    """Used when no Hubot URL is configured."""

    @property
    def name(self) -> str:
        return "log"

    async def notify_room(self, room: str, message: str) -> None:
        _log.info("room_notification", room=room, message=message)
