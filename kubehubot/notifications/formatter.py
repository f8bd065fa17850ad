"""Turns a NormalizedEvent into a chat room and a message line."""

from __future__ import annotations

import re

from kubehubot.models.events import NormalizedEvent, WatchAction

_PLACEHOLDER = re.compile(r"\$\{(namespace|kind|name)\}")
_LINKED_ACTIONS = frozenset({WatchAction.ADDED, WatchAction.MODIFIED})


def resolve_room(room_expression: str, event: NormalizedEvent) -> str:
    """Substitute ``${namespace}``, ``${kind}`` and ``${name}`` literally.

    A single pass: text coming from the event is never expanded again.
    Unknown placeholders are left as they are.
    """
    values = {"namespace": event.namespace, "kind": event.kind, "name": event.name}
    return _PLACEHOLDER.sub(lambda match: values[match.group(1)], room_expression)


def console_link(console_url: str, event: NormalizedEvent) -> str:
    return f"{console_url}/kubernetes/namespace/{event.namespace}/{event.kind.lower()}s/{event.name}"


def format_event(event: NormalizedEvent, room_expression: str, console_url: str = "") -> tuple[str, str]:
    """Return ``(room, message)`` for *event*.

    The message reads ``"<action> <kind> <namespace> / <name>"``, with the
    action lowercased and only the first letter of the kind lowercased
    (``BuildConfig`` -> ``buildConfig``).  Added and modified events get a
    console link appended when *console_url* is not blank.
    """
    room = resolve_room(room_expression, event)
    message = f"{event.action.value.lower()} {_decapitalize(event.kind)} {event.namespace} / {event.name}"
    if event.action in _LINKED_ACTIONS and console_url and console_url.strip():
        message += " " + console_link(console_url, event)
    return room, message


def _decapitalize(text: str) -> str:
    return text[:1].lower() + text[1:]
