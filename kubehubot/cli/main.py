"""Click commands for kubehubot."""

from __future__ import annotations

import asyncio
import json

import click
import httpx

from kubehubot import __version__
from kubehubot.models.config import DEFAULT_ROOM_EXPRESSION
from kubehubot.models.events import NormalizedEvent, WatchAction
from kubehubot.notifications.formatter import format_event

_ACTIONS = [action.value.lower() for action in WatchAction]


@click.group()
@click.version_option(__version__, prog_name="kubehubot")
def cli() -> None:
    """Forward Kubernetes resource changes to Hubot chat rooms."""


@cli.command()
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default=None,
    help="Override KUBEHUBOT_LOG_LEVEL.",
)
def run(log_level: str | None) -> None:
    """Watch the configured namespace until SIGTERM/SIGINT."""
    from kubehubot.app import main

    asyncio.run(main(log_level=log_level))


@cli.command()
@click.option("--url", default="http://localhost:8080", show_default=True, help="Status API base URL.")
@click.option("--timeout", default=5.0, show_default=True, help="Request timeout in seconds.")
def status(url: str, timeout: float) -> None:
    """Show the state of every watch subscription."""
    try:
        response = httpx.get(f"{url.rstrip('/')}/api/v1/watches", timeout=timeout)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise click.ClickException(f"cannot reach kubehubot at {url}: {exc}") from exc

    body = response.json()
    click.echo(f"namespace: {body.get('namespace', '')}  status: {body.get('status', '')}")
    for watch in body.get("watches", []):
        line = f"  {watch['kind']:<24} {watch['state']}"
        if watch.get("close_reason"):
            line += f"  ({watch['close_reason']})"
        click.echo(line)
    for label, cause in sorted(body.get("failed", {}).items()):
        click.echo(f"  {label:<24} failed  ({cause})")
    if body.get("status") == "degraded":
        raise SystemExit(2)


@cli.command()
@click.argument("action", type=click.Choice(_ACTIONS, case_sensitive=False))
@click.argument("kind")
@click.argument("namespace")
@click.argument("name")
@click.option("--room", "room_expression", default=DEFAULT_ROOM_EXPRESSION, show_default=True, help="Room template.")
@click.option("--console-url", default="", help="Console base URL used for links.")
@click.option("--json", "as_json", is_flag=True, help="Print a JSON object instead of plain text.")
def preview(
    action: str,
    kind: str,
    namespace: str,
    name: str,
    room_expression: str,
    console_url: str,
    as_json: bool,
) -> None:
    """Print the room and message an event would produce."""
    event = NormalizedEvent(action=WatchAction(action.upper()), kind=kind, name=name, namespace=namespace)
    room, message = format_event(event, room_expression, console_url.rstrip("/"))
    if as_json:
        click.echo(json.dumps({"room": room, "message": message}))
    else:
        click.echo(f"{room}: {message}")
