"""firewatch CLI.

Usage:
    firewatch watch https://example.firebaseio.com/rooms
    firewatch watch URL --auth TOKEN --format json
    firewatch watch URL --limit 10            # Stop after 10 events
    firewatch --log-level INFO watch URL      # Show connection logging

URL and --auth can also come from FIREWATCH_URL and FIREWATCH_AUTH.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import sys

import click

from .channel import EventChannel
from .client import RealtimeClient
from .errors import WatchError, WatchSetupError, WatchStreamError
from .transport.base import PAYLOAD_EVENT_TYPES, Event, WatchConfig

# Output format options
FORMAT_TEXT = "text"
FORMAT_JSON = "json"

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def format_event(event: Event, output_format: str = FORMAT_TEXT) -> str:
    """Format an event as one output line."""
    if output_format == FORMAT_JSON:
        return json.dumps(event.model_dump(), ensure_ascii=False, default=str)
    if event.type in PAYLOAD_EVENT_TYPES:
        data = json.dumps(event.data, ensure_ascii=False, default=str)
        return f"{event.type:<6} {event.path or '/'} {data}"
    return event.type


def _create_client(url: str, auth: str | None, config: WatchConfig) -> RealtimeClient:
    return RealtimeClient(url=url, auth=auth, config=config)


def _build_config(timeout: float | None, idle_timeout: float | None) -> WatchConfig:
    config = WatchConfig.from_env()
    overrides: dict[str, float] = {}
    if timeout is not None:
        overrides["timeout"] = timeout
    if idle_timeout is not None:
        overrides["idle_timeout"] = idle_timeout
    return dataclasses.replace(config, **overrides)


async def _run_watch(
    client: RealtimeClient, output_format: str, limit: int | None
) -> WatchError | None:
    """Print events until the watch ends. Returns the stream error, if any."""
    channel: EventChannel[Event] = EventChannel()
    async with client:
        await client.start_watch(channel)

        received = 0
        async for event in channel:
            click.echo(format_event(event, output_format))
            received += 1
            if limit is not None and received >= limit:
                client.stop_watch()
                break

    return client.session.last_error


@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Logging level (logs go to stderr)",
)
def main(log_level: str) -> None:
    """firewatch - watch a realtime database location for changes."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


@main.command("watch")
@click.argument("url", envvar="FIREWATCH_URL")
@click.option("--auth", envvar="FIREWATCH_AUTH", default=None, help="Auth token")
@click.option(
    "--format",
    "output_format",
    type=click.Choice([FORMAT_TEXT, FORMAT_JSON]),
    default=FORMAT_TEXT,
    help="Output format",
)
@click.option("--limit", "-n", type=click.IntRange(min=1), default=None, help="Stop after N events")
@click.option("--timeout", type=float, default=None, help="Connect timeout in seconds")
@click.option(
    "--idle-timeout",
    type=float,
    default=None,
    help="Fail if the stream is silent for this many seconds",
)
def watch(
    url: str,
    auth: str | None,
    output_format: str,
    limit: int | None,
    timeout: float | None,
    idle_timeout: float | None,
) -> None:
    """Stream change events for URL until the server ends the watch."""
    try:
        config = _build_config(timeout, idle_timeout)
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    client = _create_client(url, auth, config)
    try:
        error = asyncio.run(_run_watch(client, output_format, limit))
    except WatchSetupError as e:
        click.echo(f"Cannot watch {url}: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nStopped", err=True)
        return

    if isinstance(error, WatchStreamError):
        click.echo(f"Watch ended with error: {error}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
