"""Tests for the firewatch CLI."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from firewatch import cli
from firewatch.transport.base import Event

PUT_A = b'event: put\ndata: {"path":"/a","data":5}\n\n'
PATCH_B = b'event: patch\ndata: {"path":"/b","data":{"x":1}}\n\n'
CANCEL = b"event: cancel\ndata: null\n\n"


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def fake_client(database, monkeypatch):
    """Route the CLI's client through the fake database."""
    created = []

    def create(url, auth, config):
        client = database.client(url=url, auth=auth, config=config)
        created.append(client)
        return client

    monkeypatch.setattr(cli, "_create_client", create)
    return created


class TestFormatEvent:
    """Tests for format_event."""

    def test_text_payload_event(self):
        event = Event(type="put", path="/a", data={"x": 1})
        assert cli.format_event(event) == 'put    /a {"x": 1}'

    def test_text_root_path(self):
        event = Event(type="patch", path="", data=None)
        assert cli.format_event(event) == "patch  / null"

    def test_text_control_event(self):
        assert cli.format_event(Event(type="cancel")) == "cancel"

    def test_json(self):
        line = cli.format_event(Event(type="put", path="/a", data=5), cli.FORMAT_JSON)
        assert json.loads(line) == {"type": "put", "path": "/a", "data": 5}


class TestWatchCommand:
    """Tests for `firewatch watch`."""

    def test_prints_events_until_cancel(self, runner, database, fake_client):
        """Events are printed one per line until the server cancels."""
        database.queue_stream([PUT_A, PATCH_B, CANCEL])

        result = runner.invoke(cli.main, ["watch", "https://example.firebaseio.com/rooms"])

        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == [
            "put    /a 5",
            'patch  /b {"x": 1}',
            "cancel",
        ]

    def test_json_format_and_auth(self, runner, database, fake_client):
        """--format json prints JSON lines; --auth reaches the request."""
        database.queue_stream([PUT_A, CANCEL])

        result = runner.invoke(
            cli.main,
            ["watch", "https://example.firebaseio.com/rooms", "--auth", "tok", "--format", "json"],
        )

        assert result.exit_code == 0, result.output
        lines = [json.loads(line) for line in result.output.splitlines()]
        assert lines[0] == {"type": "put", "path": "/a", "data": 5}
        assert database.requests[0].url.params["auth"] == "tok"

    def test_limit_stops_watch(self, runner, database, fake_client):
        """--limit stops after N events even if the stream stays open."""
        stream = database.queue_stream([PUT_A, PATCH_B, PUT_A], hold_open=True)

        result = runner.invoke(cli.main, ["watch", "https://example.firebaseio.com/rooms", "-n", "2"])

        assert result.exit_code == 0, result.output
        assert len(result.output.splitlines()) == 2
        assert stream.closed is True
        assert fake_client[0].watching is False

    def test_url_from_env(self, runner, database, fake_client):
        """URL and auth can come from the environment."""
        database.queue_stream([CANCEL])

        result = runner.invoke(
            cli.main,
            ["watch"],
            env={"FIREWATCH_URL": "https://example.firebaseio.com/env", "FIREWATCH_AUTH": "envtok"},
        )

        assert result.exit_code == 0, result.output
        assert database.requests[0].url.path == "/env/.json"
        assert database.requests[0].url.params["auth"] == "envtok"

    def test_setup_failure_exits_1(self, runner, database, fake_client):
        """HTTP errors on connect exit with status 1."""
        database.status_code = 401

        result = runner.invoke(cli.main, ["watch", "https://example.firebaseio.com/rooms"])

        assert result.exit_code == 1
        assert "Cannot watch" in result.output

    def test_stream_failure_exits_1(self, runner, database, fake_client):
        """An oversized frame ends the watch with status 1."""
        database.queue_stream([PUT_A, b"data: " + b"x" * 100])

        result = runner.invoke(
            cli.main,
            ["watch", "https://example.firebaseio.com/rooms"],
            env={"FIREWATCH_MAX_FRAME_BYTES": "64"},
        )

        assert result.exit_code == 1
        assert "put    /a 5" in result.output
        assert "Watch ended with error" in result.output

    def test_invalid_env_is_usage_error(self, runner, fake_client):
        """Bad configuration is reported as a usage error."""
        result = runner.invoke(
            cli.main,
            ["watch", "https://example.firebaseio.com/rooms"],
            env={"FIREWATCH_TIMEOUT": "soon"},
        )

        assert result.exit_code == 2
        assert "FIREWATCH_TIMEOUT" in result.output
