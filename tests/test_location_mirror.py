import subprocess
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

import config
from services import location_mirror
from services.location_mirror import SpacetimeCliMirror

READING = {
    "latitude": 36.5,
    "longitude": -93.25,
    "accuracy": 8,
    "speed": None,
    "heading": 90,
    "altitude": None,
    "recorded_at": datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
}


@pytest.fixture
def enabled(monkeypatch):
    monkeypatch.setattr(config, "SPACETIME_LOCATION_MIRROR_ENABLED", True)
    monkeypatch.setattr(config, "SPACETIME_DATABASE", "caravan")
    monkeypatch.setattr(config, "SPACETIME_SERVER", "maincloud")
    monkeypatch.setattr(config, "SPACETIME_CLI_PATH", "/usr/local/bin/spacetime")
    monkeypatch.setattr(config, "SPACETIME_ANONYMOUS", False)


@pytest.fixture
def runs(monkeypatch):
    calls = []

    def fake_run(command, **kwargs):
        calls.append((command, kwargs))
        return SimpleNamespace(returncode=0, stdout="", stderr="")

    monkeypatch.setattr(location_mirror.subprocess, "run", fake_run)
    return calls


def test_build_command_uses_positional_reducer_arguments(enabled):
    command = SpacetimeCliMirror().build_command("caravan", 7, 3, READING)

    assert command == [
        "/usr/local/bin/spacetime", "call", "--server", "maincloud", "-y", "caravan", "upsert_location", "--",
        "7", "3", "36.5", "-93.25", "8.0", "0.0", "90.0", "0.0", "1772366400000",
    ]


def test_build_command_anonymous_flag(enabled, monkeypatch):
    monkeypatch.setattr(config, "SPACETIME_ANONYMOUS", True)
    command = SpacetimeCliMirror().build_command("caravan", 7, 3, READING)
    assert command[4] == "--anonymous"


def test_disabled_mirror_does_nothing(runs, monkeypatch):
    monkeypatch.setattr(config, "SPACETIME_LOCATION_MIRROR_ENABLED", False)
    SpacetimeCliMirror().send_latest_reading(7, 3, READING)
    assert runs == []


def test_missing_database_is_skipped(enabled, runs, monkeypatch):
    monkeypatch.setattr(config, "SPACETIME_DATABASE", "  ")
    SpacetimeCliMirror().send_latest_reading(7, 3, READING)
    assert runs == []


def test_enabled_mirror_runs_cli_with_timeout(enabled, runs, monkeypatch):
    monkeypatch.setattr(config, "SPACETIME_TIMEOUT_SECONDS", 0)
    SpacetimeCliMirror().send_latest_reading(7, 3, READING)

    command, kwargs = runs[0]
    assert command[0] == "/usr/local/bin/spacetime"
    assert kwargs["timeout"] == 1
    assert kwargs["capture_output"] is True


def test_failures_are_swallowed(enabled, monkeypatch):
    def nonzero(command, **kwargs):
        return SimpleNamespace(returncode=1, stdout="", stderr="no such database")

    monkeypatch.setattr(location_mirror.subprocess, "run", nonzero)
    SpacetimeCliMirror().send_latest_reading(7, 3, READING)

    def timeout(command, **kwargs):
        raise subprocess.TimeoutExpired(command, 4)

    monkeypatch.setattr(location_mirror.subprocess, "run", timeout)
    SpacetimeCliMirror().send_latest_reading(7, 3, READING)

    def missing(command, **kwargs):
        raise FileNotFoundError("spacetime")

    monkeypatch.setattr(location_mirror.subprocess, "run", missing)
    SpacetimeCliMirror().send_latest_reading(7, 3, READING)


def test_location_endpoint_hands_reading_to_mirror(client, db, make_retreat, join, mirror):
    retreat = make_retreat()
    data = join().json()["data"]

    res = client.post(
        "/api/v1/retreat/location",
        json={"latitude": 36.5, "longitude": -93.25, "recorded_at": "2026-03-01T12:00:00Z"},
        headers={"X-Device-Token": data["device_token"]},
    )

    assert res.status_code == 200
    participant_id, retreat_id, reading = mirror.calls[0]
    assert (participant_id, retreat_id) == (data["participant_id"], retreat.id)
    assert reading["latitude"] == 36.5
    assert reading["recorded_at"] == READING["recorded_at"]
