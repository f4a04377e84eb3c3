"""
Best-effort mirror of each accepted location into the SpacetimeDB sidecar.

The sidecar keeps only the latest reading per participant for low-latency
broadcast. Delivery never affects the API caller: the call is scheduled as a
background task, disabled or unconfigured mirrors are skipped, and any
failure is logged and dropped without retry.
"""
import subprocess
from datetime import datetime
from typing import Optional

import config
from utils.datetime_helpers import epoch_millis, utcnow
from utils.logger import setup_api_logger

logger = setup_api_logger()


class LocationMirror:
    """Outbound port: deliver the latest reading, tolerating total unavailability."""

    def send_latest_reading(self, participant_id: int, retreat_id: int, reading: dict) -> None:
        raise NotImplementedError


def _float_arg(value) -> str:
    return str(float(value or 0))


class SpacetimeCliMirror(LocationMirror):
    """Calls the `upsert_location` reducer through the spacetime CLI."""

    def build_command(self, database: str, participant_id: int, retreat_id: int, reading: dict) -> list[str]:
        recorded_at: Optional[datetime] = reading.get("recorded_at")
        recorded_at_ms = epoch_millis(recorded_at or utcnow())

        command = [config.SPACETIME_CLI_PATH, "call", "--server", config.SPACETIME_SERVER]
        if config.SPACETIME_ANONYMOUS:
            command.append("--anonymous")
        command += [
            "-y",
            database,
            "upsert_location",
            "--",
            str(participant_id),
            str(retreat_id),
            _float_arg(reading.get("latitude")),
            _float_arg(reading.get("longitude")),
            _float_arg(reading.get("accuracy")),
            _float_arg(reading.get("speed")),
            _float_arg(reading.get("heading")),
            _float_arg(reading.get("altitude")),
            str(recorded_at_ms),
        ]
        return command

    def send_latest_reading(self, participant_id: int, retreat_id: int, reading: dict) -> None:
        if not config.SPACETIME_LOCATION_MIRROR_ENABLED:
            return

        database = (config.SPACETIME_DATABASE or "").strip()
        if not database:
            logger.warning("Spacetime mirror enabled but no SPACETIME_DATABASE configured.")
            return

        command = self.build_command(database, participant_id, retreat_id, reading)

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=max(1, config.SPACETIME_TIMEOUT_SECONDS),
            )
        except Exception as e:
            logger.error(
                "Spacetime location mirror threw exception | database=%s server=%s participant_id=%s retreat_id=%s | %s",
                database, config.SPACETIME_SERVER, participant_id, retreat_id, e,
            )
            return

        if result.returncode != 0:
            logger.warning(
                "Spacetime location mirror call failed | database=%s server=%s participant_id=%s retreat_id=%s exit_code=%s error=%s output=%s",
                database, config.SPACETIME_SERVER, participant_id, retreat_id,
                result.returncode, (result.stderr or "").strip(), (result.stdout or "").strip(),
            )


def get_location_mirror() -> LocationMirror:
    """FastAPI dependency; override it to swap the transport."""
    return SpacetimeCliMirror()
