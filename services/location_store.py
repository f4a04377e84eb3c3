"""
Location readings: append-only history plus a per-participant "latest" view.

The latest reading is the one with the greatest client `recorded_at`
(ties go to the most recently inserted row), so readings may arrive in any
order.
"""
from typing import Optional

from sqlalchemy.orm import Session

from models.ParticipantLocation import ParticipantLocation
from models.RetreatParticipant import RetreatParticipant
from services.errors import LocationSharingDisabled
from utils.datetime_helpers import as_utc, utcnow


def record(db: Session, participant: RetreatParticipant, reading: dict) -> ParticipantLocation:
    """Append a reading. Raises LocationSharingDisabled if the participant opted out."""
    if not participant.location_sharing_enabled:
        raise LocationSharingDisabled()

    location = ParticipantLocation(
        participant_id=participant.id,
        latitude=reading["latitude"],
        longitude=reading["longitude"],
        accuracy=reading.get("accuracy"),
        speed=reading.get("speed"),
        heading=reading.get("heading"),
        altitude=reading.get("altitude"),
        recorded_at=as_utc(reading["recorded_at"]),
        created_at=utcnow(),
    )
    db.add(location)
    db.commit()
    db.refresh(location)
    return location


def latest_for(db: Session, participant_id: int) -> Optional[ParticipantLocation]:
    return (
        db.query(ParticipantLocation)
        .filter(ParticipantLocation.participant_id == participant_id)
        .order_by(ParticipantLocation.recorded_at.desc(), ParticipantLocation.id.desc())
        .first()
    )


def history_for(db: Session, participant_id: int) -> list[ParticipantLocation]:
    return (
        db.query(ParticipantLocation)
        .filter(ParticipantLocation.participant_id == participant_id)
        .order_by(ParticipantLocation.recorded_at.asc(), ParticipantLocation.id.asc())
        .all()
    )


def set_sharing(db: Session, participant: RetreatParticipant, enabled: bool) -> int:
    """Toggle sharing. Disabling hard-deletes all history; returns the purged row count."""
    participant.location_sharing_enabled = enabled
    purged = 0
    if not enabled:
        purged = (
            db.query(ParticipantLocation)
            .filter(ParticipantLocation.participant_id == participant.id)
            .delete(synchronize_session=False)
        )
    db.commit()
    db.refresh(participant)
    return purged


def list_latest_for_retreat(
    db: Session, retreat_id: int
) -> list[tuple[RetreatParticipant, Optional[ParticipantLocation]]]:
    """Signed-in participants of a retreat paired with their visible latest reading.

    Participants with sharing disabled or no readings are paired with None.
    """
    participants = (
        db.query(RetreatParticipant)
        .filter(
            RetreatParticipant.retreat_id == retreat_id,
            RetreatParticipant.device_token.isnot(None),
        )
        .order_by(RetreatParticipant.id)
        .all()
    )

    result = []
    for participant in participants:
        location = latest_for(db, participant.id) if participant.location_sharing_enabled else None
        result.append((participant, location))
    return result


def seconds_since(value) -> Optional[int]:
    value = as_utc(value)
    if value is None:
        return None
    return int(abs((utcnow() - value).total_seconds()))
