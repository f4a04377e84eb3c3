import asyncio

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

import config
from schemas import UpdateLocationRequest
from database import get_db
from services import avatar_storage, location_store, place_label
from services.duplicate_collapse import collapse_duplicate_names
from services.errors import LocationSharingDisabled
from services.location_mirror import LocationMirror, get_location_mirror
from services.retreat_auth import RetreatSession, get_retreat_session
from utils.datetime_helpers import iso, utcnow

router = APIRouter(prefix="/api/v1/retreat", tags=["Locations"])


def _optional_float(value):
    return float(value) if value is not None else None


def _accuracy(location):
    # zero accuracy means the client did not report one
    return float(location.accuracy) if location.accuracy else None


@router.post("/location")
def update_location(
    payload: UpdateLocationRequest,
    background_tasks: BackgroundTasks,
    session: RetreatSession = Depends(get_retreat_session),
    mirror: LocationMirror = Depends(get_location_mirror),
    db: Session = Depends(get_db),
):
    reading = payload.model_dump()
    try:
        location_store.record(db, session.participant, reading)
    except LocationSharingDisabled:
        raise HTTPException(status_code=409, detail="Location sharing is currently turned off in your profile")

    # runs after the response is sent; failures are logged inside the mirror
    background_tasks.add_task(mirror.send_latest_reading, session.participant.id, session.retreat.id, reading)

    return {"data": {"recorded": True, "next_update_in": config.LOCATION_UPDATE_INTERVAL_SECONDS}}


@router.get("/locations")
async def list_locations(session: RetreatSession = Depends(get_retreat_session), db: Session = Depends(get_db)):
    current = session.participant
    rows = location_store.list_latest_for_retreat(db, session.retreat.id)

    latest_by_id = {participant.id: location for participant, location in rows}
    participants = collapse_duplicate_names(
        [participant for participant, _ in rows], current.id, config.LEGACY_DUPLICATE_NAMES
    )

    located = [(p, latest_by_id[p.id]) for p in participants if latest_by_id.get(p.id) is not None]
    places = await asyncio.gather(*[
        place_label.resolve(float(location.latitude), float(location.longitude), _accuracy(location))
        for _, location in located
    ])
    place_by_id = {participant.id: place for (participant, _), place in zip(located, places)}

    data = []
    for participant in participants:
        location = latest_by_id.get(participant.id)
        location_payload = None
        if location is not None:
            location_payload = {
                "lat": float(location.latitude),
                "lng": float(location.longitude),
                "accuracy": _accuracy(location),
                "speed": _optional_float(location.speed),
                "heading": _optional_float(location.heading),
                "recorded_at": iso(location.recorded_at),
                "place": place_by_id.get(participant.id),
            }

        data.append({
            "participant_id": participant.id,
            "name": participant.name,
            "gender": participant.gender,
            "avatar_url": avatar_storage.public_url(participant.avatar_path),
            "vehicle_color": participant.vehicle_color,
            "vehicle_description": participant.vehicle_description,
            "is_leader": bool(participant.is_leader),
            "is_current_user": participant.id == current.id,
            "location_sharing_enabled": bool(participant.location_sharing_enabled),
            "location": location_payload,
            "last_seen_seconds_ago": location_store.seconds_since(participant.last_seen_at),
        })

    online_count = sum(
        1 for entry in data
        if entry["last_seen_seconds_ago"] is not None
        and entry["last_seen_seconds_ago"] < config.ONLINE_WINDOW_SECONDS
    )

    return {
        "data": data,
        "meta": {
            "total_participants": len(data),
            "online_count": online_count,
            "server_time": iso(utcnow()),
        },
    }
