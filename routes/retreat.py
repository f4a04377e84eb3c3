from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from models.RetreatParticipant import RetreatParticipant
from models.RetreatWaypoint import RetreatWaypoint
from schemas import (
    DeleteAccountRequest,
    JoinRetreatRequest,
    LocationSharingUpdate,
    StoreWaypointRequest,
    UpdateProfilePhotoRequest,
)
from database import get_db
from services import avatar_storage, location_store
from services.errors import InvalidAvatar, JoinConflict, ParticipantNotFound, RetreatNotJoinable
from services.identity_service import join_retreat
from services.phone_number import mask
from services.retreat_auth import RetreatSession, get_retreat_session
from services.retreat_service import destination_payload
from utils.datetime_helpers import as_utc, iso, utcnow

router = APIRouter(prefix="/api/v1/retreat", tags=["Retreat"])


def _retreat_summary(retreat) -> dict:
    return {
        "id": retreat.id,
        "name": retreat.name,
        "destination": destination_payload(retreat),
        "starts_at": iso(retreat.starts_at),
        "ends_at": iso(retreat.ends_at),
    }


def _waypoint_to_read(waypoint: RetreatWaypoint) -> dict:
    return {
        "id": waypoint.id,
        "name": waypoint.name,
        "description": waypoint.description,
        "lat": float(waypoint.latitude),
        "lng": float(waypoint.longitude),
        "order": waypoint.waypoint_order,
        "eta": iso(waypoint.eta),
    }


# =====================================================
#                 JOIN / SIGN-IN
# =====================================================
@router.post("/join")
def join(payload: JoinRetreatRequest, db: Session = Depends(get_db)):
    try:
        retreat, participant = join_retreat(db, payload)
    except RetreatNotJoinable:
        raise HTTPException(status_code=422, detail="Invalid retreat code or retreat is not active")
    except ParticipantNotFound:
        raise HTTPException(
            status_code=422,
            detail="No existing participant found for that phone number. Use Join first.",
        )
    except JoinConflict:
        raise HTTPException(status_code=409, detail="Could not complete join, please try again")

    return {
        "data": {
            "participant_id": participant.id,
            "device_token": participant.device_token,
            "identity": {
                "phone_display": mask(participant.phone_e164),
                "continuity_mode": "phone_no_otp",
            },
            "retreat": _retreat_summary(retreat),
        }
    }


@router.post("/leave")
def leave(session: RetreatSession = Depends(get_retreat_session), db: Session = Depends(get_db)):
    session.participant.device_token = None
    db.commit()
    return {"data": {"left": True}}


@router.delete("/account")
def delete_account(
    payload: DeleteAccountRequest,
    session: RetreatSession = Depends(get_retreat_session),
    db: Session = Depends(get_db),
):
    participant = session.participant
    participant_id = participant.id
    retreat_id = participant.retreat_id
    avatar_path = participant.avatar_path

    # locations and messages go with the participant (relationship cascade)
    db.delete(participant)
    db.commit()
    avatar_storage.delete_avatar(avatar_path)

    return {"data": {"deleted": True, "participant_id": participant_id, "retreat_id": retreat_id}}


@router.get("/status")
def retreat_status(session: RetreatSession = Depends(get_retreat_session), db: Session = Depends(get_db)):
    participant, retreat = session.participant, session.retreat

    active_count = (
        db.query(func.count(RetreatParticipant.id))
        .filter(RetreatParticipant.retreat_id == retreat.id, RetreatParticipant.device_token.isnot(None))
        .scalar()
    )

    return {
        "data": {
            "participant": {
                "id": participant.id,
                "name": participant.name,
                "phone_display": mask(participant.phone_e164),
                "is_leader": bool(participant.is_leader),
                "location_sharing_enabled": bool(participant.location_sharing_enabled),
                "avatar_url": avatar_storage.public_url(participant.avatar_path),
            },
            "retreat": {**_retreat_summary(retreat), "participant_count": active_count},
        }
    }


@router.patch("/location-sharing")
def update_location_sharing(
    payload: LocationSharingUpdate,
    session: RetreatSession = Depends(get_retreat_session),
    db: Session = Depends(get_db),
):
    location_store.set_sharing(db, session.participant, payload.enabled)
    return {"data": {"location_sharing_enabled": payload.enabled}}


# =====================================================
#                 PROFILE PHOTO
# =====================================================
@router.post("/profile-photo")
def update_profile_photo(
    payload: UpdateProfilePhotoRequest,
    session: RetreatSession = Depends(get_retreat_session),
    db: Session = Depends(get_db),
):
    participant = session.participant
    try:
        raw, ext = avatar_storage.decode_data_url(payload.avatar_base64)
    except InvalidAvatar as e:
        raise HTTPException(status_code=422, detail=str(e))

    path = avatar_storage.save_avatar(participant.retreat_id, participant.id, raw, ext)
    previous = participant.avatar_path
    participant.avatar_path = path
    db.commit()
    if previous and previous != path:
        avatar_storage.delete_avatar(previous)

    return {"data": {"avatar_url": avatar_storage.public_url(path)}}


@router.delete("/profile-photo")
def remove_profile_photo(session: RetreatSession = Depends(get_retreat_session), db: Session = Depends(get_db)):
    participant = session.participant
    if participant.avatar_path:
        avatar_storage.delete_avatar(participant.avatar_path)
        participant.avatar_path = None
        db.commit()
    return {"data": {"avatar_url": None}}


# =====================================================
#                 WAYPOINTS
# =====================================================
@router.get("/waypoints")
def list_waypoints(session: RetreatSession = Depends(get_retreat_session), db: Session = Depends(get_db)):
    waypoints = (
        db.query(RetreatWaypoint)
        .filter(RetreatWaypoint.retreat_id == session.retreat.id)
        .order_by(RetreatWaypoint.waypoint_order.asc(), RetreatWaypoint.id.asc())
        .all()
    )
    return {"data": [_waypoint_to_read(w) for w in waypoints]}


@router.post("/waypoints", status_code=status.HTTP_201_CREATED)
def store_waypoint(
    payload: StoreWaypointRequest,
    session: RetreatSession = Depends(get_retreat_session),
    db: Session = Depends(get_db),
):
    if not session.participant.is_leader:
        raise HTTPException(status_code=403, detail="Only leaders can manage waypoints")

    retreat = session.retreat
    if payload.waypoint_order is not None:
        order = payload.waypoint_order
    else:
        current_max = (
            db.query(func.max(RetreatWaypoint.waypoint_order))
            .filter(RetreatWaypoint.retreat_id == retreat.id)
            .scalar()
        )
        order = (current_max or 0) + 1

    waypoint = RetreatWaypoint(
        retreat_id=retreat.id,
        name=payload.name,
        description=payload.description,
        latitude=payload.latitude,
        longitude=payload.longitude,
        waypoint_order=order,
        eta=as_utc(payload.eta),
        created_at=utcnow(),
    )
    db.add(waypoint)

    if payload.set_as_destination:
        retreat.destination_name = waypoint.name
        retreat.destination_lat = waypoint.latitude
        retreat.destination_lng = waypoint.longitude

    db.commit()
    db.refresh(waypoint)
    db.refresh(retreat)

    return {
        "data": _waypoint_to_read(waypoint),
        "meta": {"destination": destination_payload(retreat)},
    }
