"""
Participant identity continuity and leader-role resolution.

A participant is anchored by (retreat, E.164 phone). Leader status has two
modes per retreat:

- no allowlist rows: leader status is sticky and assigned manually; rejoining
  keeps whatever the stored row says.
- at least one allowlist row ("allowlist mode"): allowlist membership is
  authoritative and overrides the stored flag on every request.
"""
import uuid
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.Retreat import Retreat
from models.RetreatLeaderPhoneAllowlist import RetreatLeaderPhoneAllowlist
from models.RetreatParticipant import RetreatParticipant
from schemas import JoinRetreatRequest
from services.errors import JoinConflict, ParticipantNotFound, RetreatNotJoinable
from services.retreat_service import find_joinable_retreat
from utils.datetime_helpers import utcnow
from utils.logger import setup_api_logger

logger = setup_api_logger()

AUTH_MODE_JOIN = "join"
AUTH_MODE_SIGNIN = "signin"


class IdentityService:
    """Leader resolution for one request. Lookups are memoized per instance only."""

    def __init__(self, db: Session):
        self.db = db
        self._allowlist_enabled: dict[int, bool] = {}
        self._allowlisted_phones: dict[tuple[int, str], bool] = {}

    def retreat_uses_allowlist(self, retreat_id: int) -> bool:
        if retreat_id not in self._allowlist_enabled:
            exists = (
                self.db.query(RetreatLeaderPhoneAllowlist.id)
                .filter(RetreatLeaderPhoneAllowlist.retreat_id == retreat_id)
                .first()
            )
            self._allowlist_enabled[retreat_id] = exists is not None
        return self._allowlist_enabled[retreat_id]

    def is_allowlisted(self, retreat_id: int, phone_e164: str) -> bool:
        key = (retreat_id, phone_e164)
        if key not in self._allowlisted_phones:
            exists = (
                self.db.query(RetreatLeaderPhoneAllowlist.id)
                .filter(
                    RetreatLeaderPhoneAllowlist.retreat_id == retreat_id,
                    RetreatLeaderPhoneAllowlist.phone_e164 == phone_e164,
                )
                .first()
            )
            self._allowlisted_phones[key] = exists is not None
        return self._allowlisted_phones[key]

    def resolve_leader_flag(
        self,
        retreat_id: int,
        phone_e164: str,
        existing: Optional[RetreatParticipant] = None,
    ) -> bool:
        if not self.retreat_uses_allowlist(retreat_id):
            return bool(existing.is_leader) if existing is not None else False
        return self.is_allowlisted(retreat_id, phone_e164)

    def sync_leader_role(self, participant: RetreatParticipant) -> None:
        """Bring the stored leader flag in line with the allowlist, if it drifted."""
        if not participant.phone_e164:
            return

        resolved = self.resolve_leader_flag(participant.retreat_id, participant.phone_e164, participant)
        if bool(participant.is_leader) == resolved:
            return

        participant.is_leader = resolved
        self.db.commit()


def _supplied(payload: JoinRetreatRequest, field: str) -> bool:
    value = getattr(payload, field)
    return field in payload.model_fields_set and value is not None and value != ""


def _apply_profile(
    participant: RetreatParticipant,
    existing: Optional[RetreatParticipant],
    payload: JoinRetreatRequest,
) -> None:
    if payload.auth_mode == AUTH_MODE_SIGNIN:
        # partial update: omitted fields keep their stored values
        participant.name = existing.name or payload.name
        for field in ("gender", "vehicle_color", "vehicle_description"):
            if _supplied(payload, field):
                setattr(participant, field, getattr(payload, field))
    else:
        participant.name = payload.name
        participant.gender = payload.gender
        participant.vehicle_color = payload.vehicle_color
        participant.vehicle_description = payload.vehicle_description

    if payload.expo_push_token:
        participant.expo_push_token = payload.expo_push_token


def _upsert_participant(db: Session, retreat: Retreat, payload: JoinRetreatRequest) -> RetreatParticipant:
    identity = IdentityService(db)

    # Row lock keeps two concurrent joins for one phone from both taking the insert path.
    existing = (
        db.query(RetreatParticipant)
        .filter(
            RetreatParticipant.retreat_id == retreat.id,
            RetreatParticipant.phone_e164 == payload.phone_number,
        )
        .with_for_update()
        .first()
    )

    if payload.auth_mode == AUTH_MODE_SIGNIN and existing is None:
        raise ParticipantNotFound()

    now = utcnow()
    participant = existing
    if participant is None:
        participant = RetreatParticipant(retreat_id=retreat.id, phone_e164=payload.phone_number, joined_at=now)
        db.add(participant)

    _apply_profile(participant, existing, payload)
    participant.is_leader = identity.resolve_leader_flag(retreat.id, payload.phone_number, existing)
    participant.device_token = str(uuid.uuid4())
    participant.last_seen_at = now
    return participant


def join_retreat(db: Session, payload: JoinRetreatRequest) -> tuple[Retreat, RetreatParticipant]:
    """Join or sign in to a retreat, returning the retreat and the refreshed participant.

    Raises RetreatNotJoinable, ParticipantNotFound or JoinConflict.
    """
    retreat = find_joinable_retreat(db, payload.code)
    if retreat is None:
        raise RetreatNotJoinable()

    for attempt in range(2):
        try:
            participant = _upsert_participant(db, retreat, payload)
            db.commit()
        except IntegrityError:
            db.rollback()
            if attempt:
                raise JoinConflict()
            logger.warning("Join for retreat %s lost a uniqueness race, retrying", retreat.id)
            continue
        except Exception:
            db.rollback()
            raise

        db.refresh(participant)
        return retreat, participant

    raise JoinConflict()
