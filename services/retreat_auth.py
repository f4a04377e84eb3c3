"""Device-token session gate shared by every authenticated retreat endpoint."""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from database import get_db
from models.Retreat import Retreat
from models.RetreatParticipant import RetreatParticipant
from services.identity_service import IdentityService
from services.retreat_service import joinable_filter
from utils.datetime_helpers import utcnow


@dataclass
class RetreatSession:
    participant: RetreatParticipant
    retreat: Retreat


def authenticate(db: Session, token: Optional[str]) -> Optional[RetreatSession]:
    """Resolve a token to a live participant, re-syncing leader role and touching last_seen."""
    if not token:
        return None

    participant = (
        joinable_filter(
            db.query(RetreatParticipant)
            .join(Retreat, Retreat.id == RetreatParticipant.retreat_id)
            .filter(RetreatParticipant.device_token == token)
        )
        .first()
    )
    if participant is None:
        return None

    IdentityService(db).sync_leader_role(participant)

    participant.last_seen_at = utcnow()
    db.commit()
    db.refresh(participant)
    return RetreatSession(participant=participant, retreat=participant.retreat)


def get_retreat_session(
    x_device_token: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> RetreatSession:
    if not x_device_token:
        raise HTTPException(status_code=401, detail="Device token required")

    session = authenticate(db, x_device_token)
    if session is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return session
