"""Operator-side management of the per-retreat leader phone allowlist."""
from sqlalchemy.orm import Session

from models.Retreat import Retreat
from models.RetreatLeaderPhoneAllowlist import RetreatLeaderPhoneAllowlist
from models.RetreatParticipant import RetreatParticipant
from services.phone_number import mask


def add_leader_phone(db: Session, retreat: Retreat, phone_e164: str) -> int:
    """Allowlist a phone and promote matching participants. Returns the promoted count."""
    exists = (
        db.query(RetreatLeaderPhoneAllowlist)
        .filter(
            RetreatLeaderPhoneAllowlist.retreat_id == retreat.id,
            RetreatLeaderPhoneAllowlist.phone_e164 == phone_e164,
        )
        .first()
    )
    if exists is None:
        db.add(RetreatLeaderPhoneAllowlist(retreat_id=retreat.id, phone_e164=phone_e164))

    promoted = (
        db.query(RetreatParticipant)
        .filter(
            RetreatParticipant.retreat_id == retreat.id,
            RetreatParticipant.phone_e164 == phone_e164,
            RetreatParticipant.is_leader.is_(False),
        )
        .update({RetreatParticipant.is_leader: True}, synchronize_session=False)
    )
    db.commit()
    return promoted


def remove_leader_phone(db: Session, retreat: Retreat, phone_e164: str) -> tuple[int, int]:
    """Drop a phone from the allowlist and demote matching leaders. Returns (deleted, demoted)."""
    deleted = (
        db.query(RetreatLeaderPhoneAllowlist)
        .filter(
            RetreatLeaderPhoneAllowlist.retreat_id == retreat.id,
            RetreatLeaderPhoneAllowlist.phone_e164 == phone_e164,
        )
        .delete(synchronize_session=False)
    )
    demoted = (
        db.query(RetreatParticipant)
        .filter(
            RetreatParticipant.retreat_id == retreat.id,
            RetreatParticipant.phone_e164 == phone_e164,
            RetreatParticipant.is_leader.is_(True),
        )
        .update({RetreatParticipant.is_leader: False}, synchronize_session=False)
    )
    db.commit()
    return deleted, demoted


def list_leader_phones(db: Session, retreat: Retreat) -> list[dict]:
    rows = (
        db.query(RetreatLeaderPhoneAllowlist)
        .filter(RetreatLeaderPhoneAllowlist.retreat_id == retreat.id)
        .order_by(RetreatLeaderPhoneAllowlist.phone_e164)
        .all()
    )
    return [
        {
            "phone_e164": row.phone_e164,
            "masked": mask(row.phone_e164),
            "added_at": row.created_at,
        }
        for row in rows
    ]
