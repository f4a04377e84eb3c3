"""
Collapsing of participant rows that represent one person.

Before joins were keyed by phone, a rejoin created a fresh row, so a
retreat can hold several rows with the same display name. Only names in an
explicit collision set are treated as duplicates.
"""
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from models.ParticipantLocation import ParticipantLocation
from models.RetreatMessage import RetreatMessage
from models.RetreatParticipant import RetreatParticipant
from utils.datetime_helpers import as_utc


def normalize_name(name: Optional[str]) -> str:
    return (name or "").strip().lower()


def _last_seen_ts(participant) -> float:
    last_seen = as_utc(participant.last_seen_at)
    return last_seen.timestamp() if last_seen else 0


def _most_recent(group: list) -> Optional[RetreatParticipant]:
    best = None
    for participant in group:
        if best is None:
            best = participant
            continue
        ts, best_ts = _last_seen_ts(participant), _last_seen_ts(best)
        if ts > best_ts or (ts == best_ts and participant.id > best.id):
            best = participant
    return best


def pick_canonical(group: list, current_participant_id: int) -> RetreatParticipant:
    """Caller's own row, else a phone-linked row, else the most recently seen, else the first."""
    current = next((p for p in group if p.id == current_participant_id), None)
    phone_linked = next((p for p in group if (p.phone_e164 or "").strip()), None)
    return current or phone_linked or _most_recent(group) or group[0]


def collapse_duplicate_names(
    participants: Iterable[RetreatParticipant],
    current_participant_id: int,
    names: Iterable[str],
) -> list[RetreatParticipant]:
    """Read-time collapse for the roster; stored rows are untouched.

    Groups keep the position of their first member.
    """
    collision_set = {normalize_name(n) for n in names if normalize_name(n)}

    groups: dict[str, list] = {}
    for participant in participants:
        groups.setdefault(normalize_name(participant.name), []).append(participant)

    result = []
    for name, group in groups.items():
        if name not in collision_set or len(group) <= 1:
            result.extend(group)
            continue
        result.append(pick_canonical(group, current_participant_id))
    return result


def merge_duplicate_participants(db: Session, retreat_id: int, name: str) -> Optional[int]:
    """Permanently merge same-name rows in one retreat into a single row.

    Keeps a phone-linked row, else a leader row, else the most recently seen.
    Locations and messages move to the kept row before the others are deleted.
    Returns the kept id, or None when there was nothing to merge.
    """
    target = normalize_name(name)
    rows = (
        db.query(RetreatParticipant)
        .filter(RetreatParticipant.retreat_id == retreat_id)
        .order_by(RetreatParticipant.id.desc())
        .all()
    )
    group = [p for p in rows if normalize_name(p.name) == target]
    if len(group) <= 1:
        return None

    keep = (
        next((p for p in group if (p.phone_e164 or "").strip()), None)
        or next((p for p in group if p.is_leader), None)
        or _most_recent(group)
    )
    keep_id = keep.id
    drop_ids = [p.id for p in group if p.id != keep_id]

    try:
        if any(p.is_leader for p in group):
            keep.is_leader = True

        db.query(ParticipantLocation).filter(ParticipantLocation.participant_id.in_(drop_ids)).update(
            {ParticipantLocation.participant_id: keep_id}, synchronize_session=False
        )
        db.query(RetreatMessage).filter(RetreatMessage.participant_id.in_(drop_ids)).update(
            {RetreatMessage.participant_id: keep_id}, synchronize_session=False
        )
        db.query(RetreatParticipant).filter(RetreatParticipant.id.in_(drop_ids)).delete(synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.expire_all()
    return keep_id
