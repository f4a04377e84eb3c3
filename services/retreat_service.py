"""Retreat lookup and administration helpers."""
import secrets
import string
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from models.Retreat import Retreat
from models.RetreatCodeAlias import RetreatCodeAlias
from utils.datetime_helpers import utcnow

CODE_ALPHABET = string.ascii_uppercase + string.digits


def canonical_code(code: str) -> str:
    return code.strip().upper()


def resolve_code_alias(db: Session, code: str) -> str:
    """Map a submitted join code to its canonical retreat code."""
    code = canonical_code(code)
    alias = db.query(RetreatCodeAlias).filter(RetreatCodeAlias.alias == code).first()
    return alias.code if alias else code


def joinable_filter(query, now: Optional[datetime] = None):
    """A retreat is joinable while it is active and has not ended."""
    now = now or utcnow()
    return query.filter(Retreat.is_active.is_(True), Retreat.ends_at >= now)


def find_joinable_retreat(db: Session, code: str) -> Optional[Retreat]:
    code = resolve_code_alias(db, code)
    return joinable_filter(db.query(Retreat).filter(Retreat.code == code)).first()


def resolve_retreat(db: Session, value: str) -> Optional[Retreat]:
    """Find a retreat by numeric id or by code (admin tooling)."""
    value = value.strip()
    if value.isdigit():
        found = db.query(Retreat).filter(Retreat.id == int(value)).first()
        if found:
            return found
    return db.query(Retreat).filter(Retreat.code == canonical_code(value)).first()


def generate_code(length: int = 8) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def create_retreat(
    db: Session,
    name: str,
    code: Optional[str] = None,
    destination_name: Optional[str] = None,
    destination_lat: Optional[float] = None,
    destination_lng: Optional[float] = None,
    starts_at: Optional[datetime] = None,
    ends_at: Optional[datetime] = None,
) -> Retreat:
    code = canonical_code(code) if code else generate_code()
    if db.query(Retreat).filter(Retreat.code == code).first():
        raise ValueError(f"A retreat with code '{code}' already exists.")

    now = utcnow()
    retreat = Retreat(
        name=name,
        code=code,
        destination_name=destination_name,
        destination_lat=destination_lat,
        destination_lng=destination_lng,
        starts_at=starts_at or now,
        ends_at=ends_at or now + timedelta(days=3),
        is_active=True,
    )
    db.add(retreat)
    db.commit()
    db.refresh(retreat)
    return retreat


def add_code_alias(db: Session, alias: str, code: str) -> RetreatCodeAlias:
    """Point `alias` at `code`, replacing any previous target."""
    alias = canonical_code(alias)
    row = db.query(RetreatCodeAlias).filter(RetreatCodeAlias.alias == alias).first()
    if row is None:
        row = RetreatCodeAlias(alias=alias, code=canonical_code(code))
        db.add(row)
    else:
        row.code = canonical_code(code)
    db.commit()
    db.refresh(row)
    return row


def destination_payload(retreat: Retreat) -> Optional[dict]:
    if not retreat.destination_name:
        return None
    return {
        "name": retreat.destination_name,
        "lat": float(retreat.destination_lat) if retreat.destination_lat is not None else None,
        "lng": float(retreat.destination_lng) if retreat.destination_lng is not None else None,
    }
