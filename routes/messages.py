from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, joinedload

import config
from models.RetreatMessage import RetreatMessage
from schemas import SendMessageRequest
from database import get_db
from services.retreat_auth import RetreatSession, get_retreat_session
from utils.datetime_helpers import iso, utcnow

router = APIRouter(prefix="/api/v1/retreat/messages", tags=["Messages"])


# =====================================================
#                 POST MESSAGE
# =====================================================
@router.post("", status_code=status.HTTP_201_CREATED)
def send_message(
    payload: SendMessageRequest,
    session: RetreatSession = Depends(get_retreat_session),
    db: Session = Depends(get_db),
):
    participant = session.participant
    message_type = payload.message_type or "chat"

    # Only leaders can send alerts
    if message_type == "alert" and not participant.is_leader:
        raise HTTPException(status_code=403, detail="Only leaders can send alerts")

    msg = RetreatMessage(
        retreat_id=session.retreat.id,
        participant_id=participant.id,
        message_type=message_type,
        content=payload.content,
        latitude=payload.latitude,
        longitude=payload.longitude,
        created_at=utcnow(),
    )
    db.add(msg)
    db.commit()
    db.refresh(msg)

    return {
        "data": {
            "id": msg.id,
            "message_type": msg.message_type,
            "content": msg.content,
            "sender": participant.name,
            "created_at": iso(msg.created_at),
        }
    }


# =====================================================
#                 GET MESSAGES
# =====================================================
@router.get("")
def list_messages(
    since_id: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    session: RetreatSession = Depends(get_retreat_session),
    db: Session = Depends(get_db),
):
    limit = min(limit if limit is not None else config.MESSAGE_PAGE_DEFAULT, config.MESSAGE_PAGE_MAX)
    limit = max(limit, 1)

    query = (
        db.query(RetreatMessage)
        .options(joinedload(RetreatMessage.participant))
        .filter(RetreatMessage.retreat_id == session.retreat.id)
    )
    if since_id:
        query = query.filter(RetreatMessage.id > since_id)

    # newest page first, returned in chronological order
    newest = query.order_by(RetreatMessage.created_at.desc(), RetreatMessage.id.desc()).limit(limit).all()
    messages = [
        {
            "id": m.id,
            "message_type": m.message_type,
            "content": m.content,
            "sender": {
                "id": m.participant.id,
                "name": m.participant.name,
                "is_leader": bool(m.participant.is_leader),
                "gender": m.participant.gender,
            },
            "location": {"lat": float(m.latitude), "lng": float(m.longitude)}
            if m.latitude is not None and m.longitude is not None else None,
            "created_at": iso(m.created_at),
        }
        for m in reversed(newest)
    ]

    return {
        "data": messages,
        "meta": {
            "latest_id": messages[-1]["id"] if messages else None,
            "count": len(messages),
        },
    }
