from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database import Base

MESSAGE_TYPES = ("chat", "alert", "status")

class RetreatMessage(Base):
    __tablename__ = "retreat_messages"

    id = Column(Integer, primary_key=True, index=True)
    retreat_id = Column(Integer, ForeignKey("retreats.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("retreat_participants.id", ondelete="CASCADE"), nullable=False, index=True)
    message_type = Column(String(10), default="chat", nullable=False)
    content = Column(String(500), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    retreat = relationship("Retreat", back_populates="messages")
    participant = relationship("RetreatParticipant", back_populates="messages")
