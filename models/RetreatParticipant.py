from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship
from database import Base

class RetreatParticipant(Base):
    __tablename__ = "retreat_participants"
    __table_args__ = (
        UniqueConstraint("retreat_id", "phone_e164", name="uq_retreat_participant_phone"),
    )

    id = Column(Integer, primary_key=True, index=True)
    retreat_id = Column(Integer, ForeignKey("retreats.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    phone_e164 = Column(String(20), nullable=True, index=True)  # continuity anchor
    gender = Column(String(10), nullable=True)
    is_leader = Column(Boolean, default=False, nullable=False)
    location_sharing_enabled = Column(Boolean, default=True, nullable=False)
    device_token = Column(String(64), unique=True, index=True, nullable=True)  # null = signed out
    expo_push_token = Column(String(255), nullable=True)
    vehicle_color = Column(String(30), nullable=True)
    vehicle_description = Column(String(50), nullable=True)
    avatar_path = Column(String(255), nullable=True)
    joined_at = Column(DateTime(timezone=True), nullable=False)
    last_seen_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    retreat = relationship("Retreat", back_populates="participants")
    locations = relationship("ParticipantLocation", back_populates="participant", cascade="all, delete-orphan")
    messages = relationship("RetreatMessage", back_populates="participant", cascade="all, delete-orphan")
