from sqlalchemy import Column, Integer, Float, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from database import Base

class ParticipantLocation(Base):
    __tablename__ = "participant_locations"
    __table_args__ = (
        Index("ix_participant_locations_participant_recorded", "participant_id", "recorded_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    participant_id = Column(Integer, ForeignKey("retreat_participants.id", ondelete="CASCADE"), nullable=False, index=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    accuracy = Column(Float, nullable=True)
    speed = Column(Float, nullable=True)
    heading = Column(Float, nullable=True)
    altitude = Column(Float, nullable=True)
    recorded_at = Column(DateTime(timezone=True), nullable=False)  # client clock
    created_at = Column(DateTime(timezone=True), nullable=False)  # server receipt

    participant = relationship("RetreatParticipant", back_populates="locations")
