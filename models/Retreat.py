from sqlalchemy import Column, Integer, String, DateTime, Float, Boolean, func
from sqlalchemy.orm import relationship
from database import Base

class Retreat(Base):
    __tablename__ = "retreats"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    code = Column(String(20), unique=True, index=True, nullable=False)  # always upper-case
    destination_name = Column(String(200), nullable=True)
    destination_lat = Column(Float, nullable=True)
    destination_lng = Column(Float, nullable=True)
    starts_at = Column(DateTime(timezone=True), nullable=False)
    ends_at = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    participants = relationship("RetreatParticipant", back_populates="retreat", cascade="all, delete-orphan")
    messages = relationship("RetreatMessage", back_populates="retreat", cascade="all, delete-orphan")
    waypoints = relationship(
        "RetreatWaypoint",
        back_populates="retreat",
        cascade="all, delete-orphan",
        order_by="RetreatWaypoint.waypoint_order",
    )
    leader_phone_allowlist = relationship("RetreatLeaderPhoneAllowlist", back_populates="retreat", cascade="all, delete-orphan")
