from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database import Base

class RetreatWaypoint(Base):
    __tablename__ = "retreat_waypoints"

    id = Column(Integer, primary_key=True, index=True)
    retreat_id = Column(Integer, ForeignKey("retreats.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(255), nullable=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    waypoint_order = Column(Integer, nullable=False)
    eta = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    retreat = relationship("Retreat", back_populates="waypoints")
