from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship
from database import Base

class RetreatLeaderPhoneAllowlist(Base):
    __tablename__ = "retreat_leader_phone_allowlists"
    __table_args__ = (
        UniqueConstraint("retreat_id", "phone_e164", name="uq_retreat_leader_phone"),
    )

    id = Column(Integer, primary_key=True, index=True)
    retreat_id = Column(Integer, ForeignKey("retreats.id", ondelete="CASCADE"), nullable=False, index=True)
    phone_e164 = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    retreat = relationship("Retreat", back_populates="leader_phone_allowlist")
