from sqlalchemy import Column, String, DateTime, func
from database import Base

class RetreatCodeAlias(Base):
    """Alternate join code (e.g. a numeric launch code) for a canonical retreat code."""
    __tablename__ = "retreat_code_aliases"

    alias = Column(String(20), primary_key=True)
    code = Column(String(20), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
