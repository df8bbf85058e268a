"""SQLAlchemy model for monitored individuals."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, func

from app.infrastructure.database import Base


class SubjectModel(Base):
    """Database representation of a monitored individual."""

    __tablename__ = "subject"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("caregiver.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    contact_id = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_response_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


__all__ = ["SubjectModel"]
