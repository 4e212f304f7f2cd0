"""SQLAlchemy ORM models for PomoTrack."""

from datetime import datetime
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class Preference(Base):
    """One named snapshot field.  A missing row means "use the default"."""

    __tablename__ = "preferences"

    key = Column(String(64), primary_key=True)
    value = Column(String(64), nullable=False)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<Preference {self.key}={self.value}>"
