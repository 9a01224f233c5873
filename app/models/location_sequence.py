"""Per-location identity sequence counter."""

from sqlalchemy import Column, String, Integer, DateTime
from sqlalchemy.sql import func

from app.database import Base


class LocationSequence(Base):
    """Last sequence handed out for one 10-character location prefix."""

    __tablename__ = "location_sequences"

    location_prefix = Column(String(10), primary_key=True)
    last_sequence = Column(Integer, nullable=False, default=0)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<LocationSequence {self.location_prefix}={self.last_sequence}>"
