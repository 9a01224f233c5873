"""Structure document model.

The whole floor/flat/component tree lives in ``document``; the columns next
to it are projections kept for lookups (owner, identity number, status).
"""

from sqlalchemy import Column, String, DateTime, JSON, Uuid
from sqlalchemy.sql import func
import uuid

from app.database import Base


class Structure(Base):
    """Inspected building, stored as one document per row."""

    __tablename__ = "structures"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    owner_id = Column(String(64), nullable=False, index=True)

    # 17-char identity; unique across all owners, NULL while in draft
    structural_identity_number = Column(String(17), unique=True, nullable=True, index=True)
    status = Column(String(30), nullable=False, default="draft", index=True)

    document = Column(JSON, nullable=False)

    # Audit
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Structure {self.structural_identity_number or self.id} ({self.status})>"
