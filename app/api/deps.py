"""
FastAPI Dependencies

Provides dependency injection for database sessions and structure lookup.
"""

from typing import Annotated, Optional
import uuid

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.structure import Structure
from app.services.structure_service import get_structure

DbSession = Annotated[AsyncSession, Depends(get_db)]

# Set by the caller's gateway once it has authenticated the inspector
OwnerId = Annotated[Optional[str], Header(alias="X-Owner-ID")]


async def get_structure_or_404(structure_id: uuid.UUID, db: DbSession, owner_id: OwnerId = None) -> Structure:
    """
    Resolve the ``structure_id`` path parameter; raises NotFoundError.

    With an ``X-Owner-ID`` header only that owner's structures are visible.
    Without it the lookup is unscoped.
    """
    return await get_structure(db, structure_id, owner_id=owner_id)


StructureRecord = Annotated[Structure, Depends(get_structure_or_404)]
