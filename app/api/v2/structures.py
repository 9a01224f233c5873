"""Structures API - intake screens, floors/flats, ratings, progress and submit."""

from fastapi import APIRouter, status
from pydantic import BaseModel, Field
import logging

from app.api.deps import DbSession, StructureRecord
from app.schemas.identity import GeneratedIdentity, LocationAssignment
from app.schemas.progress import ProgressView
from app.schemas.ratings import BulkRatingRequest, BulkUpdateSummary, FlatRatingsWrite
from app.schemas.structure import (
    Administration,
    Flat,
    FlatCreate,
    Floor,
    FloorCreate,
    GeometricDetails,
    StructureCreate,
    StructureHealthSummary,
    StructureResponse,
)
from app.services import structure_service
from app.services.progress_tracker import calculate_progress
from app.services.rating_calculator import summarize_structure

logger = logging.getLogger(__name__)
router = APIRouter()


class IdentityNumberWrite(BaseModel):
    structural_identity_number: str = Field(..., min_length=1, max_length=32)


def structure_to_response(structure) -> StructureResponse:
    return StructureResponse(
        id=str(structure.id),
        owner_id=structure.owner_id,
        document=structure_service.load_document(structure),
    )


@router.post("/", response_model=StructureResponse, status_code=status.HTTP_201_CREATED)
async def create_structure(data: StructureCreate, db: DbSession):
    """Create a draft structure."""
    structure = await structure_service.create_structure(db, data)
    return structure_to_response(structure)


@router.get("/{structure_id}", response_model=StructureResponse)
async def get_structure(structure: StructureRecord):
    return structure_to_response(structure)


@router.put("/{structure_id}/location", response_model=GeneratedIdentity)
async def save_location(assignment: LocationAssignment, structure: StructureRecord, db: DbSession):
    """Location screen: assigns the identity number on first save."""
    return await structure_service.assign_location(db, structure, assignment)


@router.put("/{structure_id}/identity-number", response_model=GeneratedIdentity)
async def save_identity_number(data: IdentityNumberWrite, structure: StructureRecord, db: DbSession):
    return await structure_service.set_identity_number(db, structure, data.structural_identity_number)


@router.put("/{structure_id}/administration", response_model=StructureResponse)
async def save_administration(data: Administration, structure: StructureRecord, db: DbSession):
    await structure_service.save_administration(db, structure, data)
    return structure_to_response(structure)


@router.put("/{structure_id}/geometric-details", response_model=StructureResponse)
async def save_geometric_details(data: GeometricDetails, structure: StructureRecord, db: DbSession):
    await structure_service.save_geometric_details(db, structure, data)
    return structure_to_response(structure)


@router.post("/{structure_id}/floors", response_model=Floor, status_code=status.HTTP_201_CREATED)
async def add_floor(data: FloorCreate, structure: StructureRecord, db: DbSession):
    return await structure_service.add_floor(db, structure, data)


@router.delete("/{structure_id}/floors/{floor_number}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_floor(floor_number: int, structure: StructureRecord, db: DbSession):
    await structure_service.remove_floor(db, structure, floor_number)


@router.post(
    "/{structure_id}/floors/{floor_number}/flats",
    response_model=Flat,
    status_code=status.HTTP_201_CREATED,
)
async def add_flat(floor_number: int, data: FlatCreate, structure: StructureRecord, db: DbSession):
    return await structure_service.add_flat(db, structure, floor_number, data)


@router.delete(
    "/{structure_id}/floors/{floor_number}/flats/{flat_number}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_flat(floor_number: int, flat_number: str, structure: StructureRecord, db: DbSession):
    await structure_service.remove_flat(db, structure, floor_number, flat_number)


@router.put("/{structure_id}/floors/{floor_number}/flats/{flat_number}/ratings", response_model=Flat)
async def write_flat_ratings(
    floor_number: int,
    flat_number: str,
    ratings: FlatRatingsWrite,
    structure: StructureRecord,
    db: DbSession,
):
    return await structure_service.write_flat_ratings(db, structure, floor_number, flat_number, ratings)


@router.post("/{structure_id}/ratings/bulk", response_model=BulkUpdateSummary)
async def bulk_update_ratings(request: BulkRatingRequest, structure: StructureRecord, db: DbSession):
    """
    Apply ratings across many floors/flats.

    Always answers 200; a non-empty ``errors`` list means partial success.
    """
    return await structure_service.apply_bulk_ratings(db, structure, request)


@router.get("/{structure_id}/progress", response_model=ProgressView)
async def get_progress(structure: StructureRecord):
    return calculate_progress(structure_service.load_document(structure))


@router.get("/{structure_id}/summary", response_model=StructureHealthSummary)
async def get_summary(structure: StructureRecord):
    return summarize_structure(structure_service.load_document(structure))


@router.post("/{structure_id}/submit", response_model=ProgressView)
async def submit_structure(structure: StructureRecord, db: DbSession):
    """Submit for review; rejected with 400 until progress reaches 100%."""
    return await structure_service.submit_structure(db, structure)
