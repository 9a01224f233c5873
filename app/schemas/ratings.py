"""Rating update schemas (single flat and bulk batches)."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.structure import FlatOverallRating


class ComponentRatingUpdate(BaseModel):
    """Payload entry for one component. Entries with ``rating=None`` are ignored."""
    rating: Optional[int] = Field(None, ge=1, le=5)
    condition_comment: Optional[str] = Field(None, max_length=1000)
    photos: Optional[list[str]] = None
    inspector_notes: Optional[str] = Field(None, max_length=2000)


class StructuralRatingUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    beams: Optional[ComponentRatingUpdate] = None
    columns: Optional[ComponentRatingUpdate] = None
    slab: Optional[ComponentRatingUpdate] = None
    foundation: Optional[ComponentRatingUpdate] = None


class NonStructuralRatingUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    brick_plaster: Optional[ComponentRatingUpdate] = None
    doors_windows: Optional[ComponentRatingUpdate] = None
    flooring_tiles: Optional[ComponentRatingUpdate] = None
    electrical_wiring: Optional[ComponentRatingUpdate] = None
    sanitary_fittings: Optional[ComponentRatingUpdate] = None
    railings: Optional[ComponentRatingUpdate] = None
    water_tanks: Optional[ComponentRatingUpdate] = None
    plumbing: Optional[ComponentRatingUpdate] = None
    sewage_system: Optional[ComponentRatingUpdate] = None
    panel_board: Optional[ComponentRatingUpdate] = None
    lifts: Optional[ComponentRatingUpdate] = None


class FlatRatingUpdate(BaseModel):
    flat_number: str = Field(..., min_length=1)
    structural: Optional[StructuralRatingUpdate] = None
    non_structural: Optional[NonStructuralRatingUpdate] = None


class FloorRatingUpdate(BaseModel):
    floor_number: int
    flats: list[FlatRatingUpdate] = Field(default_factory=list)


class BulkRatingRequest(BaseModel):
    floors: list[FloorRatingUpdate] = Field(..., min_length=1)


class FlatRatingsWrite(BaseModel):
    """Single-flat rating write."""
    structural: Optional[StructuralRatingUpdate] = None
    non_structural: Optional[NonStructuralRatingUpdate] = None


class FlatUpdateResult(BaseModel):
    """Outcome of one bulk sub-item. ``flat_number`` is None for floor-level failures."""
    floor_number: int
    flat_number: Optional[str] = None
    success: bool
    error: Optional[str] = None
    flat_overall_rating: Optional[FlatOverallRating] = None


class BulkUpdateSummary(BaseModel):
    updated_floors: int = 0
    updated_flats: int = 0
    errors: list[str] = Field(default_factory=list)
    results: list[FlatUpdateResult] = Field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.errors)
