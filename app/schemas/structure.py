"""Structure document schemas.

A structure is stored and exchanged as one document:
Structure -> geometric_details.floors -> flats -> rating components.
The rating group averages and the flat overall rating are derived fields;
they are recomputed in full by ``app.services.rating_calculator`` whenever a
component changes and must never be patched independently.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
import uuid

from pydantic import BaseModel, Field


STRUCTURAL_COMPONENTS = ("beams", "columns", "slab", "foundation")

NON_STRUCTURAL_COMPONENTS = (
    "brick_plaster",
    "doors_windows",
    "flooring_tiles",
    "electrical_wiring",
    "sanitary_fittings",
    "railings",
    "water_tanks",
    "plumbing",
    "sewage_system",
    "panel_board",
    "lifts",
)


def _new_id() -> str:
    return uuid.uuid4().hex


# ---- Enums ----

class HealthStatus(str, Enum):
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    CRITICAL = "Critical"


class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class StructureStatus(str, Enum):
    DRAFT = "draft"
    LOCATION_COMPLETED = "location_completed"
    ADMIN_COMPLETED = "admin_completed"
    GEOMETRIC_COMPLETED = "geometric_completed"
    RATINGS_IN_PROGRESS = "ratings_in_progress"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REQUIRES_INSPECTION = "requires_inspection"
    MAINTENANCE_NEEDED = "maintenance_needed"


class StructureType(str, Enum):
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    EDUCATIONAL = "educational"
    HOSPITAL = "hospital"
    INDUSTRIAL = "industrial"


class FloorType(str, Enum):
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    MIXED = "mixed"
    PARKING = "parking"
    UTILITY = "utility"
    RECREATIONAL = "recreational"


class FlatType(str, Enum):
    ONE_BHK = "1bhk"
    TWO_BHK = "2bhk"
    THREE_BHK = "3bhk"
    FOUR_BHK = "4bhk"
    FIVE_BHK = "5bhk"
    STUDIO = "studio"
    DUPLEX = "duplex"
    PENTHOUSE = "penthouse"
    SHOP = "shop"
    OFFICE = "office"


class Direction(str, Enum):
    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"
    NORTHEAST = "northeast"
    NORTHWEST = "northwest"
    SOUTHEAST = "southeast"
    SOUTHWEST = "southwest"


class OccupancyStatus(str, Enum):
    OCCUPIED = "occupied"
    VACANT = "vacant"
    UNDER_RENOVATION = "under_renovation"
    LOCKED = "locked"


# ---- Rating components ----

class RatingComponent(BaseModel):
    """Single 1-5 condition assessment. ``rating=None`` means unrated."""
    rating: Optional[int] = Field(None, ge=1, le=5)
    condition_comment: str = Field("", max_length=1000)
    inspection_date: Optional[datetime] = None
    photos: list[str] = Field(default_factory=list)
    inspector_notes: str = Field("", max_length=2000)


class StructuralRating(BaseModel):
    beams: RatingComponent = Field(default_factory=RatingComponent)
    columns: RatingComponent = Field(default_factory=RatingComponent)
    slab: RatingComponent = Field(default_factory=RatingComponent)
    foundation: RatingComponent = Field(default_factory=RatingComponent)

    # Derived
    overall_average: Optional[float] = None
    health_status: Optional[HealthStatus] = None

    def components(self) -> dict[str, RatingComponent]:
        return {name: getattr(self, name) for name in STRUCTURAL_COMPONENTS}


class NonStructuralRating(BaseModel):
    brick_plaster: RatingComponent = Field(default_factory=RatingComponent)
    doors_windows: RatingComponent = Field(default_factory=RatingComponent)
    flooring_tiles: RatingComponent = Field(default_factory=RatingComponent)
    electrical_wiring: RatingComponent = Field(default_factory=RatingComponent)
    sanitary_fittings: RatingComponent = Field(default_factory=RatingComponent)
    railings: RatingComponent = Field(default_factory=RatingComponent)
    water_tanks: RatingComponent = Field(default_factory=RatingComponent)
    plumbing: RatingComponent = Field(default_factory=RatingComponent)
    sewage_system: RatingComponent = Field(default_factory=RatingComponent)
    panel_board: RatingComponent = Field(default_factory=RatingComponent)
    lifts: RatingComponent = Field(default_factory=RatingComponent)

    # Derived
    overall_average: Optional[float] = None

    def components(self) -> dict[str, RatingComponent]:
        return {name: getattr(self, name) for name in NON_STRUCTURAL_COMPONENTS}


class FlatOverallRating(BaseModel):
    """Weighted blend of the two group averages of a flat."""
    combined_score: float
    health_status: HealthStatus
    priority: Priority
    last_assessment_date: datetime


# ---- Floors and flats ----

class Flat(BaseModel):
    flat_id: str = Field(default_factory=_new_id)
    flat_number: str = Field(..., min_length=1, max_length=20)
    flat_type: Optional[FlatType] = None
    area_sq_mts: Optional[float] = Field(None, gt=0)
    direction_facing: Optional[Direction] = None
    occupancy_status: Optional[OccupancyStatus] = None
    structural_rating: StructuralRating = Field(default_factory=StructuralRating)
    non_structural_rating: NonStructuralRating = Field(default_factory=NonStructuralRating)
    flat_overall_rating: Optional[FlatOverallRating] = None
    flat_notes: str = ""
    last_inspection_date: Optional[datetime] = None


class Floor(BaseModel):
    floor_id: str = Field(default_factory=_new_id)
    floor_number: int = Field(..., gt=0)
    floor_type: Optional[FloorType] = None
    floor_label_name: Optional[str] = Field(None, max_length=50)
    floor_height: Optional[float] = Field(None, gt=0)
    total_area_sq_mts: Optional[float] = Field(None, gt=0)
    flats: list[Flat] = Field(default_factory=list)
    floor_notes: str = ""


# ---- Structure sections ----

class StructuralIdentity(BaseModel):
    uid: str
    structural_identity_number: Optional[str] = Field(None, min_length=17, max_length=17)
    zip_code: Optional[str] = Field(None, pattern=r"^\d{6}$")
    state_code: Optional[str] = None
    district_code: Optional[str] = None
    city_code: Optional[str] = None
    location_code: Optional[str] = None
    structure_sequence: Optional[str] = None
    type_of_structure: StructureType = StructureType.RESIDENTIAL
    type_code: Optional[str] = None


class Coordinates(BaseModel):
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class Location(BaseModel):
    coordinates: Coordinates = Field(default_factory=Coordinates)
    address: Optional[str] = Field(None, max_length=500)
    landmark: Optional[str] = Field(None, max_length=200)


class Administration(BaseModel):
    client_name: Optional[str] = Field(None, max_length=200)
    custodian: Optional[str] = Field(None, max_length=200)
    engineer_designation: Optional[str] = Field(None, max_length=200)
    contact_details: Optional[str] = Field(None, max_length=200)
    email_id: Optional[str] = Field(None, max_length=255)
    organization: Optional[str] = Field(None, max_length=200)


class GeometricDetails(BaseModel):
    number_of_floors: Optional[int] = Field(None, ge=1, le=200)
    structure_width: Optional[float] = Field(None, gt=0)
    structure_length: Optional[float] = Field(None, gt=0)
    structure_height: Optional[float] = Field(None, gt=0)
    floors: list[Floor] = Field(default_factory=list)


class StructureDocument(BaseModel):
    """Full structure document as persisted and as handled by the engine."""
    structural_identity: StructuralIdentity
    location: Location = Field(default_factory=Location)
    administration: Administration = Field(default_factory=Administration)
    geometric_details: GeometricDetails = Field(default_factory=GeometricDetails)
    status: StructureStatus = StructureStatus.DRAFT
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def floors(self) -> list[Floor]:
        return self.geometric_details.floors

    def iter_flats(self):
        for floor in self.geometric_details.floors:
            for flat in floor.flats:
                yield floor, flat


# ---- Request/response wrappers ----

class StructureCreate(BaseModel):
    """Schema for creating a draft structure."""
    owner_id: str = Field(..., min_length=1, max_length=64)
    type_of_structure: StructureType = StructureType.RESIDENTIAL


class FloorCreate(BaseModel):
    floor_number: int = Field(..., gt=0)
    floor_type: Optional[FloorType] = None
    floor_label_name: Optional[str] = Field(None, max_length=50)
    floor_height: Optional[float] = Field(None, gt=0)
    total_area_sq_mts: Optional[float] = Field(None, gt=0)
    floor_notes: str = ""


class FlatCreate(BaseModel):
    flat_number: str = Field(..., min_length=1, max_length=20)
    flat_type: Optional[FlatType] = None
    area_sq_mts: Optional[float] = Field(None, gt=0)
    direction_facing: Optional[Direction] = None
    occupancy_status: Optional[OccupancyStatus] = None
    flat_notes: str = ""


class StructureResponse(BaseModel):
    id: str
    owner_id: str
    document: StructureDocument


class StructureHealthSummary(BaseModel):
    """Structure-level aggregate over every rated flat."""
    total_floors: int
    total_flats: int
    rated_flats: int
    total_area: Optional[float] = None
    average_score: Optional[float] = None
    health_status: Optional[HealthStatus] = None
    priority: Optional[Priority] = None
    flats_requiring_attention: list[str] = Field(default_factory=list)
    next_inspection_date: Optional[datetime] = None
