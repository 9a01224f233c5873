from app.schemas.structure import (
    HealthStatus,
    Priority,
    StructureStatus,
    StructureType,
    RatingComponent,
    StructuralRating,
    NonStructuralRating,
    FlatOverallRating,
    Flat,
    Floor,
    StructureDocument,
    StructureCreate,
    StructureResponse,
    StructureHealthSummary,
)
from app.schemas.identity import (
    LocationDescriptor,
    IdentityComponents,
    GeneratedIdentity,
    IdentityValidationResult,
    LocationAssignment,
)
from app.schemas.ratings import (
    ComponentRatingUpdate,
    FlatRatingUpdate,
    FloorRatingUpdate,
    BulkRatingRequest,
    BulkUpdateSummary,
    FlatUpdateResult,
)
from app.schemas.progress import ProgressView

__all__ = [
    # Structure document
    "HealthStatus",
    "Priority",
    "StructureStatus",
    "StructureType",
    "RatingComponent",
    "StructuralRating",
    "NonStructuralRating",
    "FlatOverallRating",
    "Flat",
    "Floor",
    "StructureDocument",
    "StructureCreate",
    "StructureResponse",
    "StructureHealthSummary",
    # Identity
    "LocationDescriptor",
    "IdentityComponents",
    "GeneratedIdentity",
    "IdentityValidationResult",
    "LocationAssignment",
    # Ratings
    "ComponentRatingUpdate",
    "FlatRatingUpdate",
    "FloorRatingUpdate",
    "BulkRatingRequest",
    "BulkUpdateSummary",
    "FlatUpdateResult",
    # Progress
    "ProgressView",
]
