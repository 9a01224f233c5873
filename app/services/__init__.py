# Services module
from app.services.rating_calculator import classify, combine, recompute_flat, Classification
from app.services.progress_tracker import calculate_progress, ensure_submittable
from app.services.bulk_rating_service import apply_bulk, rate_flat
from app.services.identity_codec import encode, decode, validate_identity_number

__all__ = [
    # Rating aggregation
    "classify",
    "combine",
    "recompute_flat",
    "Classification",
    # Progress
    "calculate_progress",
    "ensure_submittable",
    # Bulk updates
    "apply_bulk",
    "rate_flat",
    # Identity numbers
    "encode",
    "decode",
    "validate_identity_number",
]
