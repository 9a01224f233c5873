"""
Progress Tracker Service

Computes how much of a structure's intake workflow is complete. The view is
recomputed on every call and never stored.

Milestones (each worth 1/6 of the percentage):
- location: identity number assigned and latitude recorded
- administrative: client name and email recorded
- geometric_details: width and height recorded (length is not checked)
- floors_added: at least one floor
- flats_added: at least one floor has a flat
- flat_ratings_completed: every flat has a combined score
"""

from datetime import datetime
from typing import Optional
import logging

from app.exceptions import IncompleteStructureError
from app.schemas.progress import ProgressView
from app.schemas.structure import StructureDocument, StructureStatus

logger = logging.getLogger(__name__)

TOTAL_MILESTONES = 6

# Intake order; screen saves only ever move a structure forward along it
INTAKE_SEQUENCE = (
    StructureStatus.DRAFT,
    StructureStatus.LOCATION_COMPLETED,
    StructureStatus.ADMIN_COMPLETED,
    StructureStatus.GEOMETRIC_COMPLETED,
    StructureStatus.RATINGS_IN_PROGRESS,
    StructureStatus.SUBMITTED,
)


def calculate_progress(structure: StructureDocument) -> ProgressView:
    """Evaluate the six intake milestones of a structure."""
    identity = structure.structural_identity
    coordinates = structure.location.coordinates
    admin = structure.administration
    geometry = structure.geometric_details

    view = ProgressView()
    view.location = bool(identity.structural_identity_number) and coordinates.latitude is not None
    view.administrative = bool(admin.client_name) and bool(admin.email_id)
    view.geometric_details = geometry.structure_width is not None and geometry.structure_height is not None
    view.floors_added = len(geometry.floors) > 0
    view.flats_added = any(len(floor.flats) > 0 for floor in geometry.floors)

    if view.flats_added:
        view.flat_ratings_completed = _all_flats_rated(structure)

    completed = sum(1 for done in view.flags().values() if done)
    view.overall_percentage = round(100 * completed / TOTAL_MILESTONES)
    return view


def _all_flats_rated(structure: StructureDocument) -> bool:
    for _, flat in structure.iter_flats():
        rating = flat.flat_overall_rating
        if rating is None or rating.combined_score is None:
            return False
    return True


def ensure_submittable(structure: StructureDocument) -> ProgressView:
    """Raise ``IncompleteStructureError`` unless every milestone is satisfied."""
    progress = calculate_progress(structure)
    if not progress.is_complete:
        logger.info(
            "Submit refused for %s at %d%% (missing: %s)",
            structure.structural_identity.uid,
            progress.overall_percentage,
            ", ".join(progress.missing()),
        )
        raise IncompleteStructureError(progress.overall_percentage, progress.missing())
    return progress


def submit(structure: StructureDocument, now: Optional[datetime] = None) -> ProgressView:
    """Move a complete structure to ``submitted``."""
    progress = ensure_submittable(structure)
    structure.status = StructureStatus.SUBMITTED
    structure.updated_at = now or datetime.utcnow()
    return progress


def advance_status(structure: StructureDocument, target: StructureStatus) -> StructureStatus:
    """
    Move the structure forward to ``target`` after a screen save.

    Statuses outside the intake sequence (approved, maintenance_needed, ...)
    and statuses already past ``target`` are left unchanged.
    """
    current = structure.status
    if current not in INTAKE_SEQUENCE or target not in INTAKE_SEQUENCE:
        return current
    if INTAKE_SEQUENCE.index(target) > INTAKE_SEQUENCE.index(current):
        structure.status = target
    return structure.status
