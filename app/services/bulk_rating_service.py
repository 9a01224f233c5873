"""
Bulk Rating Service

Applies component rating updates to the flats of one structure document.

A bulk batch is write-what-succeeded: a floor or flat that cannot be found
is recorded as a failed sub-item and processing continues with the next
one. Callers persist the document afterwards regardless of failures and
should treat a non-empty error list as partial success.

The single-flat write shares the component update logic but surfaces a
missing floor/flat as ``NotFoundError``.
"""

from datetime import datetime
from typing import Optional, Union
import logging

from app.config import settings
from app.exceptions import NotFoundError, ValidationError
from app.schemas.ratings import (
    BulkUpdateSummary,
    ComponentRatingUpdate,
    FlatRatingsWrite,
    FlatRatingUpdate,
    FlatUpdateResult,
    FloorRatingUpdate,
    NonStructuralRatingUpdate,
    StructuralRatingUpdate,
)
from app.schemas.structure import (
    NON_STRUCTURAL_COMPONENTS,
    STRUCTURAL_COMPONENTS,
    Flat,
    Floor,
    RatingComponent,
    StructureDocument,
    StructureStatus,
)
from app.services.rating_calculator import recompute_flat

logger = logging.getLogger(__name__)


def find_floor(structure: StructureDocument, floor_number: int) -> Optional[Floor]:
    """First floor with this number; floor numbers are assumed unique."""
    for floor in structure.geometric_details.floors:
        if floor.floor_number == floor_number:
            return floor
    return None


def find_flat(floor: Floor, flat_number: str) -> Optional[Flat]:
    for flat in floor.flats:
        if flat.flat_number == flat_number:
            return flat
    return None


def _iter_entries(update: Union[FlatRatingUpdate, FlatRatingsWrite]):
    for group_update, names in (
        (update.structural, STRUCTURAL_COMPONENTS),
        (update.non_structural, NON_STRUCTURAL_COMPONENTS),
    ):
        if group_update is None:
            continue
        for name in names:
            entry = getattr(group_update, name)
            if entry is not None:
                yield name, entry


def validate_flat_update(update: Union[FlatRatingUpdate, FlatRatingsWrite]) -> None:
    """Checked before anything is written so a rejected flat is left untouched."""
    limit = settings.INSPECTION_MAX_PHOTOS_PER_COMPONENT
    for name, entry in _iter_entries(update):
        if entry.photos is not None and len(entry.photos) > limit:
            raise ValidationError(f"{name}: at most {limit} photos are allowed per component")


def _apply_component(component: RatingComponent, update: ComponentRatingUpdate, now: datetime) -> bool:
    if update.rating is None:
        return False

    component.rating = update.rating
    component.inspection_date = now
    if update.condition_comment is not None:
        component.condition_comment = update.condition_comment
    if update.photos is not None:
        component.photos = list(update.photos)
    if update.inspector_notes is not None:
        component.inspector_notes = update.inspector_notes
    return True


def _apply_group(
    group,
    update: Optional[Union[StructuralRatingUpdate, NonStructuralRatingUpdate]],
    names: tuple[str, ...],
    now: datetime,
) -> int:
    """Sparse update: components missing from the payload are left untouched."""
    if update is None:
        return 0
    changed = 0
    for name in names:
        entry = getattr(update, name)
        if entry is not None and _apply_component(getattr(group, name), entry, now):
            changed += 1
    return changed


def apply_flat_update(
    flat: Flat,
    update: Union[FlatRatingUpdate, FlatRatingsWrite],
    now: Optional[datetime] = None,
) -> Flat:
    """Write the supplied component ratings and recompute every derived field of the flat."""
    validate_flat_update(update)
    now = now or datetime.utcnow()
    changed = _apply_group(flat.structural_rating, update.structural, STRUCTURAL_COMPONENTS, now)
    changed += _apply_group(flat.non_structural_rating, update.non_structural, NON_STRUCTURAL_COMPONENTS, now)

    recompute_flat(flat, now=now)
    if changed:
        flat.last_inspection_date = now
    return flat


def _apply_floor(
    floor: Floor,
    floor_update: FloorRatingUpdate,
    summary: BulkUpdateSummary,
    now: datetime,
) -> int:
    processed = 0
    for flat_update in floor_update.flats:
        flat = find_flat(floor, flat_update.flat_number)
        if flat is None:
            _record_failure(
                summary,
                floor_update.floor_number,
                flat_update.flat_number,
                f"Flat {flat_update.flat_number} not found on floor {floor_update.floor_number}",
            )
            continue

        try:
            apply_flat_update(flat, flat_update, now=now)
        except ValidationError as exc:
            _record_failure(
                summary,
                floor_update.floor_number,
                flat_update.flat_number,
                f"Flat {flat_update.flat_number} on floor {floor_update.floor_number}: {exc.detail}",
            )
            continue

        processed += 1
        summary.results.append(
            FlatUpdateResult(
                floor_number=floor_update.floor_number,
                flat_number=flat.flat_number,
                success=True,
                flat_overall_rating=flat.flat_overall_rating,
            )
        )
    return processed


def _record_failure(summary: BulkUpdateSummary, floor_number: int, flat_number: Optional[str], message: str) -> None:
    logger.debug("Bulk rating sub-item failed: %s", message)
    summary.errors.append(message)
    summary.results.append(
        FlatUpdateResult(floor_number=floor_number, flat_number=flat_number, success=False, error=message)
    )


def apply_bulk(
    structure: StructureDocument,
    updates: list[FloorRatingUpdate],
    now: Optional[datetime] = None,
) -> BulkUpdateSummary:
    """
    Apply a batch of floor/flat rating updates in input order.

    Args:
        structure: Structure document, mutated in place
        updates: Floor updates, each listing flat updates
        now: Assessment timestamp (defaults to utcnow)

    Returns:
        BulkUpdateSummary with counts, error strings and one result per sub-item
    """
    now = now or datetime.utcnow()
    summary = BulkUpdateSummary()

    for floor_update in updates:
        floor = find_floor(structure, floor_update.floor_number)
        if floor is None:
            _record_failure(
                summary,
                floor_update.floor_number,
                None,
                f"Floor {floor_update.floor_number} not found",
            )
            continue

        processed = _apply_floor(floor, floor_update, summary, now)
        if processed:
            summary.updated_floors += 1
            summary.updated_flats += processed

    structure.status = StructureStatus.RATINGS_IN_PROGRESS
    structure.updated_at = now

    logger.info(
        "Bulk rating update for %s: %d floors, %d flats, %d errors",
        structure.structural_identity.uid,
        summary.updated_floors,
        summary.updated_flats,
        len(summary.errors),
    )
    return summary


def rate_flat(
    structure: StructureDocument,
    floor_number: int,
    flat_number: str,
    ratings: FlatRatingsWrite,
    now: Optional[datetime] = None,
) -> Flat:
    """Single-flat rating write; a missing floor or flat is a hard failure."""
    floor = find_floor(structure, floor_number)
    if floor is None:
        raise NotFoundError("Floor", floor_number)
    flat = find_flat(floor, flat_number)
    if flat is None:
        raise NotFoundError("Flat", flat_number)

    now = now or datetime.utcnow()
    apply_flat_update(flat, ratings, now=now)
    structure.status = StructureStatus.RATINGS_IN_PROGRESS
    structure.updated_at = now
    return flat
