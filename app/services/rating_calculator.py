"""
Rating Calculator Service

Turns raw 1-5 component ratings into health classifications:
- Group level: mean of the rated components of a rating group, one decimal
- Flat level (combined score): Structural (70%) + Non-structural (30%)
- Structure level: mean of every rated flat's combined score

Averages are rounded half away from zero to one decimal. Both labels come
from the same thresholds on the rounded value:

    avg >= 4  Good      / Low
    avg >= 3  Fair      / Medium
    avg >= 2  Poor      / High
    else      Critical  / Critical

Nothing in here raises on missing data; an unassessed group or flat simply
yields ``None`` outputs.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from app.schemas.structure import (
    Flat,
    FlatOverallRating,
    HealthStatus,
    NonStructuralRating,
    Priority,
    RatingComponent,
    StructuralRating,
    StructureDocument,
    StructureHealthSummary,
)

STRUCTURAL_WEIGHT = Decimal("0.7")
NON_STRUCTURAL_WEIGHT = Decimal("0.3")

# (lower bound, health, priority), checked top-down
THRESHOLDS = (
    (4, HealthStatus.GOOD, Priority.LOW),
    (3, HealthStatus.FAIR, Priority.MEDIUM),
    (2, HealthStatus.POOR, Priority.HIGH),
)

# Months until the next inspection is due, by priority
INSPECTION_INTERVAL_MONTHS = {
    Priority.CRITICAL: 3,
    Priority.HIGH: 6,
    Priority.MEDIUM: 12,
    Priority.LOW: 24,
}

STRUCTURAL_ATTENTION_RATING = 2
NON_STRUCTURAL_ATTENTION_RATING = 1

_ONE_DECIMAL = Decimal("0.1")


@dataclass(frozen=True)
class Classification:
    """Rounded average with its health and priority labels."""

    average: Optional[float]
    health: Optional[HealthStatus]
    priority: Optional[Priority]

    @property
    def is_assessed(self) -> bool:
        return self.average is not None


UNASSESSED = Classification(average=None, health=None, priority=None)


def round_one_decimal(value) -> float:
    """Round half away from zero to one decimal place."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return float(value.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


def health_for(average: float) -> HealthStatus:
    for lower, health, _ in THRESHOLDS:
        if average >= lower:
            return health
    return HealthStatus.CRITICAL


def priority_for(average: float) -> Priority:
    for lower, _, priority in THRESHOLDS:
        if average >= lower:
            return priority
    return Priority.CRITICAL


def classify(ratings: Iterable[Optional[int]]) -> Classification:
    """
    Classify a list of ratings.

    ``None`` entries (unrated components) are discarded before averaging.
    An empty list yields an unassessed classification.
    """
    present = [r for r in ratings if r is not None]
    if not present:
        return UNASSESSED

    mean = Decimal(sum(present)) / Decimal(len(present))
    average = round_one_decimal(mean)
    return Classification(average=average, health=health_for(average), priority=priority_for(average))


def collect_ratings(components: Iterable[RatingComponent]) -> list[int]:
    return [c.rating for c in components if c.rating is not None]


def combine(
    structural_avg: Optional[float],
    non_structural_avg: Optional[float],
    now: Optional[datetime] = None,
) -> Optional[FlatOverallRating]:
    """
    Blend the two group averages of a flat.

    Both halves are required: if either average is missing there is no
    combined score at all.
    """
    if structural_avg is None or non_structural_avg is None:
        return None

    blended = (
        Decimal(str(structural_avg)) * STRUCTURAL_WEIGHT
        + Decimal(str(non_structural_avg)) * NON_STRUCTURAL_WEIGHT
    )
    combined = round_one_decimal(blended)
    return FlatOverallRating(
        combined_score=combined,
        health_status=health_for(combined),
        priority=priority_for(combined),
        last_assessment_date=now or datetime.utcnow(),
    )


def recompute_structural(group: StructuralRating) -> Classification:
    """Overwrite the derived fields of a structural group from its components."""
    result = classify(collect_ratings(group.components().values()))
    group.overall_average = result.average
    group.health_status = result.health
    return result


def recompute_non_structural(group: NonStructuralRating) -> Classification:
    """Overwrite the derived average of a non-structural group from its components."""
    result = classify(collect_ratings(group.components().values()))
    group.overall_average = result.average
    return result


def recompute_flat(flat: Flat, now: Optional[datetime] = None) -> Optional[FlatOverallRating]:
    """
    Recompute every derived field of a flat.

    The flat overall rating is replaced as a whole, and cleared when either
    group has no rated component left.
    """
    structural = recompute_structural(flat.structural_rating)
    non_structural = recompute_non_structural(flat.non_structural_rating)
    flat.flat_overall_rating = combine(structural.average, non_structural.average, now=now)
    return flat.flat_overall_rating


def requires_immediate_attention(flat: Flat) -> bool:
    """Any structural component at 2 or below, or any non-structural component at 1."""
    for component in flat.structural_rating.components().values():
        if component.rating is not None and component.rating <= STRUCTURAL_ATTENTION_RATING:
            return True
    for component in flat.non_structural_rating.components().values():
        if component.rating is not None and component.rating <= NON_STRUCTURAL_ATTENTION_RATING:
            return True
    return False


def _add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    # Clamp the day for short months (e.g. 31 Jan + 1 month)
    for day in (value.day, 30, 29, 28):
        try:
            return value.replace(year=year, month=month, day=day)
        except ValueError:
            continue
    return value.replace(year=year, month=month, day=28)


def next_inspection_date(priority: Optional[Priority], from_date: Optional[datetime] = None) -> datetime:
    """Lower priority means a longer interval; unassessed structures use the Low interval."""
    start = from_date or datetime.utcnow()
    months = INSPECTION_INTERVAL_MONTHS.get(priority, INSPECTION_INTERVAL_MONTHS[Priority.LOW])
    return _add_months(start, months)


def summarize_structure(structure: StructureDocument, now: Optional[datetime] = None) -> StructureHealthSummary:
    """Structure-level view over the stored flat overall ratings."""
    floors = structure.geometric_details.floors
    scores: list[float] = []
    attention: list[str] = []
    total_flats = 0

    for floor, flat in structure.iter_flats():
        total_flats += 1
        if flat.flat_overall_rating is not None:
            scores.append(flat.flat_overall_rating.combined_score)
        if requires_immediate_attention(flat):
            attention.append(f"{floor.floor_number}/{flat.flat_number}")

    average = None
    if scores:
        average = round_one_decimal(sum(Decimal(str(s)) for s in scores) / Decimal(len(scores)))

    details = structure.geometric_details
    total_area = None
    if details.structure_width and details.structure_length:
        total_area = details.structure_width * details.structure_length

    priority = priority_for(average) if average is not None else None
    return StructureHealthSummary(
        total_floors=len(floors),
        total_flats=total_flats,
        rated_flats=len(scores),
        total_area=total_area,
        average_score=average,
        health_status=health_for(average) if average is not None else None,
        priority=priority,
        flats_requiring_attention=attention,
        next_inspection_date=next_inspection_date(priority, now) if average is not None else None,
    )
