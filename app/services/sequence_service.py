"""
Sequence Service

Resolves the 5-digit structure sequence for a location bucket and guards
identity numbers against duplicates.

Two ways to get a sequence:
- ``next_sequence_for_location``: scans existing identity numbers sharing the
  10-character prefix and returns max + 1. Any failure (database error,
  malformed stored number) degrades to a timestamp pseudo-sequence, which is
  logged because it weakens uniqueness.
- ``allocate_sequence``: atomic counter per prefix in ``location_sequences``.
  The first allocation for a bucket seeds the counter from the scan; a
  concurrent seed loses on the primary key and retries the increment.
"""

from typing import Optional
import logging
import uuid

from sqlalchemy import select, update, exists
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import DuplicateIdentityError, SequenceResolutionError
from app.models.location_sequence import LocationSequence
from app.models.structure import Structure
from app.services.identity_codec import (
    LOCATION_PREFIX_LENGTH,
    SEQUENCE_FIELD,
    extract_sequence,
    timestamp_sequence,
)

logger = logging.getLogger(__name__)


async def _scan_max_sequence(db: AsyncSession, prefix: str) -> int:
    try:
        result = await db.execute(
            select(Structure.structural_identity_number).where(
                Structure.structural_identity_number.like(f"{prefix}%")
            )
        )
        numbers = result.scalars().all()
    except SQLAlchemyError as e:
        raise SequenceResolutionError(prefix, type(e).__name__) from e

    highest = 0
    for number in numbers:
        try:
            highest = max(highest, extract_sequence(number))
        except ValueError as e:
            raise SequenceResolutionError(prefix, f"malformed identity number {number}") from e
    return highest


async def next_sequence_for_location(db: AsyncSession, prefix: str) -> str:
    """
    Next 5-digit sequence for a location prefix, by scanning existing numbers.

    Args:
        db: Database session
        prefix: First 10 characters of the would-be identity number

    Returns:
        Zero-padded sequence string; a timestamp-derived one if the scan failed
    """
    try:
        highest = await _scan_max_sequence(db, prefix)
    except SequenceResolutionError as e:
        logger.warning(
            "Sequence resolution degraded for %s (%s); using timestamp sequence",
            prefix,
            e.reason,
        )
        return timestamp_sequence()
    return str(highest + 1).zfill(SEQUENCE_FIELD.width)


async def allocate_sequence(db: AsyncSession, prefix: str) -> int:
    """
    Atomically reserve the next sequence for a location prefix.

    The increment is a single UPDATE ... RETURNING, so two callers in the same
    bucket can never receive the same value once the counter exists.
    """
    if len(prefix) != LOCATION_PREFIX_LENGTH:
        raise ValueError(f"Location prefix must be {LOCATION_PREFIX_LENGTH} characters, got {prefix!r}")

    for attempt in range(1, settings.SEQUENCE_ALLOCATION_RETRIES + 1):
        result = await db.execute(
            update(LocationSequence)
            .where(LocationSequence.location_prefix == prefix)
            .values(last_sequence=LocationSequence.last_sequence + 1)
            .returning(LocationSequence.last_sequence)
        )
        allocated = result.scalar_one_or_none()
        if allocated is not None:
            return allocated

        seed = int(await next_sequence_for_location(db, prefix))
        try:
            async with db.begin_nested():
                db.add(LocationSequence(location_prefix=prefix, last_sequence=seed))
        except IntegrityError:
            logger.info("Sequence counter for %s seeded concurrently (attempt %d)", prefix, attempt)
            continue
        return seed

    raise SequenceResolutionError(prefix, "counter allocation retries exhausted")


async def raise_counter_floor(db: AsyncSession, prefix: str, sequence: int) -> None:
    """
    Move an existing counter up to ``sequence`` so allocation never hands it out.

    Used when a number is taken outside the counter (manual entry). A bucket
    without a counter needs nothing; its seed scan already sees the number.
    """
    await db.execute(
        update(LocationSequence)
        .where(LocationSequence.location_prefix == prefix)
        .where(LocationSequence.last_sequence < sequence)
        .values(last_sequence=sequence)
    )


async def identity_number_exists(
    db: AsyncSession,
    identity_number: str,
    exclude_structure_id: Optional[uuid.UUID] = None,
) -> bool:
    """Whether any structure, for any owner, already carries this number."""
    condition = Structure.structural_identity_number == identity_number
    if exclude_structure_id is not None:
        condition = condition & (Structure.id != exclude_structure_id)
    result = await db.execute(select(exists().where(condition)))
    return bool(result.scalar())


async def ensure_identity_available(
    db: AsyncSession,
    identity_number: str,
    exclude_structure_id: Optional[uuid.UUID] = None,
) -> None:
    """Raise ``DuplicateIdentityError`` if the number is already taken."""
    if await identity_number_exists(db, identity_number, exclude_structure_id):
        logger.warning("Duplicate structural identity number rejected: %s", identity_number)
        raise DuplicateIdentityError(identity_number)
