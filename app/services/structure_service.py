"""
Structure Service

Loads structure documents, runs the engine on them and writes them back as
one document per save. Screen saves move the status forward along the
intake sequence.
"""

from datetime import datetime
from typing import Optional
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import DuplicateIdentityError, NotFoundError, SequenceResolutionError, ValidationError
from app.models.structure import Structure
from app.schemas.identity import GeneratedIdentity, IdentityComponents, LocationAssignment, LocationDescriptor
from app.schemas.progress import ProgressView
from app.schemas.ratings import BulkRatingRequest, BulkUpdateSummary, FlatRatingsWrite
from app.schemas.structure import (
    Administration,
    Flat,
    FlatCreate,
    Floor,
    FloorCreate,
    GeometricDetails,
    StructuralIdentity,
    StructureCreate,
    StructureDocument,
    StructureStatus,
    StructureType,
)
from app.services import identity_codec, progress_tracker
from app.services.bulk_rating_service import apply_bulk, find_flat, find_floor, rate_flat
from app.services.sequence_service import (
    allocate_sequence,
    ensure_identity_available,
    identity_number_exists,
    raise_counter_floor,
)

logger = logging.getLogger(__name__)


def load_document(structure: Structure) -> StructureDocument:
    return StructureDocument.model_validate(structure.document)


async def save_document(db: AsyncSession, structure: Structure, document: StructureDocument) -> Structure:
    """
    Replace the stored document and its projected columns in one write.

    The unique index on the identity number is the last word on duplicates:
    a number taken between the availability check and this commit is
    reported as ``DuplicateIdentityError``.
    """
    number = document.structural_identity.structural_identity_number
    document.updated_at = datetime.utcnow()
    structure.document = document.model_dump(mode="json")
    structure.status = document.status.value
    structure.structural_identity_number = number
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        if number is None:
            raise
        logger.warning("Structural identity number %s taken concurrently; save rejected", number)
        raise DuplicateIdentityError(number)
    await db.refresh(structure)
    return structure


async def get_structure(
    db: AsyncSession,
    structure_id: uuid.UUID,
    owner_id: Optional[str] = None,
) -> Structure:
    query = select(Structure).where(Structure.id == structure_id)
    if owner_id is not None:
        query = query.where(Structure.owner_id == owner_id)
    result = await db.execute(query)
    structure = result.scalar_one_or_none()
    if not structure:
        raise NotFoundError("Structure", structure_id)
    return structure


async def create_structure(db: AsyncSession, data: StructureCreate) -> Structure:
    """Create a draft with a placeholder UID and no identity number."""
    now = datetime.utcnow()
    document = StructureDocument(
        structural_identity=StructuralIdentity(
            uid=identity_codec.generate_uid(now),
            type_of_structure=data.type_of_structure,
        ),
        status=StructureStatus.DRAFT,
        created_at=now,
        updated_at=now,
    )
    structure = Structure(
        id=uuid.uuid4(),
        owner_id=data.owner_id,
        status=document.status.value,
        document=document.model_dump(mode="json"),
    )
    db.add(structure)
    await db.commit()
    await db.refresh(structure)
    logger.info("Created draft structure %s for owner %s", structure.id, data.owner_id)
    return structure


async def assign_location(
    db: AsyncSession,
    structure: Structure,
    assignment: LocationAssignment,
) -> GeneratedIdentity:
    """
    Number the structure in its location bucket and record its position.

    A structure that already carries an identity number keeps it.
    """
    document = load_document(structure)
    identity = document.structural_identity
    descriptor = assignment.descriptor
    identity_codec.validate_location(descriptor)

    if identity.structural_identity_number:
        generated = None
        number = identity.structural_identity_number
    else:
        generated = await _allocate_identity(db, structure, descriptor)
        number = generated.structural_identity_number
        _apply_identity(identity, number, generated.components)

    if assignment.zip_code:
        identity.zip_code = assignment.zip_code
    document.location.coordinates = assignment.coordinates
    document.location.address = assignment.address
    document.location.landmark = assignment.landmark
    progress_tracker.advance_status(document, StructureStatus.LOCATION_COMPLETED)

    await save_document(db, structure, document)
    if generated is None:
        return _describe_identity(number)
    return generated


async def _allocate_identity(
    db: AsyncSession,
    structure: Structure,
    descriptor: LocationDescriptor,
) -> GeneratedIdentity:
    """
    Allocate sequences until the encoded number is free.

    Numbers taken outside the counter are skipped. If every attempt collides
    the counter advances are committed before the duplicate is reported, so
    the next save starts past them.
    """
    prefix = identity_codec.location_prefix(descriptor)
    for attempt in range(1, settings.SEQUENCE_ALLOCATION_RETRIES + 1):
        try:
            sequence = await allocate_sequence(db, prefix)
        except SequenceResolutionError as e:
            logger.warning(
                "Sequence allocation failed for %s (%s); using timestamp sequence",
                prefix,
                e.reason,
            )
            sequence = int(identity_codec.timestamp_sequence())
        generated = identity_codec.encode(descriptor, sequence)
        number = generated.structural_identity_number
        if not await identity_number_exists(db, number, exclude_structure_id=structure.id):
            return generated
        logger.info("Identity number %s already taken (attempt %d); allocating again", number, attempt)

    await db.commit()
    logger.warning("Duplicate structural identity number rejected: %s", number)
    raise DuplicateIdentityError(number)


def _apply_identity(identity: StructuralIdentity, number: str, components: IdentityComponents) -> None:
    identity.structural_identity_number = number
    identity.state_code = components.state_code
    identity.district_code = components.district_code
    identity.city_code = components.city_code
    identity.location_code = components.location_code
    identity.structure_sequence = components.structure_sequence
    identity.type_code = components.type_code
    if components.type_name:
        identity.type_of_structure = StructureType(components.type_name)


def _describe_identity(number: str) -> GeneratedIdentity:
    return GeneratedIdentity(
        structural_identity_number=number,
        formatted_display=identity_codec.format_display(number),
        components=identity_codec.decode(number),
        generated_at=datetime.utcnow(),
    )


async def set_identity_number(db: AsyncSession, structure: Structure, identity_number: str) -> GeneratedIdentity:
    """Accept a manually supplied identity number after validation and a duplicate check."""
    number = identity_number.strip().upper()
    if not identity_codec.validate_identity_number(number):
        raise ValidationError(f"Invalid structural identity number: {identity_number}")
    await ensure_identity_available(db, number, exclude_structure_id=structure.id)
    await raise_counter_floor(
        db,
        number[:identity_codec.LOCATION_PREFIX_LENGTH],
        identity_codec.extract_sequence(number),
    )

    document = load_document(structure)
    _apply_identity(document.structural_identity, number, identity_codec.decode(number))

    await save_document(db, structure, document)
    return _describe_identity(number)


async def save_administration(db: AsyncSession, structure: Structure, administration: Administration) -> StructureDocument:
    document = load_document(structure)
    document.administration = administration
    progress_tracker.advance_status(document, StructureStatus.ADMIN_COMPLETED)
    await save_document(db, structure, document)
    return document


async def save_geometric_details(db: AsyncSession, structure: Structure, details: GeometricDetails) -> StructureDocument:
    """Update the geometric summary; floors are managed separately and kept."""
    document = load_document(structure)
    current = document.geometric_details
    current.number_of_floors = details.number_of_floors
    current.structure_width = details.structure_width
    current.structure_length = details.structure_length
    current.structure_height = details.structure_height
    progress_tracker.advance_status(document, StructureStatus.GEOMETRIC_COMPLETED)
    await save_document(db, structure, document)
    return document


async def add_floor(db: AsyncSession, structure: Structure, data: FloorCreate) -> Floor:
    document = load_document(structure)
    if find_floor(document, data.floor_number) is not None:
        raise ValidationError(f"Floor {data.floor_number} already exists")
    floor = Floor(**data.model_dump())
    document.geometric_details.floors.append(floor)
    document.geometric_details.floors.sort(key=lambda f: f.floor_number)
    await save_document(db, structure, document)
    return floor


async def remove_floor(db: AsyncSession, structure: Structure, floor_number: int) -> None:
    document = load_document(structure)
    floor = find_floor(document, floor_number)
    if floor is None:
        raise NotFoundError("Floor", floor_number)
    document.geometric_details.floors.remove(floor)
    await save_document(db, structure, document)


async def add_flat(db: AsyncSession, structure: Structure, floor_number: int, data: FlatCreate) -> Flat:
    """New flats start with every rating component present and unrated."""
    document = load_document(structure)
    floor = find_floor(document, floor_number)
    if floor is None:
        raise NotFoundError("Floor", floor_number)
    if find_flat(floor, data.flat_number) is not None:
        raise ValidationError(f"Flat {data.flat_number} already exists on floor {floor_number}")
    flat = Flat(**data.model_dump())
    floor.flats.append(flat)
    await save_document(db, structure, document)
    return flat


async def remove_flat(db: AsyncSession, structure: Structure, floor_number: int, flat_number: str) -> None:
    document = load_document(structure)
    floor = find_floor(document, floor_number)
    if floor is None:
        raise NotFoundError("Floor", floor_number)
    flat = find_flat(floor, flat_number)
    if flat is None:
        raise NotFoundError("Flat", flat_number)
    floor.flats.remove(flat)
    await save_document(db, structure, document)


async def write_flat_ratings(
    db: AsyncSession,
    structure: Structure,
    floor_number: int,
    flat_number: str,
    ratings: FlatRatingsWrite,
) -> Flat:
    document = load_document(structure)
    flat = rate_flat(document, floor_number, flat_number, ratings)
    await save_document(db, structure, document)
    return flat


async def apply_bulk_ratings(db: AsyncSession, structure: Structure, request: BulkRatingRequest) -> BulkUpdateSummary:
    """Apply a batch and persist whatever succeeded."""
    document = load_document(structure)
    summary = apply_bulk(document, request.floors)
    await save_document(db, structure, document)
    return summary


async def submit_structure(db: AsyncSession, structure: Structure) -> ProgressView:
    document = load_document(structure)
    progress = progress_tracker.submit(document)
    await save_document(db, structure, document)
    logger.info("Structure %s submitted", structure.id)
    return progress
