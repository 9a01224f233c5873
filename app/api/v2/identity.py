"""Identity API - structural identity number codec and sequence lookup."""

from fastapi import APIRouter

from app.api.deps import DbSession
from app.schemas.identity import (
    BulkIdentityValidationRequest,
    IdentityComponents,
    IdentityValidationResult,
    LocationDescriptor,
    LocationPrefixInfo,
    NextSequenceResponse,
)
from app.services import identity_codec
from app.services.sequence_service import next_sequence_for_location

router = APIRouter()


@router.get("/decode/{identity_number}", response_model=IdentityComponents)
async def decode_identity_number(identity_number: str):
    """Structural decode; only the 17-character length is enforced."""
    return identity_codec.decode(identity_number)


@router.post("/validate", response_model=list[IdentityValidationResult])
async def validate_identity_numbers(request: BulkIdentityValidationRequest):
    return identity_codec.bulk_validate(request.structure_numbers)


@router.get("/prefix/{prefix}", response_model=LocationPrefixInfo)
async def describe_prefix(prefix: str):
    return identity_codec.location_prefix_info(prefix)


@router.post("/next-sequence", response_model=NextSequenceResponse)
async def preview_next_sequence(descriptor: LocationDescriptor, db: DbSession):
    """Preview the next sequence for a bucket by scanning; nothing is reserved."""
    identity_codec.validate_location(descriptor)
    prefix = identity_codec.location_prefix(descriptor)
    sequence = await next_sequence_for_location(db, prefix)
    return NextSequenceResponse(location_prefix=prefix, next_sequence=sequence)
