"""Structural identity number schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.structure import Coordinates, StructureType


class LocationDescriptor(BaseModel):
    """Geographic bucket and type a structure is numbered under."""
    state_code: str = Field(..., min_length=2, max_length=2)
    district_code: str = Field(..., min_length=1, max_length=2)
    city_code: str = Field(..., min_length=1, max_length=4)
    location_code: str = Field(..., min_length=1, max_length=2)
    type_of_structure: StructureType


class IdentityComponents(BaseModel):
    state_code: str
    district_code: str
    city_code: str
    location_code: str
    structure_sequence: str
    type_code: str
    type_name: Optional[str] = None


class GeneratedIdentity(BaseModel):
    structural_identity_number: str
    formatted_display: str
    components: IdentityComponents
    generated_at: datetime


class IdentityValidationResult(BaseModel):
    structure_number: str
    is_valid: bool
    parsed_components: Optional[IdentityComponents] = None
    error: Optional[str] = None


class BulkIdentityValidationRequest(BaseModel):
    structure_numbers: list[str] = Field(..., min_length=1, max_length=500)


class LocationPrefixInfo(BaseModel):
    location_prefix: str
    state_code: str
    district_code: str
    city_code: str
    location_code: str
    is_complete: bool
    level: str
    description: str


class LocationAssignment(BaseModel):
    """Location screen payload: numbering bucket plus the physical location."""
    descriptor: LocationDescriptor
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: Optional[str] = Field(None, max_length=500)
    landmark: Optional[str] = Field(None, max_length=200)
    zip_code: Optional[str] = Field(None, pattern=r"^\d{6}$")

    @property
    def coordinates(self) -> Coordinates:
        return Coordinates(latitude=self.latitude, longitude=self.longitude)


class NextSequenceResponse(BaseModel):
    location_prefix: str
    next_sequence: str
