"""
Structural Identity Codec

Structural identity numbers are 17 fixed-width characters:

    KA 01 BANG BG 00007 01
    |  |  |    |  |     +-- type code (2)
    |  |  |    |  +-------- structure sequence (5, zero padded)
    |  |  |    +----------- location code (2)
    |  |  +---------------- city code (4)
    |  +------------------- district code (2)
    +---------------------- state code (2)

``IDENTITY_LAYOUT`` is the only place the field widths live; encoding,
decoding, prefix and sequence extraction are all derived from it.

The codec does not allocate sequences. Callers obtain one from
``app.services.sequence_service`` and pass it in.
"""

from datetime import datetime
from typing import NamedTuple, Optional
import random
import re

from app.exceptions import ValidationError
from app.schemas.identity import (
    GeneratedIdentity,
    IdentityComponents,
    IdentityValidationResult,
    LocationDescriptor,
    LocationPrefixInfo,
)
from app.schemas.structure import StructureType


class IdentityField(NamedTuple):
    name: str
    offset: int
    width: int

    @property
    def end(self) -> int:
        return self.offset + self.width


def _build_layout(*fields: tuple[str, int]) -> tuple[IdentityField, ...]:
    layout = []
    offset = 0
    for name, width in fields:
        layout.append(IdentityField(name, offset, width))
        offset += width
    return tuple(layout)


IDENTITY_LAYOUT = _build_layout(
    ("state_code", 2),
    ("district_code", 2),
    ("city_code", 4),
    ("location_code", 2),
    ("structure_sequence", 5),
    ("type_code", 2),
)
LAYOUT_BY_NAME = {f.name: f for f in IDENTITY_LAYOUT}
IDENTITY_LENGTH = IDENTITY_LAYOUT[-1].end

SEQUENCE_FIELD = LAYOUT_BY_NAME["structure_sequence"]
LOCATION_PREFIX_LENGTH = SEQUENCE_FIELD.offset
MAX_SEQUENCE = 10 ** SEQUENCE_FIELD.width - 1

STRUCTURE_TYPE_CODES = {
    StructureType.RESIDENTIAL: "01",
    StructureType.COMMERCIAL: "02",
    StructureType.EDUCATIONAL: "03",
    StructureType.HOSPITAL: "04",
    StructureType.INDUSTRIAL: "05",
}
TYPE_CODE_NAMES = {code: kind.value for kind, code in STRUCTURE_TYPE_CODES.items()}

VALID_STATE_CODES = frozenset({
    "AN", "AP", "AR", "AS", "BR", "CH", "CG", "DD", "DL", "DN", "GA", "GJ",
    "HP", "HR", "JH", "JK", "KA", "KL", "LD", "MH", "ML", "MN", "MP", "MZ",
    "NL", "OD", "PB", "PY", "RJ", "SK", "TN", "TS", "TR", "UK", "UP", "WB",
})

IDENTITY_PATTERN = re.compile(r"^[A-Z]{2}[0-9]{2}[A-Z]{4}[A-Z]{2}[0-9]{5}[0-9]{2}$")
_DISTRICT_PATTERN = re.compile(r"^[0-9]{1,2}$")
_CITY_PATTERN = re.compile(r"^[A-Za-z]{1,4}$")
_LOCATION_PATTERN = re.compile(r"^[A-Za-z]{1,2}$")

PAD_CHAR = "X"

# Prefix length -> level of the location hierarchy it names
PREFIX_LEVELS = {2: "state", 4: "district", 8: "city", 10: "location"}


# ---- Field formatting ----

def format_state_code(value: str) -> str:
    return value.upper().ljust(2, PAD_CHAR)[:2]


def format_district_code(value) -> str:
    return str(value).rjust(2, "0")[:2]


def format_city_code(value: str) -> str:
    return value.upper().ljust(4, PAD_CHAR)[:4]


def format_location_code(value: str) -> str:
    return value.upper().ljust(2, PAD_CHAR)[:2]


def format_sequence(sequence: int) -> str:
    if sequence < 0 or sequence > MAX_SEQUENCE:
        raise ValidationError(f"Structure sequence must be between 0 and {MAX_SEQUENCE}, got {sequence}")
    return str(sequence).zfill(SEQUENCE_FIELD.width)


def type_code_for(type_of_structure) -> str:
    try:
        return STRUCTURE_TYPE_CODES[StructureType(type_of_structure)]
    except ValueError:
        allowed = ", ".join(t.value for t in StructureType)
        raise ValidationError(f"Invalid structure type: {type_of_structure}. Must be one of: {allowed}")


def validate_location(descriptor: LocationDescriptor) -> None:
    """Check a descriptor against the code tables before it is numbered."""
    if descriptor.state_code.upper() not in VALID_STATE_CODES:
        raise ValidationError(f"Invalid state code: {descriptor.state_code}")
    if not _DISTRICT_PATTERN.match(descriptor.district_code):
        raise ValidationError("District code must be 1-2 digits")
    if not _CITY_PATTERN.match(descriptor.city_code):
        raise ValidationError("City code must be 1-4 alphabetic characters")
    if not _LOCATION_PATTERN.match(descriptor.location_code):
        raise ValidationError("Location code must be 1-2 alphabetic characters")
    type_code_for(descriptor.type_of_structure)


def location_prefix(descriptor: LocationDescriptor) -> str:
    """First 10 characters shared by every identity number in this bucket."""
    return (
        format_state_code(descriptor.state_code)
        + format_district_code(descriptor.district_code)
        + format_city_code(descriptor.city_code)
        + format_location_code(descriptor.location_code)
    )


# ---- Encode / decode ----

def encode(descriptor: LocationDescriptor, sequence: int, now: Optional[datetime] = None) -> GeneratedIdentity:
    """Build the identity number for ``descriptor`` with an externally allocated sequence."""
    validate_location(descriptor)

    values = {
        "state_code": format_state_code(descriptor.state_code),
        "district_code": format_district_code(descriptor.district_code),
        "city_code": format_city_code(descriptor.city_code),
        "location_code": format_location_code(descriptor.location_code),
        "structure_sequence": format_sequence(sequence),
        "type_code": type_code_for(descriptor.type_of_structure),
    }
    number = "".join(values[f.name] for f in IDENTITY_LAYOUT)

    return GeneratedIdentity(
        structural_identity_number=number,
        formatted_display=format_display(number),
        components=IdentityComponents(**values, type_name=TYPE_CODE_NAMES.get(values["type_code"])),
        generated_at=now or datetime.utcnow(),
    )


def decode(identity_number: str) -> IdentityComponents:
    """
    Slice an identity number back into its components.

    Only the length is checked; code tables are not consulted, so any
    17-character string decodes.
    """
    if identity_number is None or len(identity_number) != IDENTITY_LENGTH:
        raise ValidationError(
            f"Invalid structure number length. Must be exactly {IDENTITY_LENGTH} characters."
        )

    values = {f.name: identity_number[f.offset:f.end] for f in IDENTITY_LAYOUT}
    return IdentityComponents(**values, type_name=TYPE_CODE_NAMES.get(values["type_code"]))


def extract_sequence(identity_number: str) -> int:
    """Integer value of the sequence field; raises ValueError if it is not numeric."""
    return int(identity_number[SEQUENCE_FIELD.offset:SEQUENCE_FIELD.end])


def format_display(identity_number: str) -> str:
    """Dash separated rendering, e.g. ``KA-01-BANG-BG-00007-01``."""
    return "-".join(identity_number[f.offset:f.end] for f in IDENTITY_LAYOUT)


# ---- Validation ----

def _check_identity_number(identity_number: str) -> IdentityComponents:
    components = decode(identity_number)
    if not IDENTITY_PATTERN.match(identity_number):
        raise ValidationError("Invalid structure number format. Must match: AA##AAAAAA#####00")
    if components.state_code not in VALID_STATE_CODES:
        raise ValidationError(f"Invalid state code: {components.state_code}")
    if components.type_code not in TYPE_CODE_NAMES:
        raise ValidationError(f"Invalid type code: {components.type_code}")
    return components


def validate_identity_number(identity_number: str) -> bool:
    """Strict check: format, state table and type table."""
    try:
        _check_identity_number(identity_number)
    except ValidationError:
        return False
    return True


def bulk_validate(identity_numbers: list[str]) -> list[IdentityValidationResult]:
    results = []
    for number in identity_numbers:
        try:
            components = _check_identity_number(number)
        except ValidationError as exc:
            results.append(IdentityValidationResult(structure_number=number, is_valid=False, error=exc.detail))
        else:
            results.append(
                IdentityValidationResult(structure_number=number, is_valid=True, parsed_components=components)
            )
    return results


def location_prefix_info(prefix: str) -> LocationPrefixInfo:
    """Describe a (possibly partial) location prefix of at least 4 characters."""
    if not prefix or len(prefix) < 4:
        raise ValidationError("Location prefix must be at least 4 characters")

    def part(name: str, filler: str) -> str:
        field = LAYOUT_BY_NAME[name]
        return prefix[field.offset:field.end] if len(prefix) >= field.end else filler

    state = part("state_code", "XX")
    district = part("district_code", "XX")
    city = part("city_code", "XXXX")
    location = part("location_code", "XX")

    description = f"State: {state}"
    if district != "XX":
        description += f", District: {district}"
    if city != "XXXX":
        description += f", City: {city}"
    if location != "XX":
        description += f", Location: {location}"

    return LocationPrefixInfo(
        location_prefix=prefix,
        state_code=state,
        district_code=district,
        city_code=city,
        location_code=location,
        is_complete=len(prefix) == LOCATION_PREFIX_LENGTH,
        level=PREFIX_LEVELS.get(len(prefix), "partial"),
        description=description,
    )


# ---- Fallbacks and placeholders ----

def timestamp_sequence(now: Optional[datetime] = None) -> str:
    """Pseudo-sequence from the last five digits of the epoch milliseconds."""
    moment = now or datetime.utcnow()
    millis = int(moment.timestamp() * 1000)
    return str(millis)[-SEQUENCE_FIELD.width:].zfill(SEQUENCE_FIELD.width)


def generate_uid(now: Optional[datetime] = None) -> str:
    """Placeholder identity for drafts: ``UID-YYYYMMDD-###``."""
    moment = now or datetime.utcnow()
    return f"UID-{moment.strftime('%Y%m%d')}-{random.randint(0, 999):03d}"
