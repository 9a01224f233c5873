"""
Tests for structure document load/save and the intake screens.
"""

import pytest
from unittest.mock import AsyncMock, patch
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import DuplicateIdentityError, NotFoundError, SequenceResolutionError, ValidationError
from app.models.structure import Structure
from app.schemas.identity import LocationAssignment
from app.schemas.structure import FlatCreate, FloorCreate, GeometricDetails, StructureCreate, StructureStatus
from app.services import structure_service
from tests.factories import location_descriptor


def assignment(**overrides) -> LocationAssignment:
    return LocationAssignment(descriptor=location_descriptor(**overrides), latitude=12.97, longitude=77.59)


async def take_number(db: AsyncSession, number: str) -> None:
    """Store a structure holding ``number`` without touching the sequence counter."""
    db.add(Structure(owner_id="owner-9", structural_identity_number=number, status="location_completed", document={}))
    await db.commit()


class TestCreateAndLoad:
    """Tests for draft creation and document round trips."""

    @pytest.mark.asyncio
    async def test_create_draft(self, test_db: AsyncSession):
        """Test a draft is stored with its status projected onto the row."""
        structure = await structure_service.create_structure(test_db, StructureCreate(owner_id="owner-7"))

        document = structure_service.load_document(structure)
        assert structure.status == "draft"
        assert structure.structural_identity_number is None
        assert document.structural_identity.uid.startswith("UID-")

    @pytest.mark.asyncio
    async def test_get_structure_scoped_by_owner(self, test_db: AsyncSession, stored_structure: Structure):
        """Test lookups filtered by another owner find nothing."""
        found = await structure_service.get_structure(test_db, stored_structure.id, owner_id="owner-1")
        assert found.id == stored_structure.id

        with pytest.raises(NotFoundError):
            await structure_service.get_structure(test_db, stored_structure.id, owner_id="owner-2")


class TestAssignLocation:
    """Tests for numbering a structure on the location screen."""

    @pytest.mark.asyncio
    async def test_assigns_number_and_status(self, test_db: AsyncSession):
        """Test the first save numbers the structure and projects the number."""
        structure = await structure_service.create_structure(test_db, StructureCreate(owner_id="owner-1"))

        identity = await structure_service.assign_location(test_db, structure, assignment(type_of_structure="educational"))

        assert identity.structural_identity_number == "KA01BANGBG0000103"
        assert structure.structural_identity_number == "KA01BANGBG0000103"
        document = structure_service.load_document(structure)
        assert document.status == StructureStatus.LOCATION_COMPLETED
        assert document.structural_identity.type_code == "03"
        assert document.location.coordinates.latitude == 12.97

    @pytest.mark.asyncio
    async def test_allocation_failure_uses_timestamp(self, test_db: AsyncSession):
        """Test an exhausted counter degrades to the timestamp sequence."""
        structure = await structure_service.create_structure(test_db, StructureCreate(owner_id="owner-1"))
        failing = AsyncMock(side_effect=SequenceResolutionError("KA01BANGBG", "counter allocation retries exhausted"))

        with patch("app.services.structure_service.allocate_sequence", failing), \
                patch("app.services.identity_codec.timestamp_sequence", return_value="31337"):
            identity = await structure_service.assign_location(test_db, structure, assignment())

        assert identity.structural_identity_number == "KA01BANGBG3133701"

    @pytest.mark.asyncio
    async def test_counter_moves_past_manual_number(self, test_db: AsyncSession):
        """Test a manually entered next number does not block later numbering."""
        first = await structure_service.create_structure(test_db, StructureCreate(owner_id="owner-1"))
        await structure_service.assign_location(test_db, first, assignment())
        manual = await structure_service.create_structure(test_db, StructureCreate(owner_id="owner-2"))
        await structure_service.set_identity_number(test_db, manual, "KA01BANGBG0000201")
        third = await structure_service.create_structure(test_db, StructureCreate(owner_id="owner-3"))

        identity = await structure_service.assign_location(test_db, third, assignment())

        assert identity.structural_identity_number == "KA01BANGBG0000301"

    @pytest.mark.asyncio
    async def test_taken_sequence_skipped(self, test_db: AsyncSession):
        """Test numbers stored without going through the counter are allocated past."""
        first = await structure_service.create_structure(test_db, StructureCreate(owner_id="owner-1"))
        await structure_service.assign_location(test_db, first, assignment())
        await take_number(test_db, "KA01BANGBG0000201")
        second = await structure_service.create_structure(test_db, StructureCreate(owner_id="owner-2"))

        identity = await structure_service.assign_location(test_db, second, assignment())

        assert identity.structural_identity_number == "KA01BANGBG0000301"

    @pytest.mark.asyncio
    async def test_every_attempt_taken_keeps_counter_advance(self, test_db: AsyncSession):
        """Test a run of taken numbers is a conflict, and the retry starts past it."""
        first = await structure_service.create_structure(test_db, StructureCreate(owner_id="owner-1"))
        await structure_service.assign_location(test_db, first, assignment())
        await take_number(test_db, "KA01BANGBG0000201")
        await take_number(test_db, "KA01BANGBG0000301")
        second = await structure_service.create_structure(test_db, StructureCreate(owner_id="owner-2"))

        with patch.object(settings, "SEQUENCE_ALLOCATION_RETRIES", 2):
            with pytest.raises(DuplicateIdentityError) as exc_info:
                await structure_service.assign_location(test_db, second, assignment())
        assert exc_info.value.identity_number == "KA01BANGBG0000301"

        identity = await structure_service.assign_location(test_db, second, assignment())
        assert identity.structural_identity_number == "KA01BANGBG0000401"


class TestDuplicateAtSave:
    """Tests for numbers taken between the availability check and the commit."""

    @pytest.mark.asyncio
    async def test_unique_index_conflict_is_duplicate_error(self, test_db: AsyncSession):
        """Test a conflicting row written after the check surfaces as a 409, not a database error."""
        structure = await structure_service.create_structure(test_db, StructureCreate(owner_id="owner-1"))
        await take_number(test_db, "KA01BANGBG0000501")

        with patch("app.services.structure_service.ensure_identity_available", AsyncMock()):
            with pytest.raises(DuplicateIdentityError) as exc_info:
                await structure_service.set_identity_number(test_db, structure, "KA01BANGBG0000501")

        assert exc_info.value.status_code == 409
        holders = await test_db.execute(
            select(func.count()).select_from(Structure).where(
                Structure.structural_identity_number == "KA01BANGBG0000501"
            )
        )
        assert holders.scalar() == 1


class TestFloorsAndFlats:
    """Tests for floor and flat management on the stored document."""

    @pytest.mark.asyncio
    async def test_floors_kept_in_order(self, test_db: AsyncSession, stored_structure: Structure):
        """Test floors are sorted by number after an add."""
        await structure_service.add_floor(test_db, stored_structure, FloorCreate(floor_number=3))
        await structure_service.add_floor(test_db, stored_structure, FloorCreate(floor_number=2))

        document = structure_service.load_document(stored_structure)
        assert [f.floor_number for f in document.floors] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_new_flat_is_unrated(self, test_db: AsyncSession, stored_structure: Structure):
        """Test a new flat has every component present and unrated."""
        flat = await structure_service.add_flat(test_db, stored_structure, 1, FlatCreate(flat_number="102"))

        assert all(c.rating is None for c in flat.structural_rating.components().values())
        assert len(flat.non_structural_rating.components()) == 11
        assert flat.flat_overall_rating is None

    @pytest.mark.asyncio
    async def test_duplicate_flat(self, test_db: AsyncSession, stored_structure: Structure):
        """Test a flat number can only appear once per floor."""
        with pytest.raises(ValidationError):
            await structure_service.add_flat(test_db, stored_structure, 1, FlatCreate(flat_number="101"))

    @pytest.mark.asyncio
    async def test_add_flat_to_missing_floor(self, test_db: AsyncSession, stored_structure: Structure):
        """Test adding a flat to an unknown floor is a NotFoundError."""
        with pytest.raises(NotFoundError):
            await structure_service.add_flat(test_db, stored_structure, 4, FlatCreate(flat_number="401"))

    @pytest.mark.asyncio
    async def test_geometric_save_keeps_floors(self, test_db: AsyncSession, stored_structure: Structure):
        """Test the geometric screen does not drop managed floors."""
        await structure_service.save_geometric_details(
            test_db,
            stored_structure,
            GeometricDetails(structure_width=15.0, structure_height=9.0),
        )

        document = structure_service.load_document(stored_structure)
        assert document.geometric_details.structure_width == 15.0
        assert len(document.floors) == 1
