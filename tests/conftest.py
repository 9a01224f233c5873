import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.main import app
from app.database import Base, get_db
from app.models import Structure
from app.schemas.structure import StructureDocument
from tests.factories import FlatFactory, FloorFactory, StructureDocumentFactory


@pytest.fixture
def test_database_url(tmp_path):
    """Isolated SQLite file per test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'inspection.db'}"


@pytest_asyncio.fixture
async def test_engine(test_database_url):
    engine = create_async_engine(test_database_url, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(test_engine):
    """Session on the per-test database; structures and counters start empty."""
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(test_db: AsyncSession):
    """API client sharing the test session with the fixtures."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def make_structure(test_db: AsyncSession):
    """Persist a structure document as a row, projecting number and status like a save does."""

    async def _make(document: StructureDocument, owner_id: str = "owner-1") -> Structure:
        structure = Structure(
            owner_id=owner_id,
            structural_identity_number=document.structural_identity.structural_identity_number,
            status=document.status.value,
            document=document.model_dump(mode="json"),
        )
        test_db.add(structure)
        await test_db.commit()
        await test_db.refresh(structure)
        return structure

    return _make


@pytest_asyncio.fixture
async def stored_structure(make_structure) -> Structure:
    """Every intake screen filled in, identity KA01BANGBG0000101, one unrated flat (1/101)."""
    document = StructureDocumentFactory(
        floors=[FloorFactory(floor_number=1, flats=[FlatFactory(flat_number="101")])]
    )
    return await make_structure(document)
