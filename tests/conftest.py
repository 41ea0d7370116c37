import os

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

# In-memory DB and no external API keys for tests
os.environ["OPENAI_API_KEY"] = ""
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["DATABASE_PATH"] = ":memory:"
os.environ["DATABASE_URL"] = ""
os.environ["SEED_DEMO_DATA"] = "false"
os.environ["DRUG_KNOWLEDGE_BASE_PATH"] = ""

from carevault.database import close_db, init_db
from carevault.main import app
from carevault.services.access_tokens import generate_token, use_token
from carevault.services.profiles import create_profile
from carevault.services.wearables import wearables

import carevault.services.llm as _llm_mod


@pytest_asyncio.fixture
async def db():
    """Provide a fresh in-memory database for each test."""
    import carevault.database as db_mod

    # Close any existing connection
    if db_mod._db is not None:
        try:
            await db_mod._db.close()
        except Exception:
            pass
    db_mod._db = None

    # Override module-level config directly (avoids fragile importlib.reload)
    db_mod.DATABASE_PATH = ":memory:"
    db_mod.DATABASE_URL = ""
    db_mod.SEED_DEMO_DATA = False

    wearables.reset()
    _llm_mod._client = None

    await init_db()
    database = await db_mod.get_db()
    yield database
    await close_db()
    wearables.reset()


@pytest_asyncio.fixture
async def patient(db):
    """A patient allergic to penicillin, with diabetes on record."""
    return await create_profile(
        "patient-1",
        "patient",
        name="Maria Lopez",
        age=68,
        blood_group="O+",
        allergies=["Penicillin"],
        chronic_conditions=["Type 2 Diabetes"],
        emergency_contact="+1-555-0199",
    )


@pytest_asyncio.fixture
async def doctor(db):
    return await create_profile("doctor-1", "doctor", name="Dr. Ethan Brooks")


@pytest_asyncio.fixture
async def other_doctor(db):
    return await create_profile("doctor-2", "doctor", name="Dr. Priya Shah")


@pytest_asyncio.fixture
async def doctor_access(patient, doctor):
    """An access token issued by ``patient`` and already opened by ``doctor``."""
    issued = await generate_token(patient)
    assert await use_token(issued.token, doctor)
    return issued


@pytest.fixture
def client(db):
    """Provide a synchronous TestClient for HTTP endpoint tests."""
    return TestClient(app)


@pytest_asyncio.fixture
async def async_client(db):
    """Provide an async httpx client for async HTTP tests."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
