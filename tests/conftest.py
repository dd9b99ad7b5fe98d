"""
Pytest configuration and fixtures.
"""

import sys
import os
import uuid
from typing import AsyncGenerator, Optional
from unittest.mock import MagicMock

# Settings are read at import time
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("DATABASE_URL", "")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "test_key_secret")
os.environ.setdefault("RAZORPAY_WEBHOOK_SECRET", "test_webhook_secret")
os.environ.setdefault("SUPABASE_URL", "https://identity.test")
os.environ.setdefault("SUPABASE_ANON_KEY", "test_anon_key")
os.environ.setdefault("ADMIN_API_KEY", "test_admin_key")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Add app to path
sys.path.append(os.getcwd())

import app.models  # noqa: F401  registers all tables
from app.database import Base, get_db
from app.models.catalog import Exam, Subject, Chapter, Question
from app.models.plan import Plan
from app.services.identity_service import AuthenticatedUser

# Use in-memory SQLite for tests
TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

VALID_TOKEN = "valid-token"


class FakeIdentityService:
    """Accepts a single token and resolves it to a fixed user."""

    def __init__(self, user: AuthenticatedUser):
        self.user = user

    async def get_user(self, token: str) -> Optional[AuthenticatedUser]:
        if token == VALID_TOKEN:
            return self.user
        return None


@pytest_asyncio.fixture
async def test_engine():
    """Create async engine for tests."""
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for a test."""
    async_session = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def user() -> AuthenticatedUser:
    return AuthenticatedUser(
        id=uuid.UUID("3f2b6a0c-1d4e-4c8a-9b7f-5e6d7c8b9a01"),
        email="student@example.com",
        user_metadata={"full_name": "Test Student"},
    )


@pytest.fixture
def razorpay_client() -> MagicMock:
    """Stand-in for razorpay.Client; order.create echoes amount and currency."""
    client = MagicMock()
    client.order.create.side_effect = lambda data: {
        "id": f"order_{uuid.uuid4().hex[:14]}",
        "entity": "order",
        "amount": data["amount"],
        "currency": data["currency"],
        "receipt": data["receipt"],
        "status": "created",
    }
    return client


@pytest_asyncio.fixture
async def client(db, user, razorpay_client) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, bound to the test session."""
    from app.main import app
    from app.api.deps import get_identity_service
    from app.services.order_service import get_razorpay_client

    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_service] = lambda: FakeIdentityService(user)
    app.dependency_overrides[get_razorpay_client] = lambda: razorpay_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {VALID_TOKEN}"}


@pytest_asyncio.fixture
async def exam(db) -> Exam:
    exam = Exam(slug="neet", name="NEET")
    db.add(exam)
    await db.flush()
    return exam


@pytest_asyncio.fixture
async def monthly_plan(db, exam) -> Plan:
    """₹499 monthly plan tied to the NEET exam."""
    plan = Plan(
        slug="neet-monthly",
        name="NEET Monthly",
        price_in_paise=49900,
        billing_interval="monthly",
        exam_id=exam.id,
        active=True,
    )
    db.add(plan)
    await db.flush()
    return plan


@pytest_asyncio.fixture
async def chapter(db, exam) -> Chapter:
    subject = Subject(exam_id=exam.id, slug="botany", name="Botany")
    db.add(subject)
    await db.flush()

    chapter = Chapter(subject_id=subject.id, slug="cell-cycle", name="Cell Cycle", position=1)
    db.add(chapter)
    await db.flush()
    return chapter


@pytest_asyncio.fixture
async def question(db, chapter) -> Question:
    question = Question(
        chapter_id=chapter.id,
        category="PYQ",
        year=2023,
        month=5,
        question_text="Which phase follows G2?",
        options=["S", "M", "G1", "G0"],
        correct_option=1,
        explanation="Mitosis follows G2.",
    )
    db.add(question)
    await db.flush()
    return question
