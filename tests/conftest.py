import itertools
import os

# Must be set before gameiq.db.session builds the app engine
os.environ.setdefault("GAMEIQ_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("GAMEIQ_SEED_CATALOG_ON_STARTUP", "false")

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from gameiq.core.config import Settings  # noqa: E402
from gameiq.db.base import Base  # noqa: E402
from gameiq.db.session import get_db  # noqa: E402
from gameiq.main import app  # noqa: E402
from gameiq.models.user import SubscriptionTier, User  # noqa: E402
from gameiq.schemas.question import QuestionRecordSchema  # noqa: E402
from gameiq.schemas.quiz import AnswerSchema  # noqa: E402
from gameiq.services.catalog import QuestionCatalog  # noqa: E402

CORRECT = "A"
WRONG = "B"


def question_record(record_id: str, correct: str = CORRECT, difficulty: str = "intermediate") -> dict:
    return {
        "id": record_id,
        "scenario": f"Game situation {record_id}",
        "question": "What should you do?",
        "options": [
            {"id": "A", "text": "Attack the gap"},
            {"id": "B", "text": "Reset the offense"},
            {"id": "C", "text": "Call timeout"},
            {"id": "D", "text": "Force a contested shot"},
        ],
        "correct": correct,
        "explanation": "Take what the defense gives you.",
        "difficulty": difficulty,
        "tags": ["decision-making"],
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        seed_catalog_on_startup=False,
        generated_quiz_size=5,
    )


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    async def _make(tier: SubscriptionTier = SubscriptionTier.BASIC) -> User:
        user = User(email=f"player{next(counter)}@example.com", subscription_tier=tier)
        db.add(user)
        await db.commit()
        return user

    return _make


@pytest.fixture
def add_questions(db):
    counter = itertools.count(1)

    async def _add(count: int, sport: str = "basketball", position: str = "point-guard"):
        catalog = QuestionCatalog(db)
        questions = [
            catalog.build_question(
                sport,
                position,
                QuestionRecordSchema.model_validate(question_record(f"q_{next(counter):03d}")),
                category="decision-making",
            )
            for _ in range(count)
        ]
        db.add_all(questions)
        await db.commit()
        return questions

    return _add


@pytest.fixture
def answer_sheet():
    """Answers in issue order; the first ``correct`` are right, the rest wrong."""

    def _sheet(question_ids, correct: int) -> list[AnswerSchema]:
        return [
            AnswerSchema(question_id=qid, selected_answer=CORRECT if i < correct else WRONG)
            for i, qid in enumerate(question_ids)
        ]

    return _sheet


@pytest_asyncio.fixture
async def client(session_factory):
    async def _get_test_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_test_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def record():
    return question_record
