"""Test configuration."""
import os
from pathlib import Path
from typing import Callable, Generator, Optional

import pytest
from dotenv import load_dotenv
from faker import Faker
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment before any imports
os.environ["ENV"] = "test"

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from vocabdrill.config import DatabaseSettings, ensure_directories
from vocabdrill.models.base import create_db_engine, create_session_factory, init_db
from vocabdrill.models.models import Question, Unit

fake = Faker()


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment before each test."""
    # Ensure test directories exist
    ensure_directories()

    yield


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """In-memory database shared by every session of one test."""
    engine = create_db_engine(
        DatabaseSettings(url="sqlite://", echo=False),
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to the test engine."""
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def user_id() -> str:
    """Opaque user identifier."""
    return fake.uuid4()


@pytest.fixture
def make_question(db: Session) -> Callable[..., Question]:
    """Factory inserting a question (and its unit) into the test database."""

    def _make_question(
        level: Optional[str] = "A1-L1",
        german_word: Optional[str] = None,
        full_sentence: Optional[str] = None,
        blank_sentence: Optional[str] = None,
        correct_answer: Optional[str] = None,
        category_id: str = "vocabulary",
    ) -> Question:
        if level and db.get(Unit, level) is None:
            db.add(Unit(id=level, title=level, order_index=0))
        german_word = german_word or fake.unique.word()
        question = Question(
            german_word=german_word,
            english_translation=fake.word(),
            full_sentence=full_sentence or f"Ich sehe {german_word}.",
            blank_sentence=blank_sentence or "Ich sehe __.",
            english_sentence=fake.sentence(),
            unit_id=level,
            category_id=category_id,
            correct_answer=correct_answer or german_word,
        )
        db.add(question)
        db.commit()
        db.refresh(question)
        return question

    return _make_question
