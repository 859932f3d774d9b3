"""Tests for the request surface."""
import random

import pytest
from faker import Faker
from sqlalchemy.orm import Session, sessionmaker

from vocabdrill.api import QuizApi
from vocabdrill.errors import AuthenticationError, StoreError
from vocabdrill.models.models import ProgressStatus
from vocabdrill.models.quiz_models import LevelSummary, QuizMode
from vocabdrill.services.answer_service import answers_match
from vocabdrill.services.auth_service import IdentityResolver
from vocabdrill.services.session_selector import advance, apply_submission

fake = Faker()


@pytest.fixture
def api(session_factory: sessionmaker) -> QuizApi:
    """Create an API instance over the test database."""
    return QuizApi(session_factory)


@pytest.fixture
def auth(db: Session, user_id: str) -> str:
    """Authorization header for the test user."""
    return f"Bearer {IdentityResolver(db).issue_token(user_id)}"


@pytest.fixture
def level(make_question):
    """One level of four questions."""
    return [make_question(level="A1-L1") for _ in range(4)]


def test_every_operation_requires_credentials(api: QuizApi, level) -> None:
    with pytest.raises(AuthenticationError):
        api.fetch_levels(None)
    with pytest.raises(AuthenticationError):
        api.fetch_questions("Bearer nope", "A1-L1")
    with pytest.raises(AuthenticationError):
        api.submit_answer("Bearer nope", level[0].id, "x", True)
    with pytest.raises(AuthenticationError):
        api.reset_progress("", "A1-L1")


def test_fetch_levels(api: QuizApi, auth: str, level) -> None:
    api.submit_answer(auth, level[0].id, "x", True)
    api.submit_answer(auth, level[1].id, "x", False)

    assert api.fetch_levels(auth) == [
        LevelSummary(level="A1-L1", total=4, passed=1, failed=1, remaining=2, percentage=25)
    ]


def test_fetch_questions_requires_level(api: QuizApi, auth: str) -> None:
    with pytest.raises(ValueError):
        api.fetch_questions(auth, "")
    with pytest.raises(ValueError):
        api.reset_progress(auth, "")


def test_submit_and_fetch(api: QuizApi, auth: str, level) -> None:
    api.submit_answer(auth, level[2].id, "  falsch ", False)
    api.submit_answer(auth, level[2].id, None, False)

    questions = {q.id: q for q in api.fetch_questions(auth, "A1-L1")}

    assert questions[level[2].id].status == ProgressStatus.FAILED
    assert questions[level[2].id].attempts == 2
    assert questions[level[0].id].status == ProgressStatus.PENDING


def test_submit_unknown_question(api: QuizApi, auth: str) -> None:
    with pytest.raises(StoreError) as exc_info:
        api.submit_answer(auth, 999, "x", True)
    assert exc_info.value.to_dict()["error"] == "QUESTION_NOT_FOUND"


def test_submit_requires_boolean_outcome(api: QuizApi, auth: str, level) -> None:
    with pytest.raises(ValueError):
        api.submit_answer(auth, level[0].id, "x", "yes")


def test_users_are_isolated(api: QuizApi, auth: str, db: Session, level) -> None:
    other = f"Bearer {IdentityResolver(db).issue_token(fake.uuid4())}"
    api.submit_answer(auth, level[0].id, "x", True)

    assert api.fetch_levels(other)[0].passed == 0
    assert api.reset_progress(other, "A1-L1") == 0
    assert api.fetch_levels(auth)[0].passed == 1


def test_reset_progress(api: QuizApi, auth: str, level) -> None:
    for question in level:
        api.submit_answer(auth, question.id, "x", False)

    assert api.reset_progress(auth, "A1-L1") == 4

    for question in api.fetch_questions(auth, "A1-L1"):
        assert question.status == ProgressStatus.PENDING
        assert question.attempts == 0


def test_full_session(api: QuizApi, auth: str, level) -> None:
    """Drill a level to the end: everything passes, then review starts."""
    rng = random.Random(11)
    snapshot = api.fetch_questions(auth, "A1-L1")
    working_set = api.start_session(auth, "A1-L1", rng)
    assert working_set.mode == QuizMode.FOCUS_FAILED

    first = working_set.current
    # A wrong answer keeps the question in place
    is_correct = answers_match("falsch", first.correct_answer)
    api.submit_answer(auth, first.id, "falsch", is_correct)
    snapshot = apply_submission(snapshot, first.id, is_correct)
    working_set = advance(working_set, is_correct, snapshot, rng)
    assert working_set.current.id == first.id

    while working_set.mode == QuizMode.FOCUS_FAILED:
        question = working_set.current
        answer = f"  {question.correct_answer.upper()} "
        is_correct = answers_match(answer, question.correct_answer)
        assert is_correct
        api.submit_answer(auth, question.id, answer, is_correct)
        snapshot = apply_submission(snapshot, question.id, is_correct)
        working_set = advance(working_set, is_correct, snapshot, rng)

    assert working_set.mode == QuizMode.REVIEW_ALL
    assert len(working_set.questions) == 4
    # A reload recomputes the same mode from stored progress
    assert api.start_session(auth, "A1-L1").mode == QuizMode.REVIEW_ALL
    assert api.fetch_levels(auth)[0].percentage == 100
