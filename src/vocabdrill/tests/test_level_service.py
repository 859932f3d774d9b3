"""Tests for level statistics."""
import random

import pytest
from faker import Faker
from sqlalchemy.orm import Session

from vocabdrill.models.models import ProgressStatus, Question
from vocabdrill.models.quiz_models import LevelSummary
from vocabdrill.services.level_service import (
    LevelAggregator,
    LevelService,
    group_levels,
    iter_pages,
    level_sort_key,
    percentage,
)
from vocabdrill.services.progress_service import ProgressService

fake = Faker()


def test_aggregator_summary() -> None:
    """total=10, passed=4, failed=2 gives remaining=4 and 40 percent."""
    aggregator = LevelAggregator()
    for question_id in range(1, 11):
        aggregator.add_question(question_id, "A1-L1")
    for question_id in range(1, 5):
        aggregator.add_progress(question_id, ProgressStatus.PASSED.value)
    for question_id in range(5, 7):
        aggregator.add_progress(question_id, ProgressStatus.FAILED.value)

    assert aggregator.summaries() == [
        LevelSummary(level="A1-L1", total=10, passed=4, failed=2, remaining=4, percentage=40)
    ]


def test_aggregator_empty() -> None:
    aggregator = LevelAggregator()

    assert aggregator.summaries() == []
    assert aggregator.summary("A1-L1") == LevelSummary(level="A1-L1")


def test_aggregator_ignores_orphans() -> None:
    """Questions without a level and progress without a question are skipped."""
    aggregator = LevelAggregator()
    aggregator.add_question(1, None)
    aggregator.add_question(2, "")
    aggregator.add_question(3, "A1-L1")
    aggregator.add_progress(99, ProgressStatus.PASSED.value)
    aggregator.add_progress(1, ProgressStatus.PASSED.value)

    assert aggregator.summaries() == [
        LevelSummary(level="A1-L1", total=1, passed=0, failed=0, remaining=1, percentage=0)
    ]


def test_aggregator_restricted_to_levels() -> None:
    aggregator = LevelAggregator(levels=["A1-L2"])
    aggregator.add_questions([(1, "A1-L1"), (2, "A1-L2")])
    aggregator.add_progress_rows([(1, "passed"), (2, "failed")])

    assert aggregator.summaries() == [
        LevelSummary(level="A1-L2", total=1, passed=0, failed=1, remaining=0, percentage=0)
    ]


@pytest.mark.parametrize("page_size", [1, 2, 3, 7, 50])
def test_aggregator_independent_of_page_split(page_size: int) -> None:
    rng = random.Random(5)
    questions = [(question_id, rng.choice(["A", "B", "C"])) for question_id in range(1, 41)]
    progress = [
        (question_id, rng.choice(["passed", "failed"]))
        for question_id in rng.sample(range(1, 41), 25)
    ]

    whole = LevelAggregator()
    whole.add_questions(questions)
    whole.add_progress_rows(progress)

    paged = LevelAggregator()
    # Progress pages may even arrive before the questions they refer to
    for start in range(0, len(progress), page_size):
        paged.add_progress_rows(progress[start:start + page_size])
    for start in range(0, len(questions), page_size):
        paged.add_questions(questions[start:start + page_size])

    assert paged.summaries() == whole.summaries()


@pytest.mark.parametrize(
    "passed, total, expected",
    [(0, 0, 0), (0, 5, 0), (1, 3, 33), (2, 3, 67), (1, 8, 13), (1, 200, 1), (5, 5, 100)],
)
def test_percentage(passed: int, total: int, expected: int) -> None:
    """Rounded half up, zero for an empty level."""
    assert percentage(passed, total) == expected


def test_iter_pages_fetches_until_short_page(db: Session, make_question) -> None:
    for _ in range(6):
        make_question()
    query = db.query(Question.id).order_by(Question.id)

    assert [len(page) for page in iter_pages(query, 4)] == [4, 2]
    assert [len(page) for page in iter_pages(query, 3)] == [3, 3]
    assert [len(page) for page in iter_pages(query, 10)] == [6]


def test_iter_pages_rejects_bad_page_size(db: Session) -> None:
    with pytest.raises(ValueError):
        list(iter_pages(db.query(Question.id), 0))


@pytest.fixture
def populated(db: Session, make_question, user_id: str):
    """Two levels with mixed progress for one user, plus another user's rows."""
    progress = ProgressService(db)
    level_one = [make_question(level="A1-L1") for _ in range(10)]
    level_two = [make_question(level="A1-L2") for _ in range(3)]
    make_question(level=None)

    for question in level_one[:4]:
        progress.submit(user_id, question.id, True)
    for question in level_one[4:6]:
        progress.submit(user_id, question.id, False)
    progress.submit(user_id, level_two[0].id, True)
    for question in level_one:
        progress.submit(fake.uuid4(), question.id, True)
    return level_one, level_two


@pytest.mark.parametrize("page_size", [1, 3, 4, 1000])
def test_levels_progress(db: Session, populated, user_id: str, page_size: int) -> None:
    """The same summaries come back whatever the page size."""
    summaries = LevelService(db, page_size=page_size).get_levels_progress(user_id)

    assert summaries == [
        LevelSummary(level="A1-L1", total=10, passed=4, failed=2, remaining=4, percentage=40),
        LevelSummary(level="A1-L2", total=3, passed=1, failed=0, remaining=2, percentage=33),
    ]


def test_level_summary(db: Session, populated, user_id: str) -> None:
    service = LevelService(db, page_size=2)

    assert service.get_level_summary(user_id, "A1-L2") == LevelSummary(
        level="A1-L2", total=3, passed=1, failed=0, remaining=2, percentage=33
    )
    assert service.get_level_summary(user_id, "B2-L9") == LevelSummary(level="B2-L9")


def test_levels_progress_new_user(db: Session, populated) -> None:
    summaries = LevelService(db).get_levels_progress(fake.uuid4())

    assert [(s.level, s.total, s.passed, s.remaining) for s in summaries] == [
        ("A1-L1", 10, 0, 10),
        ("A1-L2", 3, 0, 3),
    ]


def test_levels_progress_empty_store(db: Session, user_id: str) -> None:
    assert LevelService(db).get_levels_progress(user_id) == []


def test_level_sort_key() -> None:
    """CEFR group first, then the numeric lesson, unknown shapes last."""
    levels = ["Extra", "B1-L1", "A1-L10", "X1-L1", "A1-L2", "A0-L3", "C2-L1"]

    assert sorted(levels, key=level_sort_key) == [
        "A0-L3", "A1-L2", "A1-L10", "B1-L1", "C2-L1", "X1-L1", "Extra",
    ]


def test_levels_progress_sorted(db: Session, make_question, user_id: str) -> None:
    """Lesson numbers compare as numbers, whatever order the questions were stored in."""
    for level in ["B1-L1", "A1-L10", "A1-L2"]:
        make_question(level=level)

    summaries = LevelService(db, page_size=2).get_levels_progress(user_id)

    assert [summary.level for summary in summaries] == ["A1-L2", "A1-L10", "B1-L1"]


def test_group_levels() -> None:
    summaries = [LevelSummary(level=level) for level in ["B1-L2", "misc", "A1-L3", "B1-L1", "A1-L1"]]

    groups = group_levels(summaries)

    assert list(groups) == ["A1", "B1", "Other"]
    assert [s.level for s in groups["A1"]] == ["A1-L1", "A1-L3"]
    assert [s.level for s in groups["B1"]] == ["B1-L1", "B1-L2"]
    assert [s.level for s in groups["Other"]] == ["misc"]
    assert group_levels([]) == {}
