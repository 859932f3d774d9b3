"""Per-level progress statistics."""
import logging
import math
import re
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from vocabdrill import monitoring
from vocabdrill.config import settings
from vocabdrill.errors import StoreError
from vocabdrill.models.models import ProgressStatus, Question, UserProgress
from vocabdrill.models.quiz_models import LevelSummary

logger = logging.getLogger(__name__)

GROUP_ORDER = ["A0", "A1", "A2", "B1", "B2", "C1", "C2"]
OTHER_GROUP = "Other"

_LEVEL_PATTERN = re.compile(r"^([A-Z]\d)-L(\d+)$")
_GROUP_PATTERN = re.compile(r"^([A-Z]\d)-")


def iter_pages(query: Query, page_size: int) -> Iterator[list]:
    """Yield the rows of an ordered query in pages of at most ``page_size``.

    A page shorter than ``page_size`` ends the stream, so a row count that is
    an exact multiple of the page size costs one extra, empty fetch.
    """
    if page_size < 1:
        raise ValueError("page_size must be positive")
    offset = 0
    while True:
        page = query.offset(offset).limit(page_size).all()
        if page:
            yield page
        if len(page) < page_size:
            break
        offset += page_size


def percentage(passed: int, total: int) -> int:
    """Share of passed questions, rounded half up."""
    if total <= 0:
        return 0
    return int(math.floor(passed * 100 / total + 0.5))


def level_sort_key(level_id: str) -> Tuple[float, float, str]:
    """Order levels by CEFR group, then lesson number, then name.

    Ids that are not of the form ``B1-L3`` sort after every known group.
    """
    match = _LEVEL_PATTERN.match(level_id)
    if match is None:
        return math.inf, math.inf, level_id
    group, lesson = match.groups()
    group_index = GROUP_ORDER.index(group) if group in GROUP_ORDER else math.inf
    return group_index, int(lesson), level_id


def level_group(level_id: str) -> str:
    match = _GROUP_PATTERN.match(level_id)
    return match.group(1) if match else OTHER_GROUP


def group_levels(summaries: Iterable[LevelSummary]) -> Dict[str, List[LevelSummary]]:
    """Bucket summaries by CEFR group, groups and levels in sorted order."""
    groups: Dict[str, List[LevelSummary]] = {}
    for summary in sorted(summaries, key=lambda entry: level_sort_key(entry.level)):
        groups.setdefault(level_group(summary.level), []).append(summary)
    return groups


class LevelAggregator:
    """Running fold of questions and progress rows into level summaries.

    Rows may be fed in any page split and in any order; the result only
    depends on the set of rows seen.
    """

    def __init__(self, levels: Optional[Iterable[str]] = None):
        self._only = set(levels) if levels is not None else None
        self._totals: Dict[str, int] = {}
        self._question_levels: Dict[int, str] = {}
        self._statuses: Dict[int, str] = {}

    def add_question(self, question_id: int, level_id: Optional[str]) -> None:
        """Count a question towards its level; repeats and level-less ones are ignored."""
        if not level_id:
            return
        if self._only is not None and level_id not in self._only:
            return
        if question_id in self._question_levels:
            return
        self._question_levels[question_id] = level_id
        self._totals[level_id] = self._totals.get(level_id, 0) + 1

    def add_questions(self, rows: Iterable) -> None:
        """Fold a page of ``(question_id, level_id)`` rows."""
        for question_id, level_id in rows:
            self.add_question(question_id, level_id)

    def add_progress(self, question_id: int, status: Optional[str]) -> None:
        """Record the stored status of one question."""
        self._statuses[question_id] = status

    def add_progress_rows(self, rows: Iterable) -> None:
        """Fold a page of ``(question_id, status)`` rows."""
        for question_id, status in rows:
            self.add_progress(question_id, status)

    def summaries(self) -> List[LevelSummary]:
        """One summary per level with at least one question, in level order."""
        counts = {level: LevelSummary(level=level, total=total) for level, total in self._totals.items()}
        for question_id, status in self._statuses.items():
            level = self._question_levels.get(question_id)
            if level is None:
                continue
            if status == ProgressStatus.PASSED.value:
                counts[level].passed += 1
            elif status == ProgressStatus.FAILED.value:
                counts[level].failed += 1

        for entry in counts.values():
            entry.remaining = max(entry.total - entry.passed - entry.failed, 0)
            entry.percentage = percentage(entry.passed, entry.total)
        return sorted(counts.values(), key=lambda entry: level_sort_key(entry.level))

    def summary(self, level_id: str) -> LevelSummary:
        for entry in self.summaries():
            if entry.level == level_id:
                return entry
        return LevelSummary(level=level_id)


class LevelService:
    """Service streaming the store into level summaries."""

    def __init__(self, db: Session, page_size: Optional[int] = None):
        """Initialize the service with a database session."""
        self.db = db
        self.page_size = page_size or settings.quiz.page_size

    def get_levels_progress(self, user_id: str) -> List[LevelSummary]:
        """Summaries of every level, ordered by CEFR group and lesson."""
        return self._aggregate(user_id).summaries()

    def get_level_summary(self, user_id: str, level_id: str) -> LevelSummary:
        """Summary of one level, all zeros when the level has no questions."""
        return self._aggregate(user_id, levels=[level_id]).summary(level_id)

    def _aggregate(self, user_id: str, levels: Optional[List[str]] = None) -> LevelAggregator:
        aggregator = LevelAggregator(levels)

        questions = self.db.query(Question.id, Question.unit_id).order_by(Question.id)
        if levels is not None:
            questions = questions.filter(Question.unit_id.in_(levels))
        progress = (
            self.db.query(UserProgress.question_id, UserProgress.status)
            .filter(UserProgress.user_id == user_id)
            .order_by(UserProgress.id)
        )
        if levels is not None:
            progress = progress.filter(
                UserProgress.question_id.in_(
                    self.db.query(Question.id)
                    .filter(Question.unit_id.in_(levels))
                    .scalar_subquery()
                )
            )

        try:
            for page in iter_pages(questions, self.page_size):
                aggregator.add_questions(page)
            for page in iter_pages(progress, self.page_size):
                aggregator.add_progress_rows(page)
        except SQLAlchemyError as e:
            self.db.rollback()
            monitoring.store_errors.labels(code="FETCH_FAILED").inc()
            logger.error(f"Error aggregating progress for user {user_id}: {e}")
            raise StoreError.from_exception("FETCH_FAILED", e)

        return aggregator
