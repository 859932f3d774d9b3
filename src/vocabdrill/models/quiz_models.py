"""Models for quiz-related data structures."""
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from vocabdrill.models.models import ProgressStatus, Question, UserProgress


class QuizMode(Enum):
    """How the working set was chosen."""
    FOCUS_FAILED = "focus_failed"  # failed first, then pending
    REVIEW_ALL = "review_all"  # one pass over passed questions


@dataclass(frozen=True)
class QuestionWithProgress:
    """A question merged with the user's progress on it."""
    id: int
    german_word: str
    english_translation: str
    full_sentence: str
    blank_sentence: str
    english_sentence: str
    level: Optional[str]
    correct_answer: str
    category_id: Optional[str] = None
    status: ProgressStatus = ProgressStatus.PENDING
    attempts: int = 0

    @classmethod
    def from_models(
        cls, question: Question, progress: Optional[UserProgress] = None
    ) -> "QuestionWithProgress":
        """Merge a stored question with its progress row, if any."""
        status = ProgressStatus.PENDING
        attempts = 0
        if progress is not None:
            status = ProgressStatus(progress.status) if progress.status else ProgressStatus.PENDING
            attempts = progress.attempts or 0
        return cls(
            id=question.id,
            german_word=question.german_word,
            english_translation=question.english_translation,
            full_sentence=question.full_sentence,
            blank_sentence=question.blank_sentence,
            english_sentence=question.english_sentence,
            level=question.unit_id,
            correct_answer=question.correct_answer,
            category_id=question.category_id,
            status=status,
            attempts=attempts,
        )

    def with_outcome(self, is_correct: bool) -> "QuestionWithProgress":
        """Copy with one more attempt and the outcome's status."""
        status = ProgressStatus.PASSED if is_correct else ProgressStatus.FAILED
        return replace(self, status=status, attempts=self.attempts + 1)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form for the presentation layer."""
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass
class LevelSummary:
    """Per-level totals for one user."""
    level: str
    total: int = 0
    passed: int = 0
    failed: int = 0
    remaining: int = 0
    percentage: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form for the presentation layer."""
        return asdict(self)


@dataclass(frozen=True)
class WorkingSet:
    """Ordered questions for the active quiz session."""
    mode: QuizMode
    questions: Tuple[QuestionWithProgress, ...] = field(default_factory=tuple)
    position: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.questions

    @property
    def current(self) -> Optional[QuestionWithProgress]:
        """Question at the current position, None once exhausted."""
        if 0 <= self.position < len(self.questions):
            return self.questions[self.position]
        return None

    @property
    def remaining(self) -> int:
        return max(len(self.questions) - self.position, 0)


@dataclass
class ProgressStats:
    """On-screen counters for a level snapshot."""
    total: int = 0
    passed: int = 0
    failed: int = 0
    pending: int = 0

    @property
    def unsolved(self) -> int:
        return self.failed + self.pending
