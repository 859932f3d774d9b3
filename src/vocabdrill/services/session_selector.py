"""Adaptive ordering of a level's questions for a quiz session.

Everything here is a pure function of the level snapshot: the working set is
recomputed from current progress on every call, so a reload lands in the same
mode with a fresh shuffle. Failed questions come first, then pending ones;
passed questions are only reviewed once nothing else is left.
"""
import logging
import random
from dataclasses import replace
from typing import Optional, Sequence, Tuple

from vocabdrill.models.models import ProgressStatus
from vocabdrill.models.quiz_models import (
    ProgressStats,
    QuestionWithProgress,
    QuizMode,
    WorkingSet,
)

logger = logging.getLogger(__name__)


def _shuffled(questions, rng: Optional[random.Random]) -> Tuple[QuestionWithProgress, ...]:
    questions = list(questions)
    (rng or random).shuffle(questions)
    return tuple(questions)


def select_working_set(
    snapshot: Sequence[QuestionWithProgress], rng: Optional[random.Random] = None
) -> WorkingSet:
    """Choose the questions to drill next and shuffle them."""
    failed = [q for q in snapshot if q.status == ProgressStatus.FAILED]
    pending = [q for q in snapshot if q.status == ProgressStatus.PENDING]
    passed = [q for q in snapshot if q.status == ProgressStatus.PASSED]

    if failed:
        mode, chosen = QuizMode.FOCUS_FAILED, failed
    elif pending:
        mode, chosen = QuizMode.FOCUS_FAILED, pending
    else:
        mode, chosen = QuizMode.REVIEW_ALL, passed

    logger.debug(
        f"Selected {len(chosen)} questions in {mode.value} mode "
        f"({len(failed)} failed, {len(pending)} pending, {len(passed)} passed)"
    )
    return WorkingSet(mode=mode, questions=_shuffled(chosen, rng), position=0)


def apply_submission(
    snapshot: Sequence[QuestionWithProgress], question_id: int, is_correct: bool
) -> Tuple[QuestionWithProgress, ...]:
    """Snapshot as it stands after a recorded submission."""
    return tuple(
        q.with_outcome(is_correct) if q.id == question_id else q for q in snapshot
    )


def advance(
    working_set: WorkingSet,
    is_correct: bool,
    snapshot: Sequence[QuestionWithProgress],
    rng: Optional[random.Random] = None,
) -> WorkingSet:
    """Move the session on after the current question was answered.

    ``snapshot`` must already include the submission (see
    ``apply_submission``); it is only consulted when selection has to be
    re-run.
    """
    current = working_set.current
    if current is None:
        return select_working_set(snapshot, rng)

    questions = list(working_set.questions)
    position = working_set.position

    if working_set.mode == QuizMode.FOCUS_FAILED:
        if not is_correct:
            # Asked again at the same position
            questions[position] = current.with_outcome(False)
            return replace(working_set, questions=tuple(questions))

        del questions[position]
        if not questions:
            return select_working_set(snapshot, rng)
        return replace(
            working_set,
            questions=tuple(questions),
            position=min(position, len(questions) - 1),
        )

    questions[position] = current.with_outcome(is_correct)
    position += 1
    if position >= len(questions):
        return select_working_set(snapshot, rng)
    return replace(working_set, questions=tuple(questions), position=position)


def progress_stats(snapshot: Sequence[QuestionWithProgress]) -> ProgressStats:
    """Counters shown alongside the current question."""
    stats = ProgressStats(total=len(snapshot))
    for question in snapshot:
        if question.status == ProgressStatus.PASSED:
            stats.passed += 1
        elif question.status == ProgressStatus.FAILED:
            stats.failed += 1
        else:
            stats.pending += 1
    return stats
