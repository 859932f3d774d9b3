"""Service recording per-user, per-question progress."""
import logging
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocabdrill import monitoring
from vocabdrill.errors import StoreError
from vocabdrill.models.base import utcnow
from vocabdrill.models.models import ProgressStatus, Question, UserProgress

logger = logging.getLogger(__name__)

SEEDED_ANSWER = "***seeded***"

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class ProgressService:
    """Pending/passed/failed state machine over the user_progress table.

    A missing row is pending. Every submission bumps ``attempts`` by one and
    overwrites ``status`` with the latest outcome; there is no terminal state.
    """

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db

    def get_progress(self, user_id: str, question_id: int) -> Optional[UserProgress]:
        """Get the progress row for one question, None when pending."""
        return (
            self.db.query(UserProgress)
            .filter(
                UserProgress.user_id == user_id,
                UserProgress.question_id == question_id,
            )
            .first()
        )

    def get_progress_for_questions(
        self, user_id: str, question_ids: Iterable[int]
    ) -> List[UserProgress]:
        """Get the user's progress rows restricted to a set of questions."""
        question_ids = list(question_ids)
        if not question_ids:
            return []
        return (
            self.db.query(UserProgress)
            .filter(
                UserProgress.user_id == user_id,
                UserProgress.question_id.in_(question_ids),
            )
            .all()
        )

    def submit(
        self,
        user_id: str,
        question_id: int,
        is_correct: bool,
        answer: Optional[str] = None,
    ) -> UserProgress:
        """Record one submission as a single insert-or-update statement.

        Concurrent submissions for the same pair serialize on the unique
        (user_id, question_id) constraint, so no increment is lost.
        """
        status = ProgressStatus.PASSED if is_correct else ProgressStatus.FAILED
        try:
            question = self.db.get(Question, question_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise self._store_error("FETCH_FAILED", e)
        if question is None:
            monitoring.store_errors.labels(code="QUESTION_NOT_FOUND").inc()
            raise StoreError(
                code="QUESTION_NOT_FOUND",
                message=f"Question {question_id} not found",
            )

        now = utcnow()
        insert = self._insert()
        stmt = insert.values(
            user_id=user_id,
            question_id=question_id,
            unit_id=question.unit_id,
            category_id=question.category_id,
            status=status.value,
            attempts=1,
            last_attempted_at=now,
            last_answer=answer or None,
            created_at=now,
            updated_at=now,
        )
        table = UserProgress.__table__
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.user_id, table.c.question_id],
            set_={
                "attempts": table.c.attempts + 1,
                "status": stmt.excluded.status,
                "last_attempted_at": stmt.excluded.last_attempted_at,
                "last_answer": func.coalesce(stmt.excluded.last_answer, table.c.last_answer),
                "unit_id": func.coalesce(stmt.excluded.unit_id, table.c.unit_id),
                "category_id": func.coalesce(stmt.excluded.category_id, table.c.category_id),
                "updated_at": stmt.excluded.updated_at,
            },
        )

        try:
            self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error saving progress for user {user_id}, question {question_id}: {e}")
            raise self._store_error("UPDATE_FAILED", e)

        monitoring.answers_submitted.labels(outcome=status.value).inc()
        logger.info(f"User {user_id} answered question {question_id}: {status.value}")

        # The upsert bypassed the identity map
        self.db.expire_all()
        return self.get_progress(user_id, question_id)

    def reset(self, user_id: str, level_id: str) -> int:
        """Return every question of a level to pending for one user."""
        level_question_ids = (
            self.db.query(Question.id)
            .filter(Question.unit_id == level_id)
            .scalar_subquery()
        )
        try:
            deleted = (
                self.db.query(UserProgress)
                .filter(
                    UserProgress.user_id == user_id,
                    UserProgress.question_id.in_(level_question_ids),
                )
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error resetting progress for user {user_id}, level {level_id}: {e}")
            raise self._store_error("RESET_FAILED", e)

        monitoring.progress_resets.inc()
        monitoring.progress_rows_deleted.inc(deleted)
        logger.info(f"Reset {deleted} progress rows for user {user_id} in level {level_id}")
        return deleted

    def seed(self, user_id: str, level_id: str, passed: int = 5, failed: int = 0) -> List[UserProgress]:
        """Overwrite the first questions of a level with one-attempt results.

        The first ``passed`` questions by id become passed and the next
        ``failed`` become failed. Existing rows for those questions are
        replaced. A level with fewer questions is seeded as far as it goes.
        """
        if passed < 0 or failed < 0:
            raise ValueError("Passed and failed counts must be zero or greater")
        total = passed + failed
        if total == 0:
            raise ValueError("At least one question must be marked as passed or failed")

        questions = (
            self.db.query(Question.id, Question.unit_id, Question.category_id)
            .filter(Question.unit_id == level_id)
            .order_by(Question.id)
            .limit(total)
            .all()
        )
        if not questions:
            monitoring.store_errors.labels(code="QUESTION_NOT_FOUND").inc()
            raise StoreError(
                code="QUESTION_NOT_FOUND",
                message=f"No questions found for level {level_id}",
            )
        if len(questions) < total:
            logger.warning(
                f"Only {len(questions)} questions available for {level_id}, seeding as many as possible"
            )

        now = utcnow()
        rows = []
        for index, (question_id, unit_id, category_id) in enumerate(questions):
            status = ProgressStatus.PASSED if index < passed else ProgressStatus.FAILED
            rows.append(
                {
                    "user_id": user_id,
                    "question_id": question_id,
                    "unit_id": unit_id,
                    "category_id": category_id,
                    "status": status.value,
                    "attempts": 1,
                    "last_attempted_at": now,
                    "last_answer": SEEDED_ANSWER if status is ProgressStatus.PASSED else None,
                    "created_at": now,
                    "updated_at": now,
                }
            )
        question_ids = [row["question_id"] for row in rows]

        insert = self._insert()
        stmt = insert.values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=[UserProgress.__table__.c.user_id, UserProgress.__table__.c.question_id],
            set_={
                "status": stmt.excluded.status,
                "attempts": stmt.excluded.attempts,
                "last_attempted_at": stmt.excluded.last_attempted_at,
                "last_answer": stmt.excluded.last_answer,
                "updated_at": stmt.excluded.updated_at,
            },
        )

        try:
            self.db.query(UserProgress).filter(
                UserProgress.user_id == user_id,
                UserProgress.question_id.in_(question_ids),
            ).delete(synchronize_session=False)
            self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error seeding progress for user {user_id}, level {level_id}: {e}")
            raise self._store_error("UPDATE_FAILED", e)

        logger.info(f"Seeded {len(rows)} progress rows for user {user_id} in level {level_id}")
        self.db.expire_all()
        return (
            self.db.query(UserProgress)
            .filter(
                UserProgress.user_id == user_id,
                UserProgress.question_id.in_(question_ids),
            )
            .order_by(UserProgress.question_id)
            .all()
        )

    def count(self) -> int:
        """Count progress rows across all users."""
        return self.db.query(UserProgress).count()

    def reset_all(self) -> int:
        """Delete the progress of every user."""
        before = self.count()
        logger.info(f"Found {before} progress rows before reset")
        if before == 0:
            return 0
        try:
            deleted = self.db.query(UserProgress).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise self._store_error("RESET_FAILED", e)

        after = self.count()
        if after:
            logger.warning(f"{after} progress rows remain after reset")
        else:
            logger.info("All user progress has been cleared")
        monitoring.progress_rows_deleted.inc(deleted)
        return deleted

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        try:
            return _UPSERT_DIALECTS[dialect](UserProgress)
        except KeyError:
            raise StoreError(
                code="UNSUPPORTED_DIALECT",
                message=f"Atomic upsert is not available for {dialect}",
                hint="Use SQLite or PostgreSQL",
            )

    @staticmethod
    def _store_error(code: str, exc: Exception) -> StoreError:
        monitoring.store_errors.labels(code=code).inc()
        return StoreError.from_exception(code, exc)
