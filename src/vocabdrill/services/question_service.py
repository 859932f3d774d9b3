"""Service for reading questions together with a user's progress."""
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocabdrill import monitoring
from vocabdrill.errors import StoreError
from vocabdrill.models.models import Question, Unit
from vocabdrill.models.quiz_models import QuestionWithProgress
from vocabdrill.services.progress_service import ProgressService

logger = logging.getLogger(__name__)


class QuestionService:
    """Service for reading questions together with a user's progress."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db
        self.progress_service = ProgressService(db)

    def get_question(self, question_id: int) -> Optional[Question]:
        """Get a question by its ID."""
        return self.db.query(Question).filter(Question.id == question_id).first()

    def get_question_count(self, level_id: Optional[str] = None) -> int:
        """Count questions, optionally within one level."""
        query = self.db.query(Question)
        if level_id is not None:
            query = query.filter(Question.unit_id == level_id)
        return query.count()

    def get_units(self) -> List[Unit]:
        """Get all units in display order."""
        return self.db.query(Unit).order_by(Unit.order_index, Unit.id).all()

    def get_questions_by_level(self, user_id: str, level_id: str) -> List[QuestionWithProgress]:
        """Get a level's questions merged with the user's progress.

        Questions without a progress row come back as pending with zero
        attempts.
        """
        try:
            questions = (
                self.db.query(Question)
                .filter(Question.unit_id == level_id)
                .order_by(Question.id)
                .all()
            )
            if not questions:
                return []

            rows = self.progress_service.get_progress_for_questions(
                user_id, [question.id for question in questions]
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            monitoring.store_errors.labels(code="FETCH_FAILED").inc()
            logger.error(f"Error fetching questions for level {level_id}: {e}")
            raise StoreError.from_exception("FETCH_FAILED", e)

        progress = {row.question_id: row for row in rows}
        return [
            QuestionWithProgress.from_models(question, progress.get(question.id))
            for question in questions
        ]
