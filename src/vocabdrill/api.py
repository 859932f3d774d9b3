"""Request surface consumed by the presentation layer."""
import logging
import random
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy.orm import Session, sessionmaker

from vocabdrill.config import Settings, settings as default_settings
from vocabdrill.models.quiz_models import LevelSummary, QuestionWithProgress, WorkingSet
from vocabdrill.services.auth_service import IdentityResolver
from vocabdrill.services.level_service import LevelService
from vocabdrill.services.progress_service import ProgressService
from vocabdrill.services.question_service import QuestionService
from vocabdrill.services.session_selector import select_working_set

logger = logging.getLogger(__name__)


class QuizApi:
    """Operations behind fetch-levels, fetch-questions, submit and reset.

    Each call runs in its own database session, opened when the request
    starts and closed when it ends. Authentication failures raise
    ``AuthenticationError``; store failures raise ``StoreError``.
    """

    def __init__(self, session_factory: sessionmaker, settings: Optional[Settings] = None):
        self.session_factory = session_factory
        self.settings = settings or default_settings

    @contextmanager
    def _request(self, authorization: Optional[str]) -> Iterator[tuple[Session, str]]:
        db = self.session_factory()
        try:
            user_id = IdentityResolver(db).resolve(authorization)
            yield db, user_id
        finally:
            db.close()

    def fetch_levels(self, authorization: Optional[str]) -> List[LevelSummary]:
        with self._request(authorization) as (db, user_id):
            return LevelService(db, self.settings.quiz.page_size).get_levels_progress(user_id)

    def fetch_questions(self, authorization: Optional[str], level: str) -> List[QuestionWithProgress]:
        with self._request(authorization) as (db, user_id):
            if not level:
                raise ValueError("Level parameter is required")
            return QuestionService(db).get_questions_by_level(user_id, level)

    def submit_answer(
        self,
        authorization: Optional[str],
        question_id: int,
        answer: Optional[str],
        is_correct: bool,
    ) -> None:
        with self._request(authorization) as (db, user_id):
            if not isinstance(is_correct, bool):
                raise ValueError("is_correct must be a boolean")
            ProgressService(db).submit(
                user_id, question_id, is_correct, answer.strip() if answer else None
            )

    def reset_progress(self, authorization: Optional[str], level: str) -> int:
        with self._request(authorization) as (db, user_id):
            if not level:
                raise ValueError("Level parameter is required")
            return ProgressService(db).reset(user_id, level)

    def start_session(
        self,
        authorization: Optional[str],
        level: str,
        rng: Optional[random.Random] = None,
    ) -> WorkingSet:
        """Fetch a level and pick the questions to drill."""
        return select_working_set(self.fetch_questions(authorization, level), rng)
