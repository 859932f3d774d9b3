"""Bulk import of vocabulary rows and the canonical-answer corrective pass."""
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocabdrill import monitoring
from vocabdrill.config import QuizSettings, settings
from vocabdrill.errors import StoreError
from vocabdrill.models.import_models import (
    AnswerFix,
    FixReport,
    ImportReport,
    VocabularyEntry,
)
from vocabdrill.models.models import Question, Unit, UserProgress
from vocabdrill.services.answer_service import extract_correct_answer
from vocabdrill.services.level_service import iter_pages

logger = logging.getLogger(__name__)

FIELD_COUNT = 6


def parse_vocabulary_line(line: str) -> Optional[VocabularyEntry]:
    """Parse one tab-delimited row, None for blank or short rows."""
    if not line.strip():
        return None
    parts = [part.strip() for part in line.split("\t")]
    if len(parts) < FIELD_COUNT:
        return None
    return VocabularyEntry(*parts[:FIELD_COUNT])


def parse_vocabulary_file(path: Union[str, Path]) -> List[VocabularyEntry]:
    """Read every usable row of a vocabulary file."""
    path = Path(path)
    entries = []
    with path.open(encoding="utf-8") as f:
        for number, line in enumerate(f, start=1):
            entry = parse_vocabulary_line(line.rstrip("\r\n"))
            if entry is None:
                if line.strip():
                    logger.warning(f"Skipping malformed line {number} of {path}")
                continue
            entries.append(entry)
    return entries


class ImportService:
    """Service producing questions and their canonical answers."""

    def __init__(self, db: Session, quiz: Optional[QuizSettings] = None):
        """Initialize the service with a database session."""
        self.db = db
        self.quiz = quiz or settings.quiz

    def derive_answer(self, full_sentence: str, blank_sentence: str, fallback_word: str) -> str:
        return extract_correct_answer(
            full_sentence or "",
            blank_sentence or "",
            fallback_word or "",
            placeholder=self.quiz.placeholder,
        )

    def ensure_units_exist(self, levels: Iterable[str]) -> List[str]:
        """Create missing units; return the ids created."""
        wanted = list(dict.fromkeys(level for level in levels if level))
        if not wanted:
            return []
        existing = {
            unit_id for (unit_id,) in self.db.query(Unit.id).filter(Unit.id.in_(wanted)).all()
        }
        missing = [level for level in wanted if level not in existing]
        if missing:
            logger.info(f"Creating {len(missing)} missing units...")
            self.db.add_all(Unit(id=level, title=level, order_index=0) for level in missing)
            try:
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                monitoring.store_errors.labels(code="INSERT_FAILED").inc()
                raise StoreError.from_exception("INSERT_FAILED", e)
        return missing

    def fix_missing_units(self) -> List[str]:
        """Create units for levels referenced by questions but not stored."""
        levels = [
            level
            for (level,) in self.db.query(Question.unit_id).filter(Question.unit_id.isnot(None)).distinct()
        ]
        created = self.ensure_units_exist(levels)
        if created:
            logger.info(f"Missing units inserted: {', '.join(created)}")
        else:
            logger.info("No missing units detected")
        return created

    def import_entries(self, entries: List[VocabularyEntry]) -> ImportReport:
        """Insert one question per entry; a failing row does not stop the import."""
        report = ImportReport(total=len(entries))
        report.units_created = self.ensure_units_exist(entry.level for entry in entries)

        for entry in entries:
            correct_answer = self.derive_answer(
                entry.full_sentence, entry.blank_sentence, entry.german_word
            )
            if not correct_answer:
                logger.warning(f"No answer could be derived for {entry.german_word!r}")
            question = Question(
                german_word=entry.german_word,
                english_translation=entry.english_translation,
                full_sentence=entry.full_sentence,
                blank_sentence=entry.blank_sentence,
                english_sentence=entry.english_sentence,
                unit_id=entry.level or None,
                category_id=self.quiz.default_category,
                correct_answer=correct_answer,
            )
            self.db.add(question)
            try:
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                report.errors += 1
                monitoring.import_row_errors.inc()
                logger.error(f"Error inserting question {entry.german_word!r}: {e}")
                continue

            report.inserted += 1
            monitoring.questions_imported.inc()
            if report.inserted % settings.importer.progress_every == 0:
                logger.info(f"Inserted {report.inserted} questions...")

        logger.info(f"Import complete. Inserted {report.inserted} of {report.total} questions")
        return report

    def import_file(self, path: Union[str, Path], reimport: bool = False) -> ImportReport:
        """Parse a vocabulary file and import it."""
        entries = parse_vocabulary_file(path)
        logger.info(f"Found {len(entries)} entries in {path}")
        if reimport:
            self.delete_category(self.quiz.default_category)
        return self.import_entries(entries)

    def delete_category(self, category_id: str) -> int:
        """Remove the questions of a category, with their progress."""
        question_ids = (
            self.db.query(Question.id)
            .filter(Question.category_id == category_id)
            .scalar_subquery()
        )
        try:
            self.db.query(UserProgress).filter(
                UserProgress.question_id.in_(question_ids)
            ).delete(synchronize_session=False)
            deleted = (
                self.db.query(Question)
                .filter(Question.category_id == category_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            monitoring.store_errors.labels(code="DELETE_FAILED").inc()
            raise StoreError.from_exception("DELETE_FAILED", e)
        # Bulk deletes leave the removed rows in the identity map; reused ids would collide
        self.db.expunge_all()
        logger.info(f"Deleted {deleted} questions in category {category_id}")
        return deleted

    def fix_correct_answers(self, page_size: Optional[int] = None) -> FixReport:
        """Re-derive every canonical answer and store the ones that changed."""
        report = FixReport()
        query = (
            self.db.query(
                Question.id,
                Question.correct_answer,
                Question.full_sentence,
                Question.blank_sentence,
                Question.german_word,
            )
            .filter(Question.category_id == self.quiz.default_category)
            .order_by(Question.id)
        )
        rows = []
        for page in iter_pages(query, page_size or self.quiz.page_size):
            rows.extend(page)
            logger.info(f"Fetched {len(rows)} questions so far...")
        report.total = len(rows)

        for question_id, stored, full_sentence, blank_sentence, german_word in rows:
            correct_answer = self.derive_answer(full_sentence, blank_sentence, german_word)
            if stored == correct_answer:
                report.skipped += 1
                continue

            try:
                self.db.query(Question).filter(Question.id == question_id).update(
                    {Question.correct_answer: correct_answer}, synchronize_session=False
                )
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                report.errors += 1
                logger.error(f"Error updating question {question_id}: {e}")
                continue

            report.updated += 1
            monitoring.answers_fixed.inc()
            if len(report.samples) < settings.importer.sample_fixes:
                report.samples.append(
                    AnswerFix(question_id=question_id, old=stored or "", new=correct_answer)
                )

        logger.info(
            f"Updated {report.updated} questions, skipped {report.skipped}, errors {report.errors}"
        )
        return report
