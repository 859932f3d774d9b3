"""Models for import-related data."""
from dataclasses import dataclass, field
from typing import List


@dataclass
class VocabularyEntry:
    """One tab-delimited row of the vocabulary file."""
    german_word: str
    english_translation: str
    full_sentence: str
    blank_sentence: str
    english_sentence: str
    level: str


@dataclass
class AnswerFix:
    """A canonical answer rewritten by the corrective pass."""
    question_id: int
    old: str
    new: str


@dataclass
class ImportReport:
    """Outcome of a bulk import."""
    total: int = 0
    inserted: int = 0
    errors: int = 0
    units_created: List[str] = field(default_factory=list)


@dataclass
class FixReport:
    """Outcome of the corrective re-derivation pass."""
    total: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    samples: List[AnswerFix] = field(default_factory=list)
