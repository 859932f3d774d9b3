"""Deriving and checking the expected answer of a question."""
import logging
import re
from typing import Optional

from vocabdrill.config import PLACEHOLDER

logger = logging.getLogger(__name__)

PUNCTUATION = ",.!?;:"
_FIRST_TOKEN = re.compile(r"\s*([^\s,.!?;:]+)")
_TRAILING_PUNCTUATION = re.compile(r"[,.!?;:]+$")
_WHITESPACE = re.compile(r"\s+")


def extract_correct_answer(
    full_sentence: Optional[str],
    blank_sentence: Optional[str],
    fallback_word: Optional[str],
    placeholder: str = PLACEHOLDER,
) -> str:
    """Recover the text the placeholder of ``blank_sentence`` stands for.

    ``blank_sentence`` is ``full_sentence`` with one contiguous span replaced
    by ``placeholder``. Whatever cannot be parsed degrades to the trimmed
    ``fallback_word``; this function never raises.
    """
    fallback = (fallback_word or "").strip()
    if not full_sentence or not blank_sentence or placeholder not in blank_sentence:
        return fallback

    prefix, suffix = blank_sentence.split(placeholder, 1)
    start = full_sentence.find(prefix)
    if start == -1:
        logger.debug(f"Template prefix {prefix!r} not found in {full_sentence!r}")
        return fallback
    remainder = full_sentence[start + len(prefix):]

    answer = ""
    end = remainder.find(suffix) if suffix else -1
    if end != -1:
        answer = remainder[:end].strip()
    else:
        match = _FIRST_TOKEN.match(remainder)
        if match:
            answer = match.group(1)

    answer = _TRAILING_PUNCTUATION.sub("", answer).strip()
    return answer or fallback


def normalize_answer(text: Optional[str]) -> str:
    """Trim, lowercase and collapse whitespace."""
    return _WHITESPACE.sub(" ", (text or "").strip().lower())


def answers_match(submitted: Optional[str], canonical: Optional[str]) -> bool:
    """Exact comparison of the normalized forms."""
    return normalize_answer(submitted) == normalize_answer(canonical)
