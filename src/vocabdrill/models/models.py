"""Database models for the drill."""
from enum import Enum

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from vocabdrill.models.base import Base, TimestampMixin


class ProgressStatus(str, Enum):
    """Outcome of a user's most recent submission for a question."""
    PENDING = "pending"  # no stored row
    PASSED = "passed"
    FAILED = "failed"


class User(Base, TimestampMixin):
    """User model."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    external_id = Column(String, unique=True, nullable=False)
    username = Column(String, nullable=True)
    api_token_hash = Column(String, unique=True, nullable=True)


class Unit(Base, TimestampMixin):
    """Level (unit) grouping questions of one lesson."""

    __tablename__ = "units"

    id = Column(String, primary_key=True)  # e.g., "A1-L3"
    title = Column(String, nullable=False)
    order_index = Column(Integer, default=0)

    # Relationships
    questions = relationship("Question", back_populates="unit")


class Question(Base, TimestampMixin):
    """Fill-in-the-blank question model."""

    __tablename__ = "questions"

    id = Column(Integer, primary_key=True)
    german_word = Column(String, nullable=False)
    english_translation = Column(String, nullable=False, default="")
    full_sentence = Column(String, nullable=False, default="")
    blank_sentence = Column(String, nullable=False, default="")
    english_sentence = Column(String, nullable=False, default="")
    unit_id = Column(String, ForeignKey("units.id"), nullable=True, index=True)
    category_id = Column(String, nullable=True, index=True)
    correct_answer = Column(String, nullable=False)

    # Relationships
    unit = relationship("Unit", back_populates="questions")
    progress = relationship(
        "UserProgress", back_populates="question", cascade="all, delete-orphan"
    )


class UserProgress(Base, TimestampMixin):
    """User-question progress model; an absent row means pending."""

    __tablename__ = "user_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "question_id", name="uq_user_progress_user_question"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False)
    unit_id = Column(String, nullable=True, index=True)  # copied from the question
    category_id = Column(String, nullable=True)  # copied from the question
    status = Column(String, nullable=False)  # passed, failed
    attempts = Column(Integer, nullable=False, default=0)
    last_attempted_at = Column(DateTime(timezone=True))
    last_answer = Column(String, nullable=True)

    # Relationships
    question = relationship("Question", back_populates="progress")
