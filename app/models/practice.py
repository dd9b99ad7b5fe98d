"""Practice models - question attempts, daily streak rows, daily targets and question reports."""

import uuid
from datetime import datetime, date
from typing import Optional

from sqlalchemy import String, DateTime, Date, ForeignKey, Integer, Boolean, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class QuestionAttempt(Base):
    """
    Latest attempt of a user at a question, plus bookmark/flag markers.
    One row per (user, question).
    """

    __tablename__ = "user_question_attempts"
    __table_args__ = (
        UniqueConstraint("user_id", "question_id", name="uq_attempts_user_question"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
    )

    question_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Denormalized for per-chapter listing
    chapter_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
    )

    # Null when the row only carries markers
    selected_option: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )

    is_correct: Mapped[Optional[bool]] = mapped_column(
        Boolean,
        nullable=True,
    )

    is_bookmarked: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    is_flagged: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    attempt_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<QuestionAttempt user={self.user_id} question={self.question_id}>"


class UserStreak(Base):
    """Per-user, per-day practice activity."""

    __tablename__ = "user_streaks"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_user_streaks_user_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
    )

    date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    questions_attempted: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    correct_answers: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    incorrect_answers: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    target_achieved: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<UserStreak {self.user_id} {self.date} {self.questions_attempted}>"


class UserTarget(Base):
    """User's daily question target."""

    __tablename__ = "user_targets"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
    )

    daily_questions_target: Mapped[int] = mapped_column(
        Integer,
        default=10,
        nullable=False,
    )

    # Free-form label, e.g. "NEET 2027"
    goal: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )


class QuestionReport(Base):
    """A student's report of a problem with a question, queued for review."""

    __tablename__ = "question_reports"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    question_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
    )

    # error / wrong_answer / unclear
    report_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    # open / resolved
    status: Mapped[str] = mapped_column(
        String(20),
        default="open",
        nullable=False,
    )

    reported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        nullable=False,
    )

    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<QuestionReport {self.report_type} question={self.question_id} {self.status}>"
