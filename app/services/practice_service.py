"""
Practice Service - question attempts, bookmarks/flags, daily streaks and question reports.
"""

import uuid
import logging
from datetime import date, timedelta
from typing import Optional, List, Dict, Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.catalog import Question
from app.models.practice import QuestionAttempt, UserStreak, UserTarget, QuestionReport
from app.fsm.states import AttemptFilter, ReportType, ReportStatus
from app.services.catalog_service import CatalogService
from app.services.errors import InvalidRequestError, NotFoundError
from app.services.subscription_service import utcnow

logger = logging.getLogger(__name__)

# Longest streak we bother walking back through
MAX_STREAK_DAYS = 366

DEFAULT_REPORT_DESCRIPTION = "User reported an error in this question"


class PracticeService:
    """Service for recording practice activity."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record_attempt(
        self,
        user_id: uuid.UUID,
        question_id: uuid.UUID,
        selected_option: int,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Record an answer and update today's streak row.

        Returns the attempt and today's activity counters.
        """
        question = await self._get_question(question_id)

        if selected_option < 0 or selected_option >= len(question.options or []):
            raise InvalidRequestError("Selected option out of range")

        is_correct = selected_option == question.correct_option

        attempt = await self._get_or_create_attempt(user_id, question)
        attempt.selected_option = selected_option
        attempt.is_correct = is_correct
        attempt.attempt_count += 1
        await self.db.flush()

        streak = await self._record_daily_activity(user_id, is_correct, today or utcnow().date())

        return {
            "attempt": attempt,
            "is_correct": is_correct,
            "correct_option": question.correct_option,
            "explanation": question.explanation,
            "today": streak,
        }

    async def set_marker(
        self,
        user_id: uuid.UUID,
        question_id: uuid.UUID,
        bookmarked: Optional[bool] = None,
        flagged: Optional[bool] = None,
    ) -> QuestionAttempt:
        """Set bookmark and/or flag on a question without recording an answer."""
        if bookmarked is None and flagged is None:
            raise InvalidRequestError("Nothing to update")

        question = await self._get_question(question_id)
        attempt = await self._get_or_create_attempt(user_id, question)

        if bookmarked is not None:
            attempt.is_bookmarked = bookmarked
        if flagged is not None:
            attempt.is_flagged = flagged

        await self.db.flush()
        return attempt

    async def report_question(
        self,
        user_id: uuid.UUID,
        question_id: uuid.UUID,
        report_type: str = ReportType.ERROR.value,
        description: Optional[str] = None,
    ) -> QuestionReport:
        """File a report against a question for the content team to review."""
        try:
            report_type = ReportType(report_type).value
        except ValueError:
            raise InvalidRequestError(f"Unknown report type: {report_type}")

        question = await self._get_question(question_id)

        report = QuestionReport(
            question_id=question.id,
            user_id=user_id,
            report_type=report_type,
            description=description or DEFAULT_REPORT_DESCRIPTION,
            status=ReportStatus.OPEN.value,
            reported_at=utcnow(),
        )
        self.db.add(report)
        await self.db.flush()

        logger.info(f"Question {question.id} reported ({report_type}) by user {user_id}")
        return report

    async def list_reports(self, status: ReportStatus = ReportStatus.OPEN) -> List[QuestionReport]:
        result = await self.db.execute(
            select(QuestionReport)
            .where(QuestionReport.status == status.value)
            .order_by(QuestionReport.reported_at)
        )
        return list(result.scalars().all())

    async def resolve_report(self, report_id: uuid.UUID) -> QuestionReport:
        result = await self.db.execute(
            select(QuestionReport).where(QuestionReport.id == report_id)
        )
        report = result.scalar_one_or_none()
        if not report:
            raise NotFoundError("Report not found")

        if report.status != ReportStatus.RESOLVED.value:
            report.status = ReportStatus.RESOLVED.value
            report.resolved_at = utcnow()
            await self.db.flush()
        return report

    async def list_attempts(
        self,
        user_id: uuid.UUID,
        chapter_id: uuid.UUID,
        attempt_filter: AttemptFilter = AttemptFilter.ALL,
    ) -> List[QuestionAttempt]:
        query = select(QuestionAttempt).where(
            QuestionAttempt.user_id == user_id,
            QuestionAttempt.chapter_id == chapter_id,
        )

        if attempt_filter == AttemptFilter.BOOKMARKED:
            query = query.where(QuestionAttempt.is_bookmarked.is_(True))
        elif attempt_filter == AttemptFilter.FLAGGED:
            query = query.where(QuestionAttempt.is_flagged.is_(True))
        elif attempt_filter == AttemptFilter.INCORRECT:
            query = query.where(QuestionAttempt.is_correct.is_(False))

        result = await self.db.execute(query.order_by(QuestionAttempt.updated_at.desc()))
        return list(result.scalars().all())

    async def get_daily_target(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(UserTarget.daily_questions_target).where(UserTarget.user_id == user_id)
        )
        return result.scalar_one_or_none() or settings.default_daily_target

    async def set_daily_target(self, user_id: uuid.UUID, target: int) -> UserTarget:
        if target <= 0:
            raise InvalidRequestError("Daily target must be positive")

        result = await self.db.execute(
            select(UserTarget).where(UserTarget.user_id == user_id)
        )
        user_target = result.scalar_one_or_none()

        if user_target:
            user_target.daily_questions_target = target
        else:
            user_target = UserTarget(user_id=user_id, daily_questions_target=target)
            self.db.add(user_target)

        await self.db.flush()
        return user_target

    async def current_streak(self, user_id: uuid.UUID, today: Optional[date] = None) -> int:
        """
        Consecutive days with the daily target achieved.
        Counts back from today, or from yesterday when today isn't done yet.
        """
        today = today or utcnow().date()

        result = await self.db.execute(
            select(UserStreak.date)
            .where(
                UserStreak.user_id == user_id,
                UserStreak.target_achieved.is_(True),
                UserStreak.date <= today,
            )
            .order_by(UserStreak.date.desc())
            .limit(MAX_STREAK_DAYS)
        )
        achieved = [row for row in result.scalars().all()]

        if not achieved:
            return 0

        expected = today if achieved[0] == today else today - timedelta(days=1)
        streak = 0
        for day in achieved:
            if day != expected:
                break
            streak += 1
            expected -= timedelta(days=1)

        return streak

    async def _get_question(self, question_id: uuid.UUID) -> Question:
        question = await CatalogService(self.db).get_question(question_id)
        if not question:
            raise NotFoundError("Question not found")
        return question

    async def _get_or_create_attempt(self, user_id: uuid.UUID, question: Question) -> QuestionAttempt:
        result = await self.db.execute(
            select(QuestionAttempt).where(
                QuestionAttempt.user_id == user_id,
                QuestionAttempt.question_id == question.id,
            )
        )
        attempt = result.scalar_one_or_none()

        if attempt:
            return attempt

        attempt = QuestionAttempt(
            user_id=user_id,
            question_id=question.id,
            chapter_id=question.chapter_id,
            is_bookmarked=False,
            is_flagged=False,
            attempt_count=0,
        )
        self.db.add(attempt)
        await self.db.flush()
        return attempt

    async def _record_daily_activity(
        self,
        user_id: uuid.UUID,
        is_correct: bool,
        today: date,
    ) -> UserStreak:
        """Bump today's counters; target_achieved once attempts reach the daily target."""
        target = await self.get_daily_target(user_id)

        result = await self.db.execute(
            select(UserStreak).where(UserStreak.user_id == user_id, UserStreak.date == today)
        )
        activity = result.scalar_one_or_none()

        if not activity:
            activity = UserStreak(
                user_id=user_id,
                date=today,
                questions_attempted=0,
                correct_answers=0,
                incorrect_answers=0,
                target_achieved=False,
            )
            self.db.add(activity)

        activity.questions_attempted += 1
        if is_correct:
            activity.correct_answers += 1
        else:
            activity.incorrect_answers += 1

        if activity.questions_attempted >= target:
            activity.target_achieved = True

        await self.db.flush()
        return activity
