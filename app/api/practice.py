"""
Practice API Router - attempts, bookmarks/flags, question reports, daily target and streak.
"""

import uuid
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.database import get_db
from app.fsm.states import AttemptFilter, ReportType
from app.models.practice import QuestionAttempt
from app.services.identity_service import AuthenticatedUser
from app.services.practice_service import PracticeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/practice", tags=["practice"])


class AttemptRequest(BaseModel):
    question_id: uuid.UUID
    selected_option: int = Field(ge=0)


class MarkerRequest(BaseModel):
    question_id: uuid.UUID
    bookmarked: Optional[bool] = None
    flagged: Optional[bool] = None


class TargetRequest(BaseModel):
    daily_questions_target: int = Field(gt=0, le=500)


class ReportRequest(BaseModel):
    question_id: uuid.UUID
    report_type: ReportType = ReportType.ERROR
    description: Optional[str] = Field(None, max_length=2000)


def serialize_attempt(attempt: QuestionAttempt) -> dict:
    return {
        "question_id": str(attempt.question_id),
        "chapter_id": str(attempt.chapter_id),
        "selected_option": attempt.selected_option,
        "is_correct": attempt.is_correct,
        "is_bookmarked": attempt.is_bookmarked,
        "is_flagged": attempt.is_flagged,
        "attempt_count": attempt.attempt_count,
    }


@router.post("/attempts")
async def record_attempt(
    request: AttemptRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Record an answer; returns correctness and today's counters."""
    result = await PracticeService(db).record_attempt(
        user.id, request.question_id, request.selected_option
    )
    today = result["today"]
    return {
        "is_correct": result["is_correct"],
        "correct_option": result["correct_option"],
        "explanation": result["explanation"],
        "attempt": serialize_attempt(result["attempt"]),
        "today": {
            "date": today.date.isoformat(),
            "questions_attempted": today.questions_attempted,
            "correct_answers": today.correct_answers,
            "incorrect_answers": today.incorrect_answers,
            "target_achieved": today.target_achieved,
        },
    }


@router.post("/markers")
async def set_marker(
    request: MarkerRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    attempt = await PracticeService(db).set_marker(
        user.id, request.question_id, request.bookmarked, request.flagged
    )
    return {"attempt": serialize_attempt(attempt)}


@router.post("/reports")
async def report_question(
    request: ReportRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Report a problem with a question; it is queued for review."""
    report = await PracticeService(db).report_question(
        user.id, request.question_id, request.report_type.value, request.description
    )
    return {
        "success": True,
        "report_id": str(report.id),
        "status": report.status,
    }


@router.get("/chapters/{chapter_id}/attempts")
async def list_attempts(
    chapter_id: uuid.UUID,
    filter: AttemptFilter = Query(AttemptFilter.ALL),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """All / bookmarked / flagged / incorrect attempts in a chapter."""
    attempts = await PracticeService(db).list_attempts(user.id, chapter_id, filter)
    return {"attempts": [serialize_attempt(a) for a in attempts]}


@router.put("/target")
async def set_daily_target(
    request: TargetRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    target = await PracticeService(db).set_daily_target(user.id, request.daily_questions_target)
    return {"daily_questions_target": target.daily_questions_target}


@router.get("/streak")
async def get_streak(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = PracticeService(db)
    return {
        "current_streak": await service.current_streak(user.id),
        "daily_questions_target": await service.get_daily_target(user.id),
    }
