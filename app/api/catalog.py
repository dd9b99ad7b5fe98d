"""
Catalog API Router - exams, subjects, chapters and previous-year questions.

Read-only and public. Question answers are not included in listings.
"""

import uuid
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.services.catalog_service import CatalogService
from app.services.errors import NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/exams")
async def list_exams(db: AsyncSession = Depends(get_db)):
    exams = await CatalogService(db).list_exams()
    return {
        "exams": [
            {"id": str(e.id), "slug": e.slug, "name": e.name, "description": e.description}
            for e in exams
        ]
    }


@router.get("/exams/{exam_slug}")
async def get_exam(exam_slug: str, db: AsyncSession = Depends(get_db)):
    """Exam with its subjects."""
    service = CatalogService(db)
    exam = await service.get_exam_by_slug(exam_slug)
    if not exam:
        raise NotFoundError("Exam not found")

    subjects = await service.list_subjects(exam.id)
    return {
        "exam": {"id": str(exam.id), "slug": exam.slug, "name": exam.name, "description": exam.description},
        "subjects": [{"id": str(s.id), "slug": s.slug, "name": s.name} for s in subjects],
    }


@router.get("/exams/{exam_slug}/{subject_slug}/chapters")
async def list_chapters(
    exam_slug: str,
    subject_slug: str,
    db: AsyncSession = Depends(get_db),
):
    """Chapters of a subject with their PYQ counts."""
    service = CatalogService(db)
    exam = await service.get_exam_by_slug(exam_slug)
    if not exam:
        raise NotFoundError("Exam not found")

    subject = await service.get_subject_by_slug(exam.id, subject_slug)
    if not subject:
        raise NotFoundError("Subject not found")

    chapters = await service.list_chapters(subject.id)
    counts = await service.count_pyqs_by_chapter(subject.id)

    return {
        "subject": {"id": str(subject.id), "slug": subject.slug, "name": subject.name},
        "chapters": [
            {
                "id": str(c.id),
                "slug": c.slug,
                "name": c.name,
                "question_count": counts.get(c.id, 0),
            }
            for c in chapters
        ],
    }


@router.get("/chapters/{chapter_id}/questions")
async def list_chapter_questions(
    chapter_id: uuid.UUID,
    year: Optional[int] = Query(None, ge=1990, le=2100),
    db: AsyncSession = Depends(get_db),
):
    """PYQs of a chapter, newest first, optionally for one year."""
    questions = await CatalogService(db).list_pyqs(chapter_id, year=year)
    return {
        "questions": [
            {
                "id": str(q.id),
                "year": q.year,
                "month": q.month,
                "question_text": q.question_text,
                "options": q.options,
            }
            for q in questions
        ]
    }
