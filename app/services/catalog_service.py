"""
Catalog Service - read-only exam, subject, chapter and PYQ queries.
"""

import uuid
import logging
from typing import Optional, List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.catalog import Exam, Subject, Chapter, Question

logger = logging.getLogger(__name__)

PYQ_CATEGORY = "PYQ"


class CatalogService:
    """Service for browsing the question catalog."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_exams(self) -> List[Exam]:
        result = await self.db.execute(select(Exam).order_by(Exam.name))
        return list(result.scalars().all())

    async def get_exam_by_slug(self, slug: str) -> Optional[Exam]:
        result = await self.db.execute(select(Exam).where(Exam.slug == slug))
        return result.scalar_one_or_none()

    async def list_subjects(self, exam_id: uuid.UUID) -> List[Subject]:
        result = await self.db.execute(
            select(Subject).where(Subject.exam_id == exam_id).order_by(Subject.name)
        )
        return list(result.scalars().all())

    async def get_subject_by_slug(self, exam_id: uuid.UUID, slug: str) -> Optional[Subject]:
        result = await self.db.execute(
            select(Subject).where(Subject.exam_id == exam_id, Subject.slug == slug)
        )
        return result.scalar_one_or_none()

    async def list_chapters(self, subject_id: uuid.UUID) -> List[Chapter]:
        result = await self.db.execute(
            select(Chapter)
            .where(Chapter.subject_id == subject_id)
            .order_by(Chapter.position, Chapter.name)
        )
        return list(result.scalars().all())

    async def get_question(self, question_id: uuid.UUID) -> Optional[Question]:
        result = await self.db.execute(select(Question).where(Question.id == question_id))
        return result.scalar_one_or_none()

    async def list_pyqs(
        self,
        chapter_id: uuid.UUID,
        year: Optional[int] = None,
    ) -> List[Question]:
        """Previous-year questions of a chapter, newest first."""
        query = select(Question).where(
            Question.chapter_id == chapter_id,
            Question.category == PYQ_CATEGORY,
        )
        if year is not None:
            query = query.where(Question.year == year)

        result = await self.db.execute(
            query.order_by(Question.year.desc(), Question.month.desc())
        )
        return list(result.scalars().all())

    async def count_pyqs_by_chapter(self, subject_id: uuid.UUID) -> dict:
        """chapter_id -> number of PYQs, for the subject's chapter list."""
        result = await self.db.execute(
            select(Question.chapter_id, func.count(Question.id))
            .join(Chapter, Chapter.id == Question.chapter_id)
            .where(Chapter.subject_id == subject_id, Question.category == PYQ_CATEGORY)
            .group_by(Question.chapter_id)
        )
        return {chapter_id: count for chapter_id, count in result.all()}
