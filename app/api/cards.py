"""
Formula Cards API Router - topics, cards and flashcard progress.
"""

import uuid
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.database import get_db
from app.fsm.states import FlashcardStatus
from app.models.cards import FormulaCard, FlashcardProgress
from app.services.catalog_service import CatalogService
from app.services.flashcard_service import FlashcardService
from app.services.identity_service import AuthenticatedUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cards", tags=["cards"])


class StatusRequest(BaseModel):
    status: FlashcardStatus


class BookmarkRequest(BaseModel):
    bookmarked: bool


def serialize_card(card: FormulaCard) -> dict:
    return {
        "id": str(card.id),
        "topic_id": str(card.topic_id),
        "title": card.title,
        "content": card.content,
        "image_url": card.image_url,
        "position": card.position,
    }


def serialize_progress(progress: Optional[FlashcardProgress]) -> Optional[dict]:
    if progress is None:
        return None
    return {
        "flashcard_id": str(progress.flashcard_id),
        "status": progress.status,
        "is_bookmarked": progress.is_bookmarked,
        "review_count": progress.review_count,
        "last_viewed_at": progress.last_viewed_at.isoformat() if progress.last_viewed_at else None,
    }


@router.get("/subjects/{subject_id}/chapters")
async def list_card_chapters(subject_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Chapters of a subject with their formula card counts."""
    chapters = await CatalogService(db).list_chapters(subject_id)
    counts = await FlashcardService(db).count_cards_by_chapter(subject_id)
    return {
        "chapters": [
            {
                "id": str(c.id),
                "slug": c.slug,
                "name": c.name,
                "card_count": counts.get(c.id, 0),
            }
            for c in chapters
        ],
        "total_cards": sum(counts.values()),
    }


@router.get("/chapters/{chapter_id}/topics")
async def list_topics(chapter_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    summaries = await FlashcardService(db).list_topics(chapter_id)
    return {
        "topics": [
            {
                "id": str(s["topic"].id),
                "slug": s["topic"].slug,
                "name": s["topic"].name,
                "card_count": s["card_count"],
                "preview_image": s["preview_image"],
            }
            for s in summaries
        ]
    }


@router.get("/topics/{topic_id}")
async def get_topic_cards(
    topic_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cards of a topic in order, each with the caller's progress (null if untouched)."""
    service = FlashcardService(db)
    topic = await service.get_topic(topic_id)
    cards = await service.list_cards(topic.id)
    progress = await service.get_progress(user.id, [card.id for card in cards])

    return {
        "topic": {"id": str(topic.id), "slug": topic.slug, "name": topic.name},
        "cards": [
            {**serialize_card(card), "progress": serialize_progress(progress.get(card.id))}
            for card in cards
        ],
    }


@router.post("/{card_id}/view")
async def record_view(
    card_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    progress = await FlashcardService(db).record_view(user.id, card_id)
    return {"progress": serialize_progress(progress)}


@router.put("/{card_id}/status")
async def set_status(
    card_id: uuid.UUID,
    request: StatusRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark a card memorized (like) or need_revision (dislike)."""
    progress = await FlashcardService(db).set_status(user.id, card_id, request.status.value)
    return {"progress": serialize_progress(progress)}


@router.put("/{card_id}/bookmark")
async def set_bookmark(
    card_id: uuid.UUID,
    request: BookmarkRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    progress = await FlashcardService(db).set_bookmark(user.id, card_id, request.bookmarked)
    return {"progress": serialize_progress(progress)}
