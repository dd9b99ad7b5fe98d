"""
Flashcard Service - formula card browsing and per-user card progress.

Progress rows are created lazily by whichever comes first: a view, a
bookmark or a status change. Every path that creates the row counts
it as one review.
"""

import uuid
import logging
from typing import List, Dict, Any, Iterable, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.cards import Topic, FormulaCard, FlashcardProgress
from app.models.catalog import Chapter
from app.fsm.states import FlashcardStatus
from app.services.errors import InvalidRequestError, NotFoundError
from app.services.subscription_service import utcnow

logger = logging.getLogger(__name__)


class FlashcardService:
    """Service for formula cards and flashcard progress."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # Browsing

    async def list_topics(self, chapter_id: uuid.UUID) -> List[Dict[str, Any]]:
        """
        Topics of a chapter in display order, each with its card count
        and the image of its first card as a preview.
        """
        result = await self.db.execute(
            select(Topic)
            .where(Topic.chapter_id == chapter_id)
            .order_by(Topic.position, Topic.name)
        )
        topics = list(result.scalars().all())
        if not topics:
            return []

        cards = await self._cards_for_topics([topic.id for topic in topics])

        summaries = []
        for topic in topics:
            topic_cards = cards.get(topic.id, [])
            summaries.append({
                "topic": topic,
                "card_count": len(topic_cards),
                "preview_image": topic_cards[0].image_url if topic_cards else None,
            })
        return summaries

    async def get_topic(self, topic_id: uuid.UUID) -> Topic:
        result = await self.db.execute(select(Topic).where(Topic.id == topic_id))
        topic = result.scalar_one_or_none()
        if not topic:
            raise NotFoundError("Topic not found")
        return topic

    async def list_cards(self, topic_id: uuid.UUID) -> List[FormulaCard]:
        result = await self.db.execute(
            select(FormulaCard)
            .where(FormulaCard.topic_id == topic_id)
            .order_by(FormulaCard.position)
        )
        return list(result.scalars().all())

    async def count_cards_by_chapter(self, subject_id: uuid.UUID) -> Dict[uuid.UUID, int]:
        """chapter_id -> number of formula cards, for the subject's chapter list."""
        result = await self.db.execute(
            select(FormulaCard.chapter_id, func.count(FormulaCard.id))
            .join(Chapter, Chapter.id == FormulaCard.chapter_id)
            .where(Chapter.subject_id == subject_id)
            .group_by(FormulaCard.chapter_id)
        )
        return {chapter_id: count for chapter_id, count in result.all()}

    # Progress

    async def get_progress(
        self,
        user_id: uuid.UUID,
        card_ids: Iterable[uuid.UUID],
    ) -> Dict[uuid.UUID, FlashcardProgress]:
        """flashcard_id -> progress row, for the cards the user has touched."""
        card_ids = list(card_ids)
        if not card_ids:
            return {}

        result = await self.db.execute(
            select(FlashcardProgress).where(
                FlashcardProgress.user_id == user_id,
                FlashcardProgress.flashcard_id.in_(card_ids),
            )
        )
        return {progress.flashcard_id: progress for progress in result.scalars().all()}

    async def record_view(self, user_id: uuid.UUID, card_id: uuid.UUID) -> FlashcardProgress:
        """Count a review. The first view creates the row as `new`; later views keep the status."""
        progress, created = await self._get_or_create_progress(user_id, card_id)
        if not created:
            progress.review_count += 1
            progress.last_viewed_at = utcnow()

        await self.db.flush()
        return progress

    async def set_bookmark(
        self,
        user_id: uuid.UUID,
        card_id: uuid.UUID,
        bookmarked: bool,
    ) -> FlashcardProgress:
        progress, _ = await self._get_or_create_progress(user_id, card_id)
        progress.is_bookmarked = bookmarked

        await self.db.flush()
        return progress

    async def set_status(
        self,
        user_id: uuid.UUID,
        card_id: uuid.UUID,
        status: str,
    ) -> FlashcardProgress:
        """Mark a card memorized, needing revision, and so on."""
        try:
            status = FlashcardStatus(status).value
        except ValueError:
            raise InvalidRequestError(f"Unknown flashcard status: {status}")

        progress, _ = await self._get_or_create_progress(user_id, card_id)
        progress.status = status

        await self.db.flush()
        logger.info(f"Flashcard {card_id} marked {status} for user {user_id}")
        return progress

    async def _get_card(self, card_id: uuid.UUID) -> FormulaCard:
        result = await self.db.execute(select(FormulaCard).where(FormulaCard.id == card_id))
        card = result.scalar_one_or_none()
        if not card:
            raise NotFoundError("Formula card not found")
        return card

    async def _get_or_create_progress(
        self,
        user_id: uuid.UUID,
        card_id: uuid.UUID,
    ) -> Tuple[FlashcardProgress, bool]:
        card = await self._get_card(card_id)

        result = await self.db.execute(
            select(FlashcardProgress).where(
                FlashcardProgress.user_id == user_id,
                FlashcardProgress.flashcard_id == card.id,
            )
        )
        progress = result.scalar_one_or_none()
        if progress:
            return progress, False

        progress = FlashcardProgress(
            user_id=user_id,
            flashcard_id=card.id,
            status=FlashcardStatus.NEW.value,
            is_bookmarked=False,
            review_count=1,
            last_viewed_at=utcnow(),
        )
        self.db.add(progress)
        await self.db.flush()
        return progress, True

    async def _cards_for_topics(
        self,
        topic_ids: List[uuid.UUID],
    ) -> Dict[uuid.UUID, List[FormulaCard]]:
        result = await self.db.execute(
            select(FormulaCard)
            .where(FormulaCard.topic_id.in_(topic_ids))
            .order_by(FormulaCard.position)
        )
        grouped: Dict[uuid.UUID, List[FormulaCard]] = {}
        for card in result.scalars().all():
            grouped.setdefault(card.topic_id, []).append(card)
        return grouped
