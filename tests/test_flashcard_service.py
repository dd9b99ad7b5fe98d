"""
Tests for FlashcardService and the formula card endpoints.
"""

import uuid

import pytest
import pytest_asyncio
from sqlalchemy import select, func

from app.models.cards import Topic, FormulaCard, FlashcardProgress
from app.services.errors import InvalidRequestError, NotFoundError
from app.services.flashcard_service import FlashcardService


@pytest_asyncio.fixture
async def topic(db, chapter) -> Topic:
    topic = Topic(chapter_id=chapter.id, slug="phases", name="Phases of Mitosis", position=1)
    db.add(topic)
    await db.flush()
    return topic


@pytest_asyncio.fixture
async def cards(db, chapter, topic) -> list:
    # Inserted out of order; position decides display order
    second = FormulaCard(
        topic_id=topic.id, chapter_id=chapter.id, title="Metaphase",
        image_url="https://cdn.test/metaphase.png", position=2,
    )
    first = FormulaCard(
        topic_id=topic.id, chapter_id=chapter.id, title="Prophase",
        image_url="https://cdn.test/prophase.png", position=1,
    )
    db.add_all([second, first])
    await db.flush()
    return [first, second]


async def progress_rows(db) -> int:
    return (await db.execute(select(func.count()).select_from(FlashcardProgress))).scalar_one()


class TestBrowsing:

    @pytest.mark.asyncio
    async def test_topics_with_counts_and_preview(self, db, chapter, topic, cards):
        empty = Topic(chapter_id=chapter.id, slug="cytokinesis", name="Cytokinesis", position=2)
        db.add(empty)
        await db.flush()

        summaries = await FlashcardService(db).list_topics(chapter.id)

        assert [s["topic"].slug for s in summaries] == ["phases", "cytokinesis"]
        assert summaries[0]["card_count"] == 2
        assert summaries[0]["preview_image"] == "https://cdn.test/prophase.png"
        assert summaries[1]["card_count"] == 0
        assert summaries[1]["preview_image"] is None

    @pytest.mark.asyncio
    async def test_cards_in_position_order(self, db, topic, cards):
        listed = await FlashcardService(db).list_cards(topic.id)
        assert [card.title for card in listed] == ["Prophase", "Metaphase"]

    @pytest.mark.asyncio
    async def test_card_counts_by_chapter(self, db, chapter, cards):
        counts = await FlashcardService(db).count_cards_by_chapter(chapter.subject_id)
        assert counts == {chapter.id: 2}

    @pytest.mark.asyncio
    async def test_unknown_topic(self, db):
        with pytest.raises(NotFoundError):
            await FlashcardService(db).get_topic(uuid.uuid4())


class TestProgress:

    @pytest.mark.asyncio
    async def test_first_view_creates_new_row(self, db, user, cards):
        progress = await FlashcardService(db).record_view(user.id, cards[0].id)

        assert progress.status == "new"
        assert progress.review_count == 1
        assert progress.is_bookmarked is False
        assert progress.last_viewed_at is not None

    @pytest.mark.asyncio
    async def test_repeat_views_keep_status(self, db, user, cards):
        service = FlashcardService(db)
        await service.set_status(user.id, cards[0].id, "memorized")

        await service.record_view(user.id, cards[0].id)
        progress = await service.record_view(user.id, cards[0].id)

        assert progress.status == "memorized"
        assert progress.review_count == 3
        assert await progress_rows(db) == 1

    @pytest.mark.asyncio
    async def test_status_on_untouched_card(self, db, user, cards):
        progress = await FlashcardService(db).set_status(user.id, cards[1].id, "need_revision")

        assert progress.status == "need_revision"
        assert progress.review_count == 1
        assert progress.is_bookmarked is False

    @pytest.mark.asyncio
    async def test_unknown_status_rejected(self, db, user, cards):
        with pytest.raises(InvalidRequestError):
            await FlashcardService(db).set_status(user.id, cards[0].id, "forgotten")
        assert await progress_rows(db) == 0

    @pytest.mark.asyncio
    async def test_bookmark_round_trip(self, db, user, cards):
        service = FlashcardService(db)

        bookmarked = await service.set_bookmark(user.id, cards[0].id, True)
        assert bookmarked.is_bookmarked is True
        assert bookmarked.status == "new"

        cleared = await service.set_bookmark(user.id, cards[0].id, False)
        assert cleared.id == bookmarked.id
        assert cleared.is_bookmarked is False

    @pytest.mark.asyncio
    async def test_unknown_card(self, db, user):
        with pytest.raises(NotFoundError):
            await FlashcardService(db).record_view(user.id, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_progress_is_per_user(self, db, user, cards):
        service = FlashcardService(db)
        await service.record_view(uuid.uuid4(), cards[0].id)
        await service.record_view(user.id, cards[1].id)

        progress = await service.get_progress(user.id, [card.id for card in cards])

        assert set(progress) == {cards[1].id}


# Endpoints

@pytest.mark.asyncio
async def test_topics_endpoint(client, chapter, topic, cards):
    response = await client.get(f"/api/cards/chapters/{chapter.id}/topics")

    assert response.status_code == 200
    topics = response.json()["topics"]
    assert topics == [{
        "id": str(topic.id),
        "slug": "phases",
        "name": "Phases of Mitosis",
        "card_count": 2,
        "preview_image": "https://cdn.test/prophase.png",
    }]


@pytest.mark.asyncio
async def test_subject_chapters_endpoint(client, chapter, cards):
    response = await client.get(f"/api/cards/subjects/{chapter.subject_id}/chapters")

    assert response.status_code == 200
    data = response.json()
    assert data["total_cards"] == 2
    assert data["chapters"][0]["card_count"] == 2


@pytest.mark.asyncio
async def test_topic_page_includes_progress(client, auth_headers, topic, cards):
    viewed = await client.post(f"/api/cards/{cards[0].id}/view", headers=auth_headers)
    assert viewed.status_code == 200

    response = await client.get(f"/api/cards/topics/{topic.id}", headers=auth_headers)

    assert response.status_code == 200
    listed = response.json()["cards"]
    assert [c["title"] for c in listed] == ["Prophase", "Metaphase"]
    assert listed[0]["progress"]["status"] == "new"
    assert listed[0]["progress"]["review_count"] == 1
    assert listed[1]["progress"] is None


@pytest.mark.asyncio
async def test_status_and_bookmark_endpoints(client, auth_headers, cards):
    liked = await client.put(
        f"/api/cards/{cards[0].id}/status", json={"status": "memorized"}, headers=auth_headers
    )
    assert liked.status_code == 200
    assert liked.json()["progress"]["status"] == "memorized"

    bookmarked = await client.put(
        f"/api/cards/{cards[0].id}/bookmark", json={"bookmarked": True}, headers=auth_headers
    )
    assert bookmarked.status_code == 200
    assert bookmarked.json()["progress"]["is_bookmarked"] is True
    assert bookmarked.json()["progress"]["status"] == "memorized"


@pytest.mark.asyncio
async def test_status_endpoint_rejects_unknown_status(client, auth_headers, cards):
    response = await client.put(
        f"/api/cards/{cards[0].id}/status", json={"status": "forgotten"}, headers=auth_headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_card_endpoints_require_auth(client, topic, cards):
    response = await client.post(f"/api/cards/{cards[0].id}/view")
    assert response.status_code == 401

    response = await client.get(f"/api/cards/topics/{topic.id}")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_view_unknown_card_endpoint(client, auth_headers):
    response = await client.post(f"/api/cards/{uuid.uuid4()}/view", headers=auth_headers)

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Formula card not found"}
