"""
Tests for PracticeService and the catalog/practice endpoints.
"""

import uuid
from datetime import date, timedelta

import pytest
from sqlalchemy import select

from app.fsm.states import AttemptFilter
from app.models.catalog import Question
from app.models.practice import UserStreak, QuestionReport
from app.services.catalog_service import CatalogService
from app.services.errors import InvalidRequestError, NotFoundError
from app.services.practice_service import PracticeService

TODAY = date(2026, 10, 18)


@pytest.mark.asyncio
async def test_record_correct_attempt(db, user, question):
    result = await PracticeService(db).record_attempt(user.id, question.id, 1, today=TODAY)

    assert result["is_correct"] is True
    assert result["correct_option"] == 1
    assert result["explanation"] == "Mitosis follows G2."
    assert result["attempt"].attempt_count == 1
    assert result["attempt"].chapter_id == question.chapter_id

    today = result["today"]
    assert today.date == TODAY
    assert today.questions_attempted == 1
    assert today.correct_answers == 1
    assert today.incorrect_answers == 0


@pytest.mark.asyncio
async def test_reattempt_updates_same_row(db, user, question):
    service = PracticeService(db)

    await service.record_attempt(user.id, question.id, 0, today=TODAY)
    result = await service.record_attempt(user.id, question.id, 1, today=TODAY)

    attempt = result["attempt"]
    assert attempt.attempt_count == 2
    assert attempt.selected_option == 1
    assert attempt.is_correct is True
    assert result["today"].questions_attempted == 2
    assert result["today"].incorrect_answers == 1


@pytest.mark.asyncio
async def test_option_out_of_range(db, user, question):
    with pytest.raises(InvalidRequestError):
        await PracticeService(db).record_attempt(user.id, question.id, 4, today=TODAY)


@pytest.mark.asyncio
async def test_unknown_question(db, user):
    with pytest.raises(NotFoundError):
        await PracticeService(db).record_attempt(user.id, uuid.uuid4(), 0, today=TODAY)


@pytest.mark.asyncio
async def test_target_achieved_when_daily_target_reached(db, user, question):
    service = PracticeService(db)
    await service.set_daily_target(user.id, 2)

    first = await service.record_attempt(user.id, question.id, 0, today=TODAY)
    assert first["today"].target_achieved is False

    second = await service.record_attempt(user.id, question.id, 1, today=TODAY)
    assert second["today"].target_achieved is True


@pytest.mark.asyncio
async def test_default_daily_target(db, user):
    assert await PracticeService(db).get_daily_target(user.id) == 10


@pytest.mark.asyncio
async def test_invalid_daily_target(db, user):
    with pytest.raises(InvalidRequestError):
        await PracticeService(db).set_daily_target(user.id, 0)


class TestStreak:

    async def _achieved(self, db, user_id, *days_ago):
        for n in days_ago:
            db.add(UserStreak(
                user_id=user_id,
                date=TODAY - timedelta(days=n),
                questions_attempted=10,
                correct_answers=7,
                incorrect_answers=3,
                target_achieved=True,
            ))
        await db.flush()

    @pytest.mark.asyncio
    async def test_no_activity(self, db, user):
        assert await PracticeService(db).current_streak(user.id, today=TODAY) == 0

    @pytest.mark.asyncio
    async def test_streak_including_today(self, db, user):
        await self._achieved(db, user.id, 0, 1, 2)
        assert await PracticeService(db).current_streak(user.id, today=TODAY) == 3

    @pytest.mark.asyncio
    async def test_streak_from_yesterday_when_today_pending(self, db, user):
        await self._achieved(db, user.id, 1, 2)
        assert await PracticeService(db).current_streak(user.id, today=TODAY) == 2

    @pytest.mark.asyncio
    async def test_gap_breaks_streak(self, db, user):
        await self._achieved(db, user.id, 0, 1, 3, 4, 5)
        assert await PracticeService(db).current_streak(user.id, today=TODAY) == 2

    @pytest.mark.asyncio
    async def test_stale_streak(self, db, user):
        await self._achieved(db, user.id, 2, 3)
        assert await PracticeService(db).current_streak(user.id, today=TODAY) == 0


@pytest.mark.asyncio
async def test_markers_and_filters(db, user, chapter, question):
    other = Question(
        chapter_id=chapter.id,
        year=2022,
        question_text="Site of the Krebs cycle?",
        options=["Cytoplasm", "Mitochondrial matrix"],
        correct_option=1,
    )
    db.add(other)
    await db.flush()

    service = PracticeService(db)
    await service.record_attempt(user.id, question.id, 0, today=TODAY)
    await service.set_marker(user.id, other.id, bookmarked=True)
    await service.set_marker(user.id, question.id, flagged=True)

    bookmarked = await service.list_attempts(user.id, chapter.id, AttemptFilter.BOOKMARKED)
    assert [a.question_id for a in bookmarked] == [other.id]

    flagged = await service.list_attempts(user.id, chapter.id, AttemptFilter.FLAGGED)
    assert [a.question_id for a in flagged] == [question.id]

    incorrect = await service.list_attempts(user.id, chapter.id, AttemptFilter.INCORRECT)
    assert [a.question_id for a in incorrect] == [question.id]

    everything = await service.list_attempts(user.id, chapter.id)
    assert len(everything) == 2

    # Marker alone records no answer
    marked_only = next(a for a in everything if a.question_id == other.id)
    assert marked_only.attempt_count == 0
    assert marked_only.is_correct is None


@pytest.mark.asyncio
async def test_marker_requires_a_change(db, user, question):
    with pytest.raises(InvalidRequestError):
        await PracticeService(db).set_marker(user.id, question.id)


@pytest.mark.asyncio
async def test_pyqs_newest_first(db, chapter, question):
    db.add_all([
        Question(chapter_id=chapter.id, year=2024, month=6, question_text="Q2024",
                 options=["a", "b"], correct_option=0),
        Question(chapter_id=chapter.id, year=2021, month=7, question_text="Q2021",
                 options=["a", "b"], correct_option=0),
    ])
    await db.flush()

    service = CatalogService(db)
    years = [q.year for q in await service.list_pyqs(chapter.id)]
    assert years == [2024, 2023, 2021]

    only_2021 = await service.list_pyqs(chapter.id, year=2021)
    assert [q.question_text for q in only_2021] == ["Q2021"]


# Endpoints

@pytest.mark.asyncio
async def test_catalog_endpoints(client, exam, chapter, question):
    exams = await client.get("/api/exams")
    assert [e["slug"] for e in exams.json()["exams"]] == ["neet"]

    detail = await client.get("/api/exams/neet")
    assert [s["slug"] for s in detail.json()["subjects"]] == ["botany"]

    chapters = await client.get("/api/exams/neet/botany/chapters")
    assert chapters.status_code == 200
    listed = chapters.json()["chapters"]
    assert listed[0]["slug"] == "cell-cycle"
    assert listed[0]["question_count"] == 1

    questions = await client.get(f"/api/chapters/{chapter.id}/questions")
    body = questions.json()["questions"]
    assert body[0]["question_text"] == "Which phase follows G2?"
    assert "correct_option" not in body[0]


@pytest.mark.asyncio
async def test_unknown_exam(client):
    response = await client.get("/api/exams/upsc")

    assert response.status_code == 404
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_attempt_endpoint(client, auth_headers, question):
    response = await client.post(
        "/api/practice/attempts",
        json={"question_id": str(question.id), "selected_option": 1},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["is_correct"] is True
    assert data["today"]["questions_attempted"] == 1

    streak = await client.get("/api/practice/streak", headers=auth_headers)
    assert streak.json()["daily_questions_target"] == 10


@pytest.mark.asyncio
async def test_practice_requires_auth(client, question):
    response = await client.post(
        "/api/practice/attempts",
        json={"question_id": str(question.id), "selected_option": 1},
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_target_endpoint(client, auth_headers, db, user):
    response = await client.put(
        "/api/practice/target",
        json={"daily_questions_target": 25},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json() == {"daily_questions_target": 25}

    rows = (await db.execute(select(UserStreak))).scalars().all()
    assert rows == []


# Question reports

class TestQuestionReports:

    @pytest.mark.asyncio
    async def test_report_defaults_to_error(self, db, user, question):
        report = await PracticeService(db).report_question(user.id, question.id)

        assert report.report_type == "error"
        assert report.description == "User reported an error in this question"
        assert report.status == "open"
        assert report.user_id == user.id

    @pytest.mark.asyncio
    async def test_report_keeps_description(self, db, user, question):
        report = await PracticeService(db).report_question(
            user.id, question.id, "wrong_answer", "Answer should be G2"
        )

        assert report.report_type == "wrong_answer"
        assert report.description == "Answer should be G2"

    @pytest.mark.asyncio
    async def test_report_unknown_type(self, db, user, question):
        with pytest.raises(InvalidRequestError):
            await PracticeService(db).report_question(user.id, question.id, "spam")

    @pytest.mark.asyncio
    async def test_report_unknown_question(self, db, user):
        with pytest.raises(NotFoundError):
            await PracticeService(db).report_question(user.id, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_resolve_moves_report_out_of_queue(self, db, user, question):
        service = PracticeService(db)
        report = await service.report_question(user.id, question.id)

        resolved = await service.resolve_report(report.id)

        assert resolved.status == "resolved"
        assert resolved.resolved_at is not None
        assert await service.list_reports() == []


@pytest.mark.asyncio
async def test_report_endpoint(client, auth_headers, db, question):
    response = await client.post(
        "/api/practice/reports",
        json={"question_id": str(question.id)},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["status"] == "open"

    report = (await db.execute(select(QuestionReport))).scalar_one()
    assert str(report.id) == data["report_id"]
    assert report.question_id == question.id


@pytest.mark.asyncio
async def test_report_endpoint_requires_auth(client, question):
    response = await client.post("/api/practice/reports", json={"question_id": str(question.id)})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_admin_report_queue(client, auth_headers, question):
    admin = {"X-Admin-Key": "test_admin_key"}
    await client.post(
        "/api/practice/reports",
        json={"question_id": str(question.id), "report_type": "unclear"},
        headers=auth_headers,
    )

    queue = await client.get("/admin/question-reports", headers=admin)
    assert queue.status_code == 200
    reports = queue.json()["reports"]
    assert [r["report_type"] for r in reports] == ["unclear"]

    resolved = await client.post(
        f"/admin/question-reports/{reports[0]['id']}/resolve", headers=admin
    )
    assert resolved.status_code == 200
    assert resolved.json()["report"]["status"] == "resolved"

    queue = await client.get("/admin/question-reports", headers=admin)
    assert queue.json()["reports"] == []

    denied = await client.get("/admin/question-reports")
    assert denied.status_code == 401
