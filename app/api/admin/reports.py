"""
Admin Question Report Endpoints.
Review queue for questions students reported.
"""

import uuid
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_admin_user
from app.database import get_db
from app.fsm.states import ReportStatus
from app.models.practice import QuestionReport
from app.services.practice_service import PracticeService

router = APIRouter()
logger = logging.getLogger(__name__)


def serialize_report(report: QuestionReport) -> dict:
    return {
        "id": str(report.id),
        "question_id": str(report.question_id),
        "user_id": str(report.user_id),
        "report_type": report.report_type,
        "description": report.description,
        "status": report.status,
        "reported_at": report.reported_at.isoformat(),
        "resolved_at": report.resolved_at.isoformat() if report.resolved_at else None,
    }


@router.get("/question-reports")
async def list_reports(
    status: ReportStatus = Query(ReportStatus.OPEN),
    db: AsyncSession = Depends(get_db),
    _: str = Depends(get_admin_user),
):
    reports = await PracticeService(db).list_reports(status)
    return {"reports": [serialize_report(r) for r in reports]}


@router.post("/question-reports/{report_id}/resolve")
async def resolve_report(
    report_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: str = Depends(get_admin_user),
):
    report = await PracticeService(db).resolve_report(report_id)
    logger.info(f"Question report {report.id} resolved")
    return {"success": True, "report": serialize_report(report)}
