from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends

from edupulse.core.dependencies import get_insights_service
from edupulse.schemas.insights import (
    AttendanceStatistics,
    DailyAttendanceResponse,
    DashboardSummary,
    NarrativeInsights
)
from edupulse.services.insights_service import InsightsService

router = APIRouter()


@router.get("/statistics", response_model=AttendanceStatistics)
async def get_statistics(
    start: Optional[date] = None,
    end: Optional[date] = None,
    insights_service: InsightsService = Depends(get_insights_service)
):
    """Average attendance, most absent weekday, top performer and longest streak."""
    return await insights_service.statistics(start, end)


@router.get("/daily", response_model=DailyAttendanceResponse)
async def get_daily_attendance(
    start: Optional[date] = None,
    end: Optional[date] = None,
    insights_service: InsightsService = Depends(get_insights_service)
):
    return await insights_service.daily(start, end)


@router.get("/dashboard", response_model=DashboardSummary)
async def get_dashboard(insights_service: InsightsService = Depends(get_insights_service)):
    return await insights_service.dashboard()


@router.get("/ai", response_model=NarrativeInsights, response_model_by_alias=True)
async def get_ai_insights(insights_service: InsightsService = Depends(get_insights_service)):
    return await insights_service.narrative()
