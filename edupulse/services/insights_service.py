import json
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from edupulse.core.config import settings
from edupulse.core.logging import logger, log_function_call
from edupulse.schemas.attendance import AttendanceRecordRead
from edupulse.schemas.insights import (
    AttendanceStatistics,
    DailyAttendanceResponse,
    DashboardSummary,
    NarrativeInsights
)
from edupulse.schemas.student import StudentAttendanceSummary, StudentRead
from edupulse.services import analytics
from edupulse.services.ai_gateway import AIGateway
from edupulse.services.attendance_service import AttendanceService
from edupulse.services.base_service import BaseService
from edupulse.services.student_service import StudentService
from edupulse.utils.model_output import parse_model_json

FALLBACK_RECOMMENDATIONS = [
    "Review at-risk students regularly",
    "Contact parents of absent students"
]

NARRATIVE_PROMPT = """Analyze this school attendance data and provide insights.

Students: {students}
Recent attendance (status 1 = present, 0 = absent): {records}

Answer with ONLY a JSON object with these keys:
- "atRiskStudents": array of student names with attendance below {threshold:g}%
- "trends": string describing patterns in the attendance
- "recommendations": array of actionable suggestions for the teacher"""


def fallback_insights(students: Sequence[StudentRead], reply: Optional[str]) -> NarrativeInsights:
    return NarrativeInsights(
        at_risk_students=analytics.at_risk_names(students, settings.AT_RISK_THRESHOLD),
        trends=reply or "",
        recommendations=list(FALLBACK_RECOMMENDATIONS),
        fallback=True
    )


def parse_insights(reply: Optional[str], students: Sequence[StudentRead]) -> NarrativeInsights:
    """
    Accept the model reply only when it is a JSON object of exactly the
    expected shape; anything else gets the deterministic fallback.
    """
    payload = parse_model_json(reply, expect=dict)
    if payload is not None:
        try:
            return NarrativeInsights.model_validate(payload)
        except PydanticValidationError as e:
            logger.warning(f"Model insights did not match the expected shape: {e.error_count()} errors")
    return fallback_insights(students, reply)


class InsightsService(BaseService):
    """Statistics, chart series and the model-written narrative for one roster."""

    def __init__(self, db: AsyncSession, owner_id: str, gateway: Optional[AIGateway] = None):
        super().__init__(db, owner_id)
        self.gateway = gateway
        self.student_service = StudentService(db, owner_id)
        self.attendance_service = AttendanceService(db, owner_id)

    @staticmethod
    def default_window(start_date: Optional[date], end_date: Optional[date]):
        end_date = end_date or datetime.now().date()
        start_date = start_date or end_date - timedelta(days=settings.STATISTICS_WINDOW_DAYS - 1)
        return start_date, end_date

    async def statistics(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> AttendanceStatistics:
        start_date, end_date = self.default_window(start_date, end_date)
        records = await self.attendance_service.list_by_date_range(start_date, end_date)
        students = await self.student_service.list_students()
        return analytics.compute_statistics(records, students, start_date, end_date)

    async def daily(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> DailyAttendanceResponse:
        start_date, end_date = self.default_window(start_date, end_date)
        records = await self.attendance_service.list_by_date_range(start_date, end_date)
        students = await self.student_service.list_students()
        return DailyAttendanceResponse(
            start_date=start_date,
            end_date=end_date,
            days=analytics.daily_summary(records),
            groups=analytics.grade_summary(records, students)
        )

    async def dashboard(self, today: Optional[date] = None) -> DashboardSummary:
        today = today or datetime.now().date()
        students = await self.student_service.list_students()
        today_records = await self.attendance_service.list_for_date(today)
        return analytics.roster_summary(students, today_records)

    async def student_attendance(
        self,
        student_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> StudentAttendanceSummary:
        await self.student_service.get_student(student_id)
        start_date, end_date = self.default_window(start_date, end_date)
        records = await self.attendance_service.list_by_date_range(start_date, end_date, student_id=student_id)
        return analytics.student_summary(student_id, records, start_date, end_date)

    @staticmethod
    def build_narrative_prompt(students: Sequence[StudentRead], records: List[AttendanceRecordRead]) -> str:
        roster = [
            {
                "name": s.name,
                "index_number": s.index_number,
                "grade": s.class_label,
                "status": s.status.value,
                "attendance_percentage": s.attendance_percentage
            }
            for s in students
        ]
        recent = [
            {"student_id": r.student_id, "date": r.date.isoformat(), "status": r.status}
            for r in records
        ]
        return NARRATIVE_PROMPT.format(
            students=json.dumps(roster),
            records=json.dumps(recent),
            threshold=settings.AT_RISK_THRESHOLD
        )

    @log_function_call(logger)
    async def narrative(self) -> NarrativeInsights:
        students = await self.student_service.list_students()
        records = await self.attendance_service.list_recent(settings.INSIGHTS_ATTENDANCE_LIMIT)

        # Gateway errors propagate as AIGatewayError / ConfigurationError
        reply = await self.gateway.chat_complete(self.build_narrative_prompt(students, records))

        insights = parse_insights(reply, students)
        if insights.fallback:
            logger.info("Serving fallback insights", extra={"owner_id": self.owner_id})
        return insights
