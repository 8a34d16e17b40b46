from datetime import date, datetime, timedelta
from typing import Optional

from edupulse.schemas.insights import AttendanceReminder, NotificationsResponse
from edupulse.services.attendance_service import AttendanceService
from edupulse.services.base_service import BaseService
from edupulse.services.student_service import StudentService

REMINDER_MESSAGE = "You haven't marked attendance for today yet."
WEEK_DAYS = 7


class NotificationService(BaseService):

    async def reminder(self, today: Optional[date] = None, total_students: Optional[int] = None) -> AttendanceReminder:
        """Due on school days when the roster is not empty and nothing is marked for today."""
        today = today or datetime.now().date()
        if today.weekday() >= 5:
            return AttendanceReminder(due=False)

        if total_students is None:
            total_students = await StudentService(self.db, self.owner_id).count_students()
        if total_students == 0:
            return AttendanceReminder(due=False)

        if await AttendanceService(self.db, self.owner_id).has_records_for(today):
            return AttendanceReminder(due=False)
        return AttendanceReminder(due=True, message=REMINDER_MESSAGE)

    async def summary(self, today: Optional[date] = None) -> NotificationsResponse:
        today = today or datetime.now().date()
        total_students = await StudentService(self.db, self.owner_id).count_students()
        days = await AttendanceService(self.db, self.owner_id).distinct_dates_since(
            today - timedelta(days=WEEK_DAYS), today
        )
        return NotificationsResponse(
            total_students=total_students,
            attendance_days_this_week=len(days),
            reminder=await self.reminder(today, total_students)
        )
