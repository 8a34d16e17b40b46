from pydantic import BaseModel
from datetime import date
from typing import List, Optional


class AttendanceStatistics(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_records: int
    average_attendance: int
    most_absent_day: str
    top_performer: str
    streak_days: int


class DailyAttendance(BaseModel):
    date: date
    present: int
    absent: int


class GroupAttendance(BaseModel):
    group: str
    present: int
    absent: int


class DailyAttendanceResponse(BaseModel):
    start_date: date
    end_date: date
    days: List[DailyAttendance]
    groups: List[GroupAttendance]


class DashboardSummary(BaseModel):
    total_students: int
    average_attendance: int
    at_risk_count: int
    present_today: int
    absent_today: int
