from pydantic import BaseModel
from typing import Optional


class AttendanceReminder(BaseModel):
    due: bool
    message: Optional[str] = None


class NotificationsResponse(BaseModel):
    total_students: int
    attendance_days_this_week: int
    reminder: AttendanceReminder


class AccessVerifyRequest(BaseModel):
    password: str


class AccessVerifyResponse(BaseModel):
    verified: bool
    created: bool


class AccessStatusResponse(BaseModel):
    password_set: bool
