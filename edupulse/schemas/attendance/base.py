# schemas/attendance/base.py
from pydantic import BaseModel
from datetime import date, datetime
from typing import Literal, Optional

PRESENT = 1
ABSENT = 0

AttendanceStatusValue = Literal[0, 1]


class AttendanceRecordRead(BaseModel):
    id: Optional[int] = None
    student_id: str
    date: date
    status: AttendanceStatusValue
    absence_reason: Optional[str] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def is_present(self) -> bool:
        return self.status == PRESENT
