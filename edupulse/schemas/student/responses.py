# schemas/student/responses.py
from pydantic import BaseModel
from datetime import date, datetime
from typing import Optional, List

from edupulse.models.student import StudentStatus


class StudentRead(BaseModel):
    id: str
    name: str
    index_number: str
    grade: int
    section: Optional[str] = None
    specialty: Optional[str] = None
    status: StudentStatus
    photo_url: Optional[str] = None
    attendance_percentage: float = 0.0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def class_label(self) -> str:
        return f"{self.grade}-{self.section}" if self.section else str(self.grade)


class StudentListResponse(BaseModel):
    items: List[StudentRead]
    total: int


class BulkInsertResponse(BaseModel):
    inserted: int
    items: List[StudentRead]


class BulkImportResult(BaseModel):
    success: int
    failed: int
    errors: List[str]


class StudentAttendanceSummary(BaseModel):
    student_id: str
    start_date: date
    end_date: date
    total_present: int
    total_absent: int
    with_reason: int
    percentage: int
