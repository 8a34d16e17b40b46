from pydantic import BaseModel, Field
from datetime import date
from typing import Dict, List, Literal, Optional

from .base import AttendanceRecordRead


class SheetEntry(BaseModel):
    student_id: str
    name: str
    index_number: str
    grade: int
    section: Optional[str] = None
    status: Optional[int] = Field(None, description="None while the student is unmarked")
    absence_reason: Optional[str] = None


class AttendanceSheetResponse(BaseModel):
    date: date
    entries: List[SheetEntry]
    groups: Dict[str, List[str]] = Field(default_factory=dict, description="Student ids keyed by grade-section")
    marked_count: int
    unmarked_count: int


class SaveAttendanceResponse(BaseModel):
    date: date
    saved: int
    records: List[AttendanceRecordRead]


class PhotoAttendanceRecord(BaseModel):
    index_number: Optional[str] = None
    status: Literal["present", "absent"]


class PhotoAttendanceError(BaseModel):
    index_number: Optional[str] = None
    error: str


class PhotoAttendanceResult(BaseModel):
    success: bool
    identified_count: int = 0
    total_students: int = 0
    attendance_records: List[PhotoAttendanceRecord] = Field(default_factory=list)
    errors: List[PhotoAttendanceError] = Field(default_factory=list)
    message: str


class AttendanceListResponse(BaseModel):
    start_date: date
    end_date: date
    records: List[AttendanceRecordRead]
