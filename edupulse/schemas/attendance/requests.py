from pydantic import BaseModel, Field, validator
from datetime import date
from typing import Any, Optional, List

from .base import AttendanceStatusValue, PRESENT


class AttendanceMark(BaseModel):
    student_id: str = Field(..., min_length=1)
    status: AttendanceStatusValue
    absence_reason: Optional[str] = Field(None, max_length=255)

    @validator('absence_reason')
    def reason_only_for_absence(cls, v, values):
        if values.get('status') == PRESENT:
            return None
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v


class SaveAttendanceRequest(BaseModel):
    date: date
    marks: List[AttendanceMark] = Field(..., min_length=1)


class MarkAllPresentRequest(BaseModel):
    date: date


class PhotoAttendanceRequest(BaseModel):
    """
    Register photo submitted as a base64 data URL. Fields are loosely
    typed on purpose: bad input is answered with an empty result body,
    never with a 422.
    """
    image_data: Optional[Any] = Field(None, alias="imageData")
    date: Optional[Any] = None

    class Config:
        populate_by_name = True
