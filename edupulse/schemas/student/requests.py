from pydantic import BaseModel, Field, validator
from typing import Optional, List

from edupulse.models.student import StudentStatus
from .base import StudentBase


class StudentCreate(StudentBase):
    attendance_percentage: float = Field(0.0, ge=0, le=100)

    @validator('name', 'index_number')
    def strip_required_text(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Value must not be blank")
        return v

    @validator('section', 'specialty')
    def blank_to_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v


class StudentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    index_number: Optional[str] = Field(None, min_length=1, max_length=64)
    grade: Optional[int] = Field(None, ge=1, le=13)
    section: Optional[str] = Field(None, max_length=8)
    specialty: Optional[str] = Field(None, max_length=255)
    status: Optional[StudentStatus] = None
    photo_url: Optional[str] = Field(None, max_length=1024)
    attendance_percentage: Optional[float] = Field(None, ge=0, le=100)


class StudentBulkCreate(BaseModel):
    students: List[StudentCreate] = Field(..., min_length=1)


class StudentFilter(BaseModel):
    grade: Optional[int] = Field(None, ge=1, le=13)
    section: Optional[str] = None
    status: Optional[StudentStatus] = None
    search: Optional[str] = Field(None, description="Matches name or index number")
