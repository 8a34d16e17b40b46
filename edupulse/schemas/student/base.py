# schemas/student/base.py
from pydantic import BaseModel, Field
from typing import Optional

from edupulse.models.student import StudentStatus


class StudentBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Full name of the student")
    index_number: str = Field(..., min_length=1, max_length=64, description="School-assigned index number")
    grade: int = Field(..., ge=1, le=13, description="Grade, 1 to 13")
    section: Optional[str] = Field(None, max_length=8, description="Section letter, e.g. A")
    specialty: Optional[str] = Field(None, max_length=255)
    status: StudentStatus = Field(StudentStatus.ACTIVE)
    photo_url: Optional[str] = Field(None, max_length=1024)

    class Config:
        from_attributes = True
