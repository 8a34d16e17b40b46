import uuid
from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, Float, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship

from .base import TenantModel, TimestampMixin


class StudentStatus(str, PyEnum):
    ACTIVE = "active"
    AT_RISK = "at_risk"
    INACTIVE = "inactive"
    GRADUATED = "graduated"


class Student(TimestampMixin, TenantModel):
    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("owner_id", "index_number", name="uq_students_owner_index_number"),
        CheckConstraint("grade BETWEEN 1 AND 13", name="ck_students_grade_range"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    index_number = Column(String(64), nullable=False)
    grade = Column(Integer, nullable=False)
    section = Column(String(8), nullable=True)
    specialty = Column(String(255), nullable=True)
    status = Column(String(16), nullable=False, default=StudentStatus.ACTIVE.value)
    photo_url = Column(String(1024), nullable=True)

    # Maintained outside the attendance write path
    attendance_percentage = Column(Float, nullable=False, default=0.0)

    attendance_records = relationship(
        "AttendanceRecord",
        back_populates="student",
        passive_deletes=True
    )

    def __repr__(self):
        return f"<Student(id={self.id}, index_number={self.index_number})>"
