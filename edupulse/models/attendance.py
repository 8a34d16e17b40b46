from sqlalchemy import Column, Integer, String, Date, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship

from .base import Base, TimestampMixin

# Absence reason written for absent marks read off a register photo
REGISTER_ABSENCE_REASON = "Marked absent in register"
DEFAULT_ABSENCE_REASON = "unknown"
ABSENCE_REASONS = ("sick", "travel", "family", "unknown", "other")


class AttendanceRecord(TimestampMixin, Base):
    """
    One row per (student, date). Writers go through an insert-or-update
    keyed on that pair, so the last write wins.
    """
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("student_id", "date", name="uq_attendance_student_date"),
        CheckConstraint("status IN (0, 1)", name="ck_attendance_status_binary"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(
        String(36),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    date = Column(Date, nullable=False, index=True)
    status = Column(Integer, nullable=False)
    absence_reason = Column(String(255), nullable=True)

    student = relationship("Student", back_populates="attendance_records")

    def __repr__(self):
        return f"<AttendanceRecord(student_id={self.student_id}, date={self.date}, status={self.status})>"
