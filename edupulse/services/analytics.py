"""
Attendance aggregation.

Everything here is a pure function over records and roster snapshots that
were already fetched for a date window. Nothing is cached; callers
recompute on every read.
"""
import math
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from edupulse.models.student import StudentStatus
from edupulse.schemas.attendance import ABSENT, PRESENT, AttendanceRecordRead
from edupulse.schemas.insights import (
    AttendanceStatistics,
    DailyAttendance,
    DashboardSummary,
    GroupAttendance
)
from edupulse.schemas.student import StudentAttendanceSummary, StudentRead

NOT_AVAILABLE = "N/A"
WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(part: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(part * 100 / total)


def present_ratio(records: Sequence[AttendanceRecordRead]) -> int:
    """Share of present marks in the window as a whole percent; 0 for an empty window."""
    present = sum(1 for record in records if record.status == PRESENT)
    return percentage(present, len(records))


def most_absent_weekday(records: Iterable[AttendanceRecordRead]) -> str:
    """Weekday with the most absences. Ties go to the weekday seen first."""
    absences: Dict[str, int] = {}
    for record in records:
        day_name = WEEKDAYS[record.date.weekday()]
        absences.setdefault(day_name, 0)
        if record.status == ABSENT:
            absences[day_name] += 1

    best_day, best_count = NOT_AVAILABLE, -1
    for day_name, count in absences.items():
        if count > best_count:
            best_day, best_count = day_name, count
    return best_day


def longest_streak(records: Iterable[AttendanceRecordRead]) -> int:
    """
    Longest run of consecutive calendar days on which any attendance was
    recorded. This is a register-level figure, not a per-student one.
    A lone date (or no two adjacent dates) gives 0.
    """
    dates = sorted({record.date for record in records})

    longest, current = 0, 1
    for previous, current_date in zip(dates, dates[1:]):
        if current_date - previous == timedelta(days=1):
            current += 1
            longest = max(longest, current)
        else:
            current = 1
    return longest


def top_performer(students: Iterable[StudentRead]) -> str:
    best: Optional[StudentRead] = None
    for student in students:
        if best is None or (student.attendance_percentage or 0) > (best.attendance_percentage or 0):
            best = student
    return best.name if best else NOT_AVAILABLE


def compute_statistics(
    records: Sequence[AttendanceRecordRead],
    students: Sequence[StudentRead],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
) -> AttendanceStatistics:
    return AttendanceStatistics(
        start_date=start_date,
        end_date=end_date,
        total_records=len(records),
        average_attendance=present_ratio(records),
        most_absent_day=most_absent_weekday(records),
        top_performer=top_performer(students),
        streak_days=longest_streak(records)
    )


def daily_summary(records: Iterable[AttendanceRecordRead]) -> List[DailyAttendance]:
    """Present/absent counts per date, oldest first (chart series)."""
    days: Dict[date, Dict[str, int]] = {}
    for record in records:
        counts = days.setdefault(record.date, {"present": 0, "absent": 0})
        counts["present" if record.status == PRESENT else "absent"] += 1
    return [DailyAttendance(date=day, **days[day]) for day in sorted(days)]


def grade_summary(
    records: Iterable[AttendanceRecordRead],
    students: Iterable[StudentRead]
) -> List[GroupAttendance]:
    """Present/absent counts per grade-section; records of unknown students are ignored."""
    roster = {student.id: student for student in students}
    groups: Dict[tuple, Dict[str, int]] = {}
    for record in records:
        student = roster.get(record.student_id)
        if student is None:
            continue
        counts = groups.setdefault((student.grade, student.section or ""), {"present": 0, "absent": 0})
        counts["present" if record.status == PRESENT else "absent"] += 1

    return [
        GroupAttendance(
            group=f"{grade}-{section}" if section else str(grade),
            **groups[(grade, section)]
        )
        for grade, section in sorted(groups)
    ]


def student_summary(
    student_id: str,
    records: Iterable[AttendanceRecordRead],
    start_date: date,
    end_date: date
) -> StudentAttendanceSummary:
    own = [record for record in records if record.student_id == student_id]
    present = sum(1 for record in own if record.status == PRESENT)
    absent = sum(1 for record in own if record.status == ABSENT)
    return StudentAttendanceSummary(
        student_id=student_id,
        start_date=start_date,
        end_date=end_date,
        total_present=present,
        total_absent=absent,
        with_reason=sum(1 for record in own if record.absence_reason),
        percentage=percentage(present, present + absent)
    )


def at_risk_names(students: Iterable[StudentRead], threshold: float) -> List[str]:
    return [
        student.name for student in students
        if (student.attendance_percentage or 0) < threshold
    ]


def roster_summary(
    students: Sequence[StudentRead],
    today_records: Sequence[AttendanceRecordRead] = ()
) -> DashboardSummary:
    total = len(students)
    average = (
        sum(student.attendance_percentage or 0 for student in students) / total
        if total else 0
    )
    return DashboardSummary(
        total_students=total,
        average_attendance=round_half_up(average),
        at_risk_count=sum(1 for student in students if student.status == StudentStatus.AT_RISK),
        present_today=sum(1 for record in today_records if record.status == PRESENT),
        absent_today=sum(1 for record in today_records if record.status == ABSENT)
    )
