import base64
import re
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from edupulse.core.config import settings
from edupulse.core.errors import BaseAPIError
from edupulse.core.logging import logger, log_function_call
from edupulse.models import REGISTER_ABSENCE_REASON
from edupulse.schemas.attendance import (
    ABSENT,
    PRESENT,
    PhotoAttendanceError,
    PhotoAttendanceRecord,
    PhotoAttendanceResult
)
from edupulse.schemas.student import StudentRead
from edupulse.services.ai_gateway import AIGateway
from edupulse.services.attendance_service import AttendanceService, normalize_reason
from edupulse.services.student_service import StudentService
from edupulse.utils.model_output import parse_model_json

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

UNREADABLE_REGISTER_MESSAGE = (
    "Could not read attendance marks from the register. Please ensure the image is clear "
    "and shows the attendance grid with index numbers and marks (1/0)."
)

REGISTER_PROMPT = """You are reading a photo of a school attendance register. The register is a grid:
- student INDEX NUMBERS in the first column
- one column per date across the top
- a mark in each cell: 1 = present, 0 = absent

REGISTERED STUDENTS (only these students may appear in your answer):
{roster}

INSTRUCTIONS:
1. Find the column for {day} (or the column for today's date).
2. For every row read the index number and the 1/0 mark in that column.
3. Match each index number against the registered students above.
4. Skip index numbers that are not in the registered list.
5. If the register is unreadable or the date column cannot be found, answer with [].

Index numbers are usually 4 to 6 digit numbers. Registers may be handwritten or printed.

Answer with ONLY a JSON array, no prose:
[
  {{"student_id": "<id from the list above>", "index_number": "<index you read>", "status": 1, "date": "{day}"}}
]"""


def image_bytes_to_data_url(content: bytes, content_type: Optional[str]) -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{content_type or 'application/octet-stream'};base64,{encoded}"


def validate_image(image_data: Any) -> Optional[str]:
    """Returns an error message, or None when the image is acceptable."""
    if not image_data or not isinstance(image_data, str):
        return "Invalid imageData - must be a base64 string"
    if not image_data.startswith("data:image/"):
        return "imageData must be a base64 image (data:image/...)"
    if len(image_data) > settings.MAX_IMAGE_SIZE:
        return f"Image too large (max {settings.MAX_IMAGE_SIZE // 1_000_000}MB)"
    return None


def parse_register_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.match(value.strip()):
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def coerce_status(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return PRESENT if value else ABSENT
    if isinstance(value, (int, float)) and value in (0, 1):
        return int(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("1", "present", "p"):
            return PRESENT
        if text in ("0", "absent", "a"):
            return ABSENT
    return None


def build_register_prompt(students: List[StudentRead], day: date) -> str:
    roster = "\n".join(
        f"- Index: {s.index_number}, Name: {s.name}, Grade: {s.class_label}, ID: {s.id}"
        for s in students
    )
    return REGISTER_PROMPT.format(roster=roster, day=day.isoformat())


def select_register_entries(
    entries: List[Any],
    students: List[StudentRead],
    default_day: date
) -> List[Tuple[StudentRead, date, int]]:
    """
    Keep only model entries that point at a student of this roster. The
    model may invent ids or misread index numbers; those rows are dropped.
    A later entry for the same student and date replaces an earlier one.
    """
    roster = {student.id: student for student in students}
    selected: Dict[Tuple[str, date], Tuple[StudentRead, date, int]] = {}

    for entry in entries:
        if not isinstance(entry, dict):
            continue
        student_id = entry.get("student_id")
        if student_id in (None, "") or entry.get("status") is None:
            continue

        student = roster.get(str(student_id))
        if student is None:
            logger.info(f"Dropping register entry for unknown student id {student_id}")
            continue

        index_number = entry.get("index_number")
        if index_number not in (None, "") and str(index_number).strip() != student.index_number:
            logger.info(
                f"Dropping register entry: index {index_number} does not belong to student {student.id}"
            )
            continue

        status = coerce_status(entry.get("status"))
        if status is None:
            continue

        day = parse_register_date(entry.get("date")) or default_day
        selected[(student.id, day)] = (student, day, status)

    return list(selected.values())


class PhotoAttendanceService:
    """Marks attendance from a photographed paper register."""

    def __init__(self, db: AsyncSession, owner_id: str, gateway: AIGateway):
        self.owner_id = owner_id
        self.gateway = gateway
        self.student_service = StudentService(db, owner_id)
        self.attendance_service = AttendanceService(db, owner_id)

    @staticmethod
    def _empty_result(message: str, total_students: int = 0) -> PhotoAttendanceResult:
        return PhotoAttendanceResult(success=False, total_students=total_students, message=message)

    @log_function_call(logger)
    async def mark_from_photo(self, image_data: Any, day_value: Any) -> PhotoAttendanceResult:
        image_error = validate_image(image_data)
        if image_error:
            return self._empty_result(image_error)

        day = parse_register_date(day_value)
        if day is None:
            return self._empty_result("Invalid date format (use YYYY-MM-DD)")

        students = await self.student_service.list_students()
        if not students:
            return self._empty_result("No students registered yet. Add students before scanning a register.")

        logger.info(f"Processing register photo for {day}", extra={"owner_id": self.owner_id, "date": str(day)})

        try:
            reply = await self.gateway.chat_complete(build_register_prompt(students, day), image=image_data)
        except BaseAPIError as e:
            logger.error(f"Register photo could not be analysed: {e.message}")
            return self._empty_result(f"AI service error: {e.message}", total_students=len(students))

        entries = parse_model_json(reply, expect=list)
        if entries is None:
            logger.warning(f"Unparsable register reply from model: {reply[:500]!r}")
            return self._empty_result(UNREADABLE_REGISTER_MESSAGE, total_students=len(students))

        records: List[PhotoAttendanceRecord] = []
        errors: List[PhotoAttendanceError] = []

        for student, entry_day, status in select_register_entries(entries, students, day):
            try:
                await self.attendance_service.upsert_row(
                    student.id,
                    entry_day,
                    status,
                    normalize_reason(status, None, REGISTER_ABSENCE_REASON)
                )
            except SQLAlchemyError as e:
                logger.error(f"Register row for {student.index_number} failed: {str(e)}")
                errors.append(PhotoAttendanceError(index_number=student.index_number, error=str(e)))
                continue

            records.append(PhotoAttendanceRecord(
                index_number=student.index_number,
                status="present" if status == PRESENT else "absent"
            ))

        updated = len(records)
        logger.info(f"Register photo updated {updated} students", extra={"owner_id": self.owner_id})

        return PhotoAttendanceResult(
            success=True,
            identified_count=updated,
            total_students=len(students),
            attendance_records=records,
            errors=errors,
            message=(
                f"Successfully read and updated {updated} student records from register"
                if updated else UNREADABLE_REGISTER_MESSAGE
            )
        )
