from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError

from edupulse.core.errors import ConfigurationError, DatabaseError, NotFoundError, ValidationError
from edupulse.core.logging import logger, log_function_call
from edupulse.models import AttendanceRecord, DEFAULT_ABSENCE_REASON, Student
from edupulse.models.base import utcnow
from edupulse.schemas.attendance import (
    ABSENT,
    PRESENT,
    AttendanceMark,
    AttendanceRecordRead,
    AttendanceSheetResponse,
    SheetEntry
)
from edupulse.schemas.student import StudentRead
from edupulse.services.base_service import BaseService


def normalize_reason(status: int, reason: Optional[str], default: str = DEFAULT_ABSENCE_REASON) -> Optional[str]:
    """A present mark never carries a reason; an absent one always does."""
    if status == PRESENT:
        return None
    reason = (reason or "").strip()
    return reason or default


class AttendanceSheet:
    """
    Working copy of one day's register for the manual marking flow.
    Students start unmarked unless a record already exists for the date.
    """

    def __init__(self, day: date, students: List[StudentRead], records: Iterable[AttendanceRecordRead] = ()):
        self.date = day
        self.students = list(students)
        self._entries: Dict[str, Dict[str, Optional[object]]] = {
            student.id: {"status": None, "absence_reason": None} for student in self.students
        }
        for record in records:
            entry = self._entries.get(record.student_id)
            if entry is not None:
                entry["status"] = record.status
                entry["absence_reason"] = record.absence_reason

    def _entry(self, student_id: str) -> Dict[str, Optional[object]]:
        try:
            return self._entries[student_id]
        except KeyError:
            raise NotFoundError("Student is not on this register", details={"student_id": student_id})

    def status_of(self, student_id: str) -> Optional[int]:
        return self._entry(student_id)["status"]

    def reason_of(self, student_id: str) -> Optional[str]:
        return self._entry(student_id)["absence_reason"]

    def set_present(self, student_id: str) -> None:
        entry = self._entry(student_id)
        entry["status"] = PRESENT
        entry["absence_reason"] = None

    def set_absent(self, student_id: str, reason: Optional[str] = None) -> None:
        entry = self._entry(student_id)
        entry["status"] = ABSENT
        entry["absence_reason"] = reason

    def apply(self, marks: Iterable[AttendanceMark]) -> None:
        for mark in marks:
            if mark.status == PRESENT:
                self.set_present(mark.student_id)
            else:
                self.set_absent(mark.student_id, mark.absence_reason)

    def mark_all_present(self) -> None:
        """Every loaded student becomes present; chosen reasons are dropped."""
        for entry in self._entries.values():
            entry["status"] = PRESENT
            entry["absence_reason"] = None

    def marks(self) -> List[AttendanceMark]:
        return [
            AttendanceMark(
                student_id=student.id,
                status=self._entries[student.id]["status"],
                absence_reason=self._entries[student.id]["absence_reason"]
            )
            for student in self.students
            if self._entries[student.id]["status"] is not None
        ]

    def grouped(self) -> Dict[str, List[str]]:
        groups: Dict[str, List[str]] = {}
        ordered = sorted(self.students, key=lambda s: (s.grade, s.section or ""))
        for student in ordered:
            groups.setdefault(f"Grade {student.class_label}", []).append(student.id)
        return groups

    def to_response(self) -> AttendanceSheetResponse:
        entries = [
            SheetEntry(
                student_id=student.id,
                name=student.name,
                index_number=student.index_number,
                grade=student.grade,
                section=student.section,
                status=self._entries[student.id]["status"],
                absence_reason=self._entries[student.id]["absence_reason"]
            )
            for student in self.students
        ]
        marked = sum(1 for entry in entries if entry.status is not None)
        return AttendanceSheetResponse(
            date=self.date,
            entries=entries,
            groups=self.grouped(),
            marked_count=marked,
            unmarked_count=len(entries) - marked
        )


class AttendanceService(BaseService):
    """Attendance store plus the manual marking flow."""

    def _owned_records(self):
        return (
            select(AttendanceRecord)
            .join(Student, Student.id == AttendanceRecord.student_id)
            .where(Student.owner_id == self.owner_id)
        )

    async def list_by_date_range(
        self,
        start_date: date,
        end_date: date,
        student_id: Optional[str] = None
    ) -> List[AttendanceRecordRead]:
        if start_date > end_date:
            raise ValidationError(
                "start_date must not be after end_date",
                details={"start_date": str(start_date), "end_date": str(end_date)}
            )

        stmt = self._owned_records().where(
            and_(AttendanceRecord.date >= start_date, AttendanceRecord.date <= end_date)
        )
        if student_id:
            stmt = stmt.where(AttendanceRecord.student_id == student_id)

        result = await self.db.execute(stmt.order_by(AttendanceRecord.date, AttendanceRecord.id))
        return [AttendanceRecordRead.model_validate(row) for row in result.scalars().all()]

    async def list_for_date(self, day: date) -> List[AttendanceRecordRead]:
        return await self.list_by_date_range(day, day)

    async def list_recent(self, limit: int) -> List[AttendanceRecordRead]:
        result = await self.db.execute(
            self._owned_records()
            .order_by(AttendanceRecord.date.desc(), AttendanceRecord.id.desc())
            .limit(limit)
        )
        return [AttendanceRecordRead.model_validate(row) for row in result.scalars().all()]

    async def has_records_for(self, day: date) -> bool:
        result = await self.db.execute(
            self._owned_records().where(AttendanceRecord.date == day).limit(1)
        )
        return result.first() is not None

    async def _owned_student_ids(self, student_ids: Iterable[str]) -> Set[str]:
        wanted = set(student_ids)
        if not wanted:
            return set()
        result = await self.db.execute(
            select(Student.id).where(Student.owner_id == self.owner_id, Student.id.in_(wanted))
        )
        return set(result.scalars().all())

    async def _ensure_owned(self, student_ids: Iterable[str]) -> None:
        wanted = set(student_ids)
        missing = sorted(wanted - await self._owned_student_ids(wanted))
        if missing:
            raise NotFoundError("Unknown student(s) for this roster", details={"student_ids": missing})

    def _insert_construct(self):
        dialect = self.db.bind.dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise ConfigurationError(f"Attendance upsert is not supported on '{dialect}'")
        return insert

    async def upsert_row(
        self,
        student_id: str,
        day: date,
        status: int,
        absence_reason: Optional[str]
    ) -> AttendanceRecordRead:
        """
        Atomic insert-or-update on (student_id, date), committed on its own.
        The row lands or fails as a whole; concurrent writers resolve last-write-wins.
        Callers check roster ownership first; the reason is stored as given.
        """
        insert = self._insert_construct()
        stmt = insert(AttendanceRecord).values(
            student_id=student_id,
            date=day,
            status=status,
            absence_reason=absence_reason
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["student_id", "date"],
            set_={
                "status": stmt.excluded.status,
                "absence_reason": stmt.excluded.absence_reason,
                "updated_at": utcnow()
            }
        )

        try:
            result = await self.db.scalars(
                stmt.returning(AttendanceRecord),
                execution_options={"populate_existing": True}
            )
            record = result.one()
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        return AttendanceRecordRead.model_validate(record)

    async def upsert(self, day: date, mark: AttendanceMark, default_reason: str = DEFAULT_ABSENCE_REASON) -> AttendanceRecordRead:
        await self._ensure_owned([mark.student_id])
        try:
            return await self.upsert_row(
                mark.student_id,
                day,
                mark.status,
                normalize_reason(mark.status, mark.absence_reason, default_reason)
            )
        except SQLAlchemyError as e:
            logger.error(f"Attendance upsert failed for {mark.student_id} on {day}: {str(e)}")
            raise DatabaseError("Failed to save attendance", details={"student_id": mark.student_id})

    # Manual marking flow

    async def load_sheet(self, day: date) -> AttendanceSheet:
        result = await self.db.execute(
            select(Student)
            .where(Student.owner_id == self.owner_id)
            .order_by(Student.name, Student.index_number)
        )
        students = [StudentRead.model_validate(s) for s in result.scalars().all()]
        records = await self.list_for_date(day)
        return AttendanceSheet(day, students, records)

    @log_function_call(logger)
    async def save_marks(self, day: date, marks: List[AttendanceMark]) -> List[AttendanceRecordRead]:
        """
        One upsert per mark, in order, each committed separately. The first
        failure stops the loop and is raised; rows already written stay.
        """
        await self._ensure_owned(mark.student_id for mark in marks)

        saved: List[AttendanceRecordRead] = []
        for mark in marks:
            try:
                saved.append(await self.upsert_row(
                    mark.student_id,
                    day,
                    mark.status,
                    normalize_reason(mark.status, mark.absence_reason)
                ))
            except SQLAlchemyError as e:
                logger.error(
                    f"Saving attendance stopped after {len(saved)} of {len(marks)} rows: {str(e)}",
                    extra={"owner_id": self.owner_id, "student_id": mark.student_id, "date": str(day)}
                )
                raise DatabaseError(
                    str(e.orig) if getattr(e, "orig", None) is not None else str(e),
                    details={"saved": len(saved), "failed_student_id": mark.student_id}
                )

        logger.info(
            f"Saved {len(saved)} attendance rows for {day}",
            extra={"owner_id": self.owner_id, "date": str(day)}
        )
        return saved

    async def mark_all_present(self, day: date) -> AttendanceSheet:
        sheet = await self.load_sheet(day)
        sheet.mark_all_present()
        await self.save_marks(day, sheet.marks())
        return sheet

    async def distinct_dates_since(self, start_date: date, end_date: Optional[date] = None) -> List[date]:
        end_date = end_date or datetime.now().date()
        records = await self.list_by_date_range(start_date, end_date)
        return sorted({record.date for record in records})
