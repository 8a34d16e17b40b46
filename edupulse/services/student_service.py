# student_service.py
import csv
import io
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from edupulse.core.config import settings
from edupulse.core.errors import DatabaseError, DuplicateResourceError, NotFoundError, ValidationError
from edupulse.core.logging import logger, log_function_call
from edupulse.models import AttendanceRecord, Student, StudentStatus
from edupulse.schemas.student import (
    BulkImportResult,
    StudentCreate,
    StudentFilter,
    StudentRead,
    StudentUpdate
)
from edupulse.services.base_service import BaseService

REQUIRED_CSV_COLUMNS = ("name", "index_number", "grade")
OPTIONAL_CSV_COLUMNS = ("section", "specialty", "status")
MIN_CSV_FIELDS = 4


class StudentService(BaseService):
    """Roster store: every query is scoped to the owning teacher."""

    async def list_students(self, filters: Optional[StudentFilter] = None) -> List[StudentRead]:
        stmt = select(Student).where(Student.owner_id == self.owner_id)

        if filters:
            if filters.grade is not None:
                stmt = stmt.where(Student.grade == filters.grade)
            if filters.section:
                stmt = stmt.where(Student.section == filters.section)
            if filters.status is not None:
                stmt = stmt.where(Student.status == filters.status.value)
            if filters.search:
                pattern = f"%{filters.search.strip().lower()}%"
                stmt = stmt.where(or_(
                    func.lower(Student.name).like(pattern),
                    func.lower(Student.index_number).like(pattern)
                ))

        result = await self.db.execute(stmt.order_by(Student.name, Student.index_number))
        return [StudentRead.model_validate(student) for student in result.scalars().all()]

    async def count_students(self) -> int:
        result = await self.db.execute(
            select(func.count(Student.id)).where(Student.owner_id == self.owner_id)
        )
        return result.scalar_one()

    async def _get_owned(self, student_id: str) -> Student:
        result = await self.db.execute(
            select(Student).where(Student.id == student_id, Student.owner_id == self.owner_id)
        )
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student not found", details={"student_id": student_id})
        return student

    async def get_student(self, student_id: str) -> StudentRead:
        return StudentRead.model_validate(await self._get_owned(student_id))

    async def _validate_unique_index(self, index_number: str, exclude_student_id: Optional[str] = None) -> None:
        stmt = select(Student.id).where(
            Student.owner_id == self.owner_id,
            Student.index_number == index_number
        )
        if exclude_student_id:
            stmt = stmt.where(Student.id != exclude_student_id)
        result = await self.db.execute(stmt)
        if result.first():
            raise DuplicateResourceError(
                "Index number already registered",
                details={"index_number": index_number}
            )

    def _build_student(self, data: StudentCreate) -> Student:
        values = data.model_dump()
        values["status"] = data.status.value
        return Student(owner_id=self.owner_id, **values)

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise DuplicateResourceError("Student conflicts with an existing record", details={"error": str(e.orig)})
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error while saving students: {str(e)}")
            raise DatabaseError(str(e))

    @log_function_call(logger)
    async def create_student(self, data: StudentCreate) -> StudentRead:
        await self._validate_unique_index(data.index_number)

        student = self._build_student(data)
        self.db.add(student)
        await self._commit()
        await self.db.refresh(student)

        logger.info(f"Student {student.id} created", extra={"owner_id": self.owner_id})
        return StudentRead.model_validate(student)

    async def update_student(self, student_id: str, data: StudentUpdate) -> StudentRead:
        student = await self._get_owned(student_id)
        changes = data.model_dump(exclude_unset=True)

        if "index_number" in changes and changes["index_number"] != student.index_number:
            await self._validate_unique_index(changes["index_number"], exclude_student_id=student_id)

        for field, value in changes.items():
            if field == "status" and value is not None:
                value = StudentStatus(value).value
            if field in ("name", "index_number", "grade", "status", "attendance_percentage") and value is None:
                raise ValidationError(f"{field} cannot be cleared")
            setattr(student, field, value)

        await self._commit()
        await self.db.refresh(student)
        return StudentRead.model_validate(student)

    async def delete_student(self, student_id: str) -> None:
        """Hard delete; the student's attendance rows go with it."""
        student = await self._get_owned(student_id)

        await self.db.execute(delete(AttendanceRecord).where(AttendanceRecord.student_id == student.id))
        await self.db.delete(student)
        await self._commit()
        logger.info(f"Student {student_id} deleted", extra={"owner_id": self.owner_id})

    @log_function_call(logger)
    async def bulk_insert(self, students: List[StudentCreate]) -> List[StudentRead]:
        """Insert all students in one transaction; any conflict rejects the whole batch."""
        index_numbers = [s.index_number for s in students]
        duplicates_in_batch = sorted({n for n in index_numbers if index_numbers.count(n) > 1})
        if duplicates_in_batch:
            raise DuplicateResourceError(
                "Duplicate index numbers in request",
                details={"index_numbers": duplicates_in_batch}
            )

        rows = [self._build_student(data) for data in students]
        self.db.add_all(rows)
        await self._commit()
        return [StudentRead.model_validate(row) for row in rows]

    # CSV import

    @staticmethod
    def _read_csv(text: str) -> Tuple[List[str], pd.DataFrame]:
        """
        Tokenize the upload quote-aware, with the header as the first non-blank record.
        Each frame row carries the record's first physical line (`_line`) and
        the number of fields it really had (`_fields`); short records are padded with None.
        """
        reader = csv.reader(io.StringIO(text), skipinitialspace=True)
        records: List[Tuple[int, List[str]]] = []
        last_line = 0
        try:
            for fields in reader:
                first_line, last_line = last_line + 1, reader.line_num
                if any(field.strip() for field in fields):
                    records.append((first_line, fields))
        except csv.Error as e:
            raise ValidationError(
                "CSV file could not be parsed",
                details={"line": reader.line_num, "error": str(e)}
            )

        if len(records) < 2:
            raise ValidationError("CSV file must contain a header row and at least one student")

        headers = [h.strip() for h in records[0][1]]
        missing = [column for column in REQUIRED_CSV_COLUMNS if column not in headers]
        if missing:
            raise ValidationError(
                "CSV must have headers: name, index_number, grade",
                details={"missing_columns": missing}
            )

        width = len(headers)
        frame = pd.DataFrame(
            [fields[:width] + [None] * (width - len(fields)) for _, fields in records[1:]],
            columns=headers
        )
        frame["_line"] = [line for line, _ in records[1:]]
        frame["_fields"] = [len(fields) for _, fields in records[1:]]
        return headers, frame

    @staticmethod
    def _row_to_student(row: Dict[str, Any]) -> StudentCreate:
        def clean(value):
            if value is None or (isinstance(value, float) and pd.isna(value)):
                return None
            value = str(value).strip()
            return value or None

        name = clean(row.get("name"))
        index_number = clean(row.get("index_number"))
        grade = clean(row.get("grade"))
        if not name or not index_number or not grade:
            raise ValueError("Missing required fields (name, index_number, grade)")

        try:
            grade_value = int(float(grade))
        except ValueError:
            raise ValueError(f"Invalid grade '{grade}'")

        status = (clean(row.get("status")) or "").lower()
        if status not in (StudentStatus.ACTIVE.value, StudentStatus.INACTIVE.value, StudentStatus.GRADUATED.value):
            status = StudentStatus.ACTIVE.value

        try:
            return StudentCreate(
                name=name,
                index_number=index_number,
                grade=grade_value,
                section=clean(row.get("section")),
                specialty=clean(row.get("specialty")),
                status=status
            )
        except PydanticValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ValueError(problems)

    async def _insert_batch(self, batch: List[Tuple[int, StudentCreate]], errors: List[str]) -> Tuple[int, int]:
        """Insert a batch in one round trip, falling back to one row at a time."""
        self.db.add_all([self._build_student(data) for _, data in batch])
        try:
            await self.db.commit()
            return len(batch), 0
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(f"Batch insert of {len(batch)} students failed, retrying row by row: {str(e)}")

        success = failed = 0
        for line_number, data in batch:
            self.db.add(self._build_student(data))
            try:
                await self.db.commit()
                success += 1
            except IntegrityError:
                await self.db.rollback()
                failed += 1
                errors.append(f"Row {line_number}: index number {data.index_number} already exists")
            except SQLAlchemyError as e:
                await self.db.rollback()
                failed += 1
                errors.append(f"Row {line_number}: {str(e)}")
        return success, failed

    @log_function_call(logger)
    async def import_csv(self, text: str) -> BulkImportResult:
        _, frame = self._read_csv(text)
        batch_size = max(1, settings.CSV_BATCH_SIZE)

        success = failed = 0
        errors: List[str] = []
        batch: List[Tuple[int, StudentCreate]] = []

        for raw in frame.to_dict(orient="records"):
            line_number = int(raw.pop("_line"))
            if raw.pop("_fields") < MIN_CSV_FIELDS:
                failed += 1
                errors.append(f"Row {line_number}: Invalid format (expected at least {MIN_CSV_FIELDS} columns)")
                continue

            try:
                batch.append((line_number, self._row_to_student(raw)))
            except ValueError as e:
                failed += 1
                errors.append(f"Row {line_number}: {str(e)}")
                continue

            if len(batch) >= batch_size:
                inserted, rejected = await self._insert_batch(batch, errors)
                success += inserted
                failed += rejected
                batch = []

        if batch:
            inserted, rejected = await self._insert_batch(batch, errors)
            success += inserted
            failed += rejected

        logger.info(
            f"CSV import finished: {success} imported, {failed} failed",
            extra={"owner_id": self.owner_id}
        )
        return BulkImportResult(
            success=success,
            failed=failed,
            errors=errors[:settings.CSV_MAX_REPORTED_ERRORS]
        )
