from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status

from edupulse.core.dependencies import get_insights_service, get_student_service
from edupulse.core.errors import ValidationError
from edupulse.core.logging import logger
from edupulse.models import StudentStatus
from edupulse.schemas.student import (
    BulkImportResult,
    BulkInsertResponse,
    StudentAttendanceSummary,
    StudentBulkCreate,
    StudentCreate,
    StudentFilter,
    StudentListResponse,
    StudentRead,
    StudentUpdate
)
from edupulse.services.insights_service import InsightsService
from edupulse.services.student_service import StudentService

router = APIRouter()


@router.get("", response_model=StudentListResponse)
async def list_students(
    grade: Optional[int] = Query(None, ge=1, le=13),
    section: Optional[str] = None,
    student_status: Optional[StudentStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    student_service: StudentService = Depends(get_student_service)
):
    filters = StudentFilter(grade=grade, section=section, status=student_status, search=search)
    students = await student_service.list_students(filters)
    return StudentListResponse(items=students, total=len(students))


@router.post("", response_model=StudentRead, status_code=status.HTTP_201_CREATED)
async def create_student(
    student_data: StudentCreate,
    student_service: StudentService = Depends(get_student_service)
):
    return await student_service.create_student(student_data)


@router.post("/bulk", response_model=BulkInsertResponse, status_code=status.HTTP_201_CREATED)
async def bulk_create_students(
    payload: StudentBulkCreate,
    student_service: StudentService = Depends(get_student_service)
):
    students = await student_service.bulk_insert(payload.students)
    return BulkInsertResponse(inserted=len(students), items=students)


@router.post("/import", response_model=BulkImportResult)
async def import_students_csv(
    file: UploadFile = File(...),
    student_service: StudentService = Depends(get_student_service)
):
    """
    Bulk upload students from a CSV file. Header must contain name,
    index_number and grade; section, specialty and status are optional.
    """
    if file.filename and not file.filename.lower().endswith(".csv"):
        raise ValidationError("Only CSV files are supported", details={"filename": file.filename})

    content = await file.read()
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError("CSV file must be UTF-8 encoded")

    logger.info(f"Importing students from {file.filename}")
    return await student_service.import_csv(text)


@router.get("/{student_id}", response_model=StudentRead)
async def get_student(
    student_id: str,
    student_service: StudentService = Depends(get_student_service)
):
    return await student_service.get_student(student_id)


@router.patch("/{student_id}", response_model=StudentRead)
async def update_student(
    student_id: str,
    student_data: StudentUpdate,
    student_service: StudentService = Depends(get_student_service)
):
    return await student_service.update_student(student_id, student_data)


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_student(
    student_id: str,
    student_service: StudentService = Depends(get_student_service)
):
    await student_service.delete_student(student_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{student_id}/attendance", response_model=StudentAttendanceSummary)
async def get_student_attendance(
    student_id: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    insights_service: InsightsService = Depends(get_insights_service)
):
    """Present/absent totals for one student over a window (last 30 days by default)."""
    return await insights_service.student_attendance(student_id, start, end)
