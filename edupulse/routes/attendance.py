from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from edupulse.core.dependencies import get_attendance_service, get_photo_attendance_service
from edupulse.schemas.attendance import (
    AttendanceListResponse,
    AttendanceSheetResponse,
    MarkAllPresentRequest,
    PhotoAttendanceRequest,
    PhotoAttendanceResult,
    SaveAttendanceRequest,
    SaveAttendanceResponse
)
from edupulse.services.attendance_service import AttendanceService
from edupulse.services.photo_attendance_service import PhotoAttendanceService, image_bytes_to_data_url

router = APIRouter()


@router.get("", response_model=AttendanceListResponse)
async def list_attendance(
    start: date,
    end: date,
    student_id: Optional[str] = None,
    attendance_service: AttendanceService = Depends(get_attendance_service)
):
    records = await attendance_service.list_by_date_range(start, end, student_id=student_id)
    return AttendanceListResponse(start_date=start, end_date=end, records=records)


@router.get("/sheet", response_model=AttendanceSheetResponse)
async def get_attendance_sheet(
    day: Optional[date] = Query(None, alias="date"),
    attendance_service: AttendanceService = Depends(get_attendance_service)
):
    """Roster for the day with stored marks; students without a record are unmarked."""
    sheet = await attendance_service.load_sheet(day or datetime.now().date())
    return sheet.to_response()


@router.post("/sheet", response_model=SaveAttendanceResponse)
async def save_attendance_sheet(
    payload: SaveAttendanceRequest,
    attendance_service: AttendanceService = Depends(get_attendance_service)
):
    records = await attendance_service.save_marks(payload.date, payload.marks)
    return SaveAttendanceResponse(date=payload.date, saved=len(records), records=records)


@router.post("/sheet/mark-all-present", response_model=AttendanceSheetResponse)
async def mark_all_present(
    payload: MarkAllPresentRequest,
    attendance_service: AttendanceService = Depends(get_attendance_service)
):
    sheet = await attendance_service.mark_all_present(payload.date)
    return sheet.to_response()


@router.post("/photo", response_model=PhotoAttendanceResult)
async def mark_attendance_from_photo(
    payload: PhotoAttendanceRequest,
    photo_service: PhotoAttendanceService = Depends(get_photo_attendance_service)
):
    """Read a photographed paper register (base64 data URL) and record its marks."""
    return await photo_service.mark_from_photo(payload.image_data, payload.date)


@router.post("/photo/upload", response_model=PhotoAttendanceResult)
async def upload_attendance_photo(
    file: UploadFile = File(...),
    day: Optional[str] = Form(None, alias="date"),
    photo_service: PhotoAttendanceService = Depends(get_photo_attendance_service)
):
    content = await file.read()
    image_data = image_bytes_to_data_url(content, file.content_type) if content else None
    return await photo_service.mark_from_photo(image_data, day)
