# schemas/attendance/__init__.py
from .base import AttendanceRecordRead, AttendanceStatusValue, PRESENT, ABSENT
from .requests import (
    AttendanceMark,
    SaveAttendanceRequest,
    MarkAllPresentRequest,
    PhotoAttendanceRequest
)
from .responses import (
    SheetEntry,
    AttendanceSheetResponse,
    SaveAttendanceResponse,
    PhotoAttendanceRecord,
    PhotoAttendanceError,
    PhotoAttendanceResult,
    AttendanceListResponse
)

__all__ = [
    'AttendanceRecordRead',
    'AttendanceStatusValue',
    'PRESENT',
    'ABSENT',
    'AttendanceMark',
    'SaveAttendanceRequest',
    'MarkAllPresentRequest',
    'PhotoAttendanceRequest',
    'SheetEntry',
    'AttendanceSheetResponse',
    'SaveAttendanceResponse',
    'PhotoAttendanceRecord',
    'PhotoAttendanceError',
    'PhotoAttendanceResult',
    'AttendanceListResponse'
]
