from .base import StudentBase
from .requests import (
    StudentCreate,
    StudentUpdate,
    StudentBulkCreate,
    StudentFilter
)
from .responses import (
    StudentRead,
    StudentListResponse,
    BulkInsertResponse,
    BulkImportResult,
    StudentAttendanceSummary
)

__all__ = [
    'StudentBase',
    'StudentCreate',
    'StudentUpdate',
    'StudentBulkCreate',
    'StudentFilter',
    'StudentRead',
    'StudentListResponse',
    'BulkInsertResponse',
    'BulkImportResult',
    'StudentAttendanceSummary'
]
