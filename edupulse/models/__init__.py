from .base import Base, TenantModel
from .student import Student, StudentStatus
from .attendance import (
    AttendanceRecord,
    ABSENCE_REASONS,
    DEFAULT_ABSENCE_REASON,
    REGISTER_ABSENCE_REASON
)
from .access import AccessCredential

__all__ = [
    'Base',
    'TenantModel',
    'Student',
    'StudentStatus',
    'AttendanceRecord',
    'ABSENCE_REASONS',
    'DEFAULT_ABSENCE_REASON',
    'REGISTER_ABSENCE_REASON',
    'AccessCredential'
]
