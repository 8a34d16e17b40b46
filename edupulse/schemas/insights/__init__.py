from .analytics import (
    AttendanceStatistics,
    DailyAttendance,
    GroupAttendance,
    DailyAttendanceResponse,
    DashboardSummary
)
from .narrative import NarrativeInsights, ChatMessage, ChatRequest, ChatResponse
from .notifications import (
    AttendanceReminder,
    NotificationsResponse,
    AccessVerifyRequest,
    AccessVerifyResponse,
    AccessStatusResponse
)

__all__ = [
    'AttendanceStatistics',
    'DailyAttendance',
    'GroupAttendance',
    'DailyAttendanceResponse',
    'DashboardSummary',
    'NarrativeInsights',
    'ChatMessage',
    'ChatRequest',
    'ChatResponse',
    'AttendanceReminder',
    'NotificationsResponse',
    'AccessVerifyRequest',
    'AccessVerifyResponse',
    'AccessStatusResponse'
]
