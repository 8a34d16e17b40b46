from .student_service import StudentService
from .attendance_service import AttendanceService, AttendanceSheet
from .photo_attendance_service import PhotoAttendanceService
from .insights_service import InsightsService
from .chat_service import ChatService
from .notification_service import NotificationService
from .access_service import AccessService
from .ai_gateway import AIGateway

__all__ = [
    "StudentService",
    "AttendanceService",
    "AttendanceSheet",
    "PhotoAttendanceService",
    "InsightsService",
    "ChatService",
    "NotificationService",
    "AccessService",
    "AIGateway"
]
