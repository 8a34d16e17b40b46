from .students import router as students_router
from .attendance import router as attendance_router
from .insights import router as insights_router
from .assistant import router as assistant_router
from .notifications import router as notifications_router, access_router


__all__ = [
    "students_router",
    "attendance_router",
    "insights_router",
    "assistant_router",
    "notifications_router",
    "access_router"
]
