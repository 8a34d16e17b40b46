from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from edupulse.core.database import get_db
from edupulse.core.errors import AuthenticationError
from edupulse.core.security import get_owner_id
from edupulse.services.access_service import AccessService
from edupulse.services.ai_gateway import AIGateway, get_default_gateway
from edupulse.services.attendance_service import AttendanceService
from edupulse.services.chat_service import ChatService
from edupulse.services.insights_service import InsightsService
from edupulse.services.notification_service import NotificationService
from edupulse.services.photo_attendance_service import PhotoAttendanceService
from edupulse.services.student_service import StudentService

bearer_scheme = HTTPBearer(auto_error=False)


# Authentication
async def get_current_owner(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> str:
    """Teacher account id taken from the bearer token; every query is scoped to it."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authenticated", error_code="NOT_AUTHENTICATED")
    return get_owner_id(credentials.credentials)


# Model gateway
def get_ai_gateway() -> AIGateway:
    return get_default_gateway()


# Service providers
async def get_student_service(
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner)
) -> StudentService:
    return StudentService(db, owner_id)


async def get_attendance_service(
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner)
) -> AttendanceService:
    return AttendanceService(db, owner_id)


async def get_photo_attendance_service(
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
    gateway: AIGateway = Depends(get_ai_gateway)
) -> PhotoAttendanceService:
    return PhotoAttendanceService(db, owner_id, gateway)


async def get_insights_service(
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
    gateway: AIGateway = Depends(get_ai_gateway)
) -> InsightsService:
    return InsightsService(db, owner_id, gateway)


async def get_chat_service(
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
    gateway: AIGateway = Depends(get_ai_gateway)
) -> ChatService:
    return ChatService(db, owner_id, gateway)


async def get_notification_service(
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner)
) -> NotificationService:
    return NotificationService(db, owner_id)


async def get_access_service(
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner)
) -> AccessService:
    return AccessService(db, owner_id)
