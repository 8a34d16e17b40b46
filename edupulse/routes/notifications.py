from fastapi import APIRouter, Depends

from edupulse.core.dependencies import get_access_service, get_notification_service
from edupulse.schemas.insights import (
    AccessStatusResponse,
    AccessVerifyRequest,
    AccessVerifyResponse,
    NotificationsResponse
)
from edupulse.services.access_service import AccessService
from edupulse.services.notification_service import NotificationService

router = APIRouter()
access_router = APIRouter()


@router.get("", response_model=NotificationsResponse)
async def get_notifications(
    notification_service: NotificationService = Depends(get_notification_service)
):
    """Roster size, attendance days this week and today's reminder."""
    return await notification_service.summary()


@access_router.get("/status", response_model=AccessStatusResponse)
async def get_access_status(access_service: AccessService = Depends(get_access_service)):
    return await access_service.status()


@access_router.post("/verify", response_model=AccessVerifyResponse)
async def verify_access_password(
    payload: AccessVerifyRequest,
    access_service: AccessService = Depends(get_access_service)
):
    return await access_service.verify(payload.password)
