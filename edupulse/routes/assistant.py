from fastapi import APIRouter, Depends

from edupulse.core.dependencies import get_chat_service
from edupulse.schemas.insights import ChatRequest, ChatResponse
from edupulse.services.chat_service import ChatService

router = APIRouter()


@router.post("/chat", response_model=ChatResponse)
async def chat(
    payload: ChatRequest,
    chat_service: ChatService = Depends(get_chat_service)
):
    return await chat_service.reply(payload.messages)
