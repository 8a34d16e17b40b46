from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from edupulse.core.errors import AIGatewayError
from edupulse.core.logging import logger
from edupulse.schemas.insights import ChatMessage, ChatResponse
from edupulse.services import analytics
from edupulse.services.ai_gateway import AIGateway
from edupulse.services.base_service import BaseService
from edupulse.services.student_service import StudentService

SYSTEM_PROMPT = """You are an AI assistant for EduPulse, a school attendance management system.
Your role is to help teachers understand their student data and attendance patterns, and to give educational guidance.

CONTEXT:
{context}

Be helpful and concise, and give actionable insights. When discussing students, use their data to make specific recommendations."""


class ChatService(BaseService):
    def __init__(self, db: AsyncSession, owner_id: str, gateway: AIGateway):
        super().__init__(db, owner_id)
        self.gateway = gateway
        self.student_service = StudentService(db, owner_id)

    async def build_context(self) -> str:
        students = await self.student_service.list_students()
        if not students:
            return "No student data available yet"
        summary = analytics.roster_summary(students)
        return (
            f"Teacher has {summary.total_students} students. "
            f"Average attendance: {summary.average_attendance}%."
        )

    async def reply(self, messages: List[ChatMessage]) -> ChatResponse:
        context = await self.build_context()
        conversation = [{"role": "system", "content": SYSTEM_PROMPT.format(context=context)}]
        conversation.extend({"role": m.role, "content": m.content} for m in messages)

        content: Optional[str] = await self.gateway.chat_complete(conversation)
        if not content or not content.strip():
            logger.error("Assistant returned an empty reply", extra={"owner_id": self.owner_id})
            raise AIGatewayError("No response from AI")

        return ChatResponse(response=content)
