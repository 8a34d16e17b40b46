from pydantic import BaseModel, Field, StrictStr
from typing import List, Literal


class NarrativeInsights(BaseModel):
    at_risk_students: List[StrictStr] = Field(..., alias="atRiskStudents")
    trends: StrictStr
    recommendations: List[StrictStr]
    fallback: bool = Field(False, description="True when the model reply could not be used")

    class Config:
        populate_by_name = True


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., min_length=1)


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(..., min_length=1)


class ChatResponse(BaseModel):
    response: str
