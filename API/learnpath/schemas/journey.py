from typing import Any

from pydantic import BaseModel, Field


class StartJourneyRequest(BaseModel):
    thread_id: str = Field(..., min_length=1, description="Conversation thread that owns the journey")
    topic: str = Field(..., min_length=1, max_length=200)
    age_group: str = Field("8-10", description="One of 5-7, 8-10, 11-13, 14-17")


class SubmitAnswerRequest(BaseModel):
    answer: str = Field(..., min_length=1, max_length=4000)


class AbandonRequest(BaseModel):
    reason: str | None = None


class QuizRequest(BaseModel):
    external_context: list[dict[str, Any]] = Field(default_factory=list)


class StepResponse(BaseModel):
    stepNumber: int
    title: str
    content: str
    question: str
    questionType: str
    totalSteps: int
    progress: int


class StatusResponse(BaseModel):
    status: str
    currentStep: int
    totalSteps: int
    topic: str
    progress: int
    fullPathReady: bool
