from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from learnpath.core.errors import JourneyNotFoundError
from learnpath.core.logging import DOMAIN_API, get_domain_logger
from learnpath.journey.service import JourneyService
from learnpath.schemas.journey import (
    AbandonRequest,
    QuizRequest,
    StartJourneyRequest,
    StatusResponse,
    StepResponse,
    SubmitAnswerRequest,
)

router = APIRouter(prefix="/journeys", tags=["journeys"])
logger = get_domain_logger(__name__, DOMAIN_API)


def get_service(request: Request) -> JourneyService:
    return request.app.state.journey_service


@router.post("")
async def start_journey(payload: StartJourneyRequest, service: JourneyService = Depends(get_service)):
    journey = await service.start_journey(payload.thread_id, payload.topic.strip(), payload.age_group)
    return journey.snapshot()


@router.get("/{thread_id}")
async def journey_info(thread_id: str, service: JourneyService = Depends(get_service)):
    info = service.get_journey_info(thread_id)
    if info is None:
        raise JourneyNotFoundError(thread_id)
    return info


@router.get("/{thread_id}/step", response_model=StepResponse)
async def current_step(thread_id: str, service: JourneyService = Depends(get_service)):
    step = service.get_current_step(thread_id)
    if step is None:
        raise JourneyNotFoundError(thread_id)
    return step


@router.get("/{thread_id}/status", response_model=StatusResponse)
async def journey_status(thread_id: str, service: JourneyService = Depends(get_service)):
    status = service.get_status(thread_id)
    if status is None:
        raise JourneyNotFoundError(thread_id)
    return status


@router.post("/{thread_id}/answer")
async def submit_answer(thread_id: str, payload: SubmitAnswerRequest, service: JourneyService = Depends(get_service)):
    return await service.submit_answer(thread_id, payload.answer)


@router.post("/{thread_id}/advance")
async def advance(thread_id: str, service: JourneyService = Depends(get_service)):
    return await service.advance(thread_id)


@router.post("/{thread_id}/abandon")
async def abandon(thread_id: str, payload: AbandonRequest | None = None, service: JourneyService = Depends(get_service)):
    reason = payload.reason if payload else None
    return service.abandon(thread_id, reason)


@router.get("/{thread_id}/summary")
async def summary(thread_id: str, service: JourneyService = Depends(get_service)):
    return service.get_summary(thread_id).to_dict()


@router.post("/{thread_id}/quiz")
async def generate_quiz(thread_id: str, payload: QuizRequest | None = None, service: JourneyService = Depends(get_service)):
    context = payload.external_context if payload else []
    quiz = await service.generate_quiz(thread_id, context)
    return quiz.to_dict()


@router.get("/{thread_id}/practice-quiz")
async def practice_quiz(thread_id: str, service: JourneyService = Depends(get_service)):
    return service.practice_quiz(thread_id)


@router.delete("/{thread_id}")
async def evict(thread_id: str, service: JourneyService = Depends(get_service)):
    if not service.evict(thread_id):
        raise JourneyNotFoundError(thread_id)
    logger.info("Journey evicted | thread_id=%s", thread_id)
    return {"thread_id": thread_id, "status": "evicted"}
