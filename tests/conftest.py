from __future__ import annotations

import asyncio
import json
import os
import sys
import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
API_DIR = ROOT / "API"
if str(API_DIR) not in sys.path:
    sys.path.insert(0, str(API_DIR))

# Test-mode runtime guards: no outbound provider traffic.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("LLM_PROVIDER", "none")

from learnpath.core.llm_provider import BaseLLMProvider  # noqa: E402
from learnpath.data.quick_start import QuickStartSelector  # noqa: E402
from learnpath.journey.service import JourneyService  # noqa: E402
from learnpath.main import create_app  # noqa: E402

# System-instruction marker -> role, checked in order.
ROLE_MARKERS = (
    ("curriculum designer", "path"),
    ("one step at a time", "step"),
    ("is relevant to a question", "relevance"),
    ("supportive teacher", "evaluation"),
    ("follow-up learning paths", "follow_ups"),
    ("educational assessor", "quiz"),
)


def path_reply(step_count: int = 6, *, completion_message: str = "You did it!") -> str:
    steps = [
        {
            "stepNumber": n,
            "title": f"Planned step {n}",
            "content": f"Planned content {n}",
            "question": f"Planned question {n}?",
            "questionType": "factual",
            "expectedAnswer": f"Answer {n}",
            "hints": [f"Hint {n}"],
        }
        for n in range(1, step_count + 1)
    ]
    return json.dumps(
        {
            "title": "A planned journey",
            "steps": steps,
            "completionMessage": completion_message,
            "practiceQuestions": [f"Practice {n}?" for n in range(1, 7)],
        }
    )


def step_reply(title: str = "On-demand step") -> str:
    return json.dumps(
        {
            "stepNumber": 99,
            "title": title,
            "content": "Content written for this learner",
            "question": "What happens next?",
            "questionType": "application",
        }
    )


def evaluation_reply(score: int = 90, message: str = "Nice thinking!") -> str:
    return json.dumps({"message": message, "isCorrect": score >= 80, "score": score})


def follow_ups_reply(count: int = 3) -> str:
    return json.dumps(
        {
            "suggestions": [
                {
                    "topic": f"Deeper question {n}",
                    "description": f"Goes further {n}",
                    "difficulty": "intermediate",
                    "estimatedSteps": 5,
                }
                for n in range(1, count + 1)
            ]
        }
    )


def quiz_reply() -> str:
    return "```json\n" + json.dumps(
        {
            "title": "Volcano Quiz",
            "description": "Checks the whole journey",
            "questions": [
                {
                    "id": 1,
                    "question": "What comes out of a volcano?",
                    "type": "multiple_choice",
                    "options": [{"letter": "A", "text": "Lava"}, {"letter": "B", "text": "Milk"}],
                    "correctAnswer": "A",
                    "explanation": "Lava is melted rock.",
                },
                {
                    "id": "two",
                    "question": "Why do volcanoes erupt?",
                    "type": "short_answer",
                    "options": [],
                    "correctAnswer": "Pressure",
                    "explanation": "Pressure builds up underground.",
                },
            ],
            "learningObjectives": ["Explain eruptions"],
        }
    ) + "\n```"


def wait_for_background(service, thread_id: str = "t-1") -> None:
    """Poll from the test thread until the journey's background generation settles."""
    task = service.get_journey(thread_id).path_task
    for _ in range(200):
        if task.done():
            return
        time.sleep(0.01)
    raise AssertionError("background path generation did not settle")


class FakeLLMProvider(BaseLLMProvider):
    """Scripted provider that answers by role and records every call.

    A reply may be a string, an exception instance (raised), a callable taking
    ``(system, prompt)``, or a list of those consumed in order (the last one sticks).
    Setting ``gates[role]`` to an ``asyncio.Event`` holds that role's calls until it is set.
    """

    provider_name = "fake"
    model_name = "fake-model"

    def __init__(self, **replies):
        self.replies = {
            "path": path_reply(),
            "step": step_reply(),
            "relevance": "true",
            "evaluation": evaluation_reply(),
            "follow_ups": follow_ups_reply(),
            "quiz": quiz_reply(),
        }
        self.replies.update(replies)
        self.calls: list[dict] = []
        self.gates: dict[str, asyncio.Event] = {}

    @staticmethod
    def role_for(system_instruction: str) -> str:
        for marker, role in ROLE_MARKERS:
            if marker in system_instruction:
                return role
        raise AssertionError(f"unrecognised system instruction: {system_instruction[:80]}")

    def calls_for(self, role: str) -> list[dict]:
        return [call for call in self.calls if call["role"] == role]

    async def complete(self, system_instruction, user_prompt, temperature, max_output_tokens) -> str:
        role = self.role_for(system_instruction)
        self.calls.append(
            {
                "role": role,
                "system": system_instruction,
                "prompt": user_prompt,
                "temperature": temperature,
                "max_output_tokens": max_output_tokens,
            }
        )
        gate = self.gates.get(role)
        if gate is not None:
            await gate.wait()

        reply = self.replies[role]
        if isinstance(reply, list):
            reply = reply.pop(0) if len(reply) > 1 else reply[0]
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            reply = reply(system_instruction, user_prompt)
        return reply


@pytest.fixture
def provider() -> FakeLLMProvider:
    return FakeLLMProvider()


@pytest.fixture
def service(provider) -> JourneyService:
    return JourneyService(provider=provider, selector=QuickStartSelector(seed=7))


@pytest.fixture
def client(service) -> TestClient:
    with TestClient(create_app(service)) as tc:
        yield tc
