"""Journey state owned by the store and mutated only by the controller and bootstrap."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

QUESTION_TYPES = ("factual", "subjective", "application")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JourneyStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class StepProvenance(str, Enum):
    QUICK = "quick"
    PLANNED = "planned"
    ON_DEMAND = "on-demand"


@dataclass(frozen=True)
class Step:
    step_number: int
    title: str
    content: str
    question: str
    question_type: str = "factual"
    hints: tuple[str, ...] = ()
    expected_answer: str | None = None
    provenance: StepProvenance = StepProvenance.PLANNED

    def to_dict(self) -> dict:
        return {
            "stepNumber": self.step_number,
            "title": self.title,
            "content": self.content,
            "question": self.question,
            "questionType": self.question_type,
            "hints": list(self.hints),
            "expectedAnswer": self.expected_answer,
            "provenance": self.provenance.value,
        }


@dataclass(frozen=True)
class PathSnapshot:
    """Steps and readiness, always replaced together."""

    steps: tuple[Step, ...]
    full_path_ready: bool = False

    def with_step(self, step: Step) -> PathSnapshot:
        return PathSnapshot(steps=self.steps + (step,), full_path_ready=self.full_path_ready)


@dataclass(frozen=True)
class StudentResponse:
    step_number: int
    question: str
    answer: str
    feedback: str
    score: int
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "stepNumber": self.step_number,
            "question": self.question,
            "answer": self.answer,
            "feedback": self.feedback,
            "score": self.score,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class EvaluationResult:
    message: str
    score: int
    is_correct: bool
    source: str = "llm"


@dataclass(frozen=True)
class GeneratedPath:
    title: str
    steps: tuple[Step, ...]
    completion_message: str = ""
    practice_questions: tuple[str, ...] = ()


@dataclass(frozen=True)
class JourneySummary:
    topic: str
    steps_completed: int
    total_steps: int
    average_score: int
    duration_minutes: int
    strengths: tuple[str, ...]
    achievements: tuple[str, ...]

    def to_dict(self) -> dict:
        return {
            "topic": self.topic,
            "stepsCompleted": self.steps_completed,
            "totalSteps": self.total_steps,
            "averageScore": self.average_score,
            "duration": self.duration_minutes,
            "strengths": list(self.strengths),
            "achievements": list(self.achievements),
        }


@dataclass(frozen=True)
class FollowUpTopic:
    topic: str
    description: str
    difficulty: str = "intermediate"
    estimated_steps: int = 5

    def to_dict(self) -> dict:
        return {
            "topic": self.topic,
            "description": self.description,
            "difficulty": self.difficulty,
            "estimatedSteps": self.estimated_steps,
        }


@dataclass(frozen=True)
class QuizQuestion:
    id: int
    question: str
    type: str
    options: tuple[dict, ...]
    correct_answer: str
    explanation: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "question": self.question,
            "type": self.type,
            "options": [dict(option) for option in self.options],
            "correctAnswer": self.correct_answer,
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class Quiz:
    title: str
    description: str
    questions: tuple[QuizQuestion, ...]
    learning_objectives: tuple[str, ...]
    age_group: str
    total_questions: int

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "questions": [question.to_dict() for question in self.questions],
            "learningObjectives": list(self.learning_objectives),
            "ageGroup": self.age_group,
            "totalQuestions": self.total_questions,
        }


@dataclass
class Journey:
    thread_id: str
    topic: str
    age_group: str
    title: str
    path: PathSnapshot
    current_step_index: int = 0
    status: JourneyStatus = JourneyStatus.ACTIVE
    created_at: datetime = field(default_factory=utc_now)
    completed_at: datetime | None = None
    abandoned_at: datetime | None = None
    abandon_reason: str | None = None
    responses: list[StudentResponse] = field(default_factory=list)
    nudge_count: int = 0
    completion_message: str = ""
    practice_questions: tuple[str, ...] = ()
    path_task: asyncio.Task | None = field(default=None, repr=False, compare=False)
    path_error: str | None = None

    @property
    def steps(self) -> tuple[Step, ...]:
        return self.path.steps

    @property
    def full_path_ready(self) -> bool:
        return self.path.full_path_ready

    @property
    def is_active(self) -> bool:
        return self.status == JourneyStatus.ACTIVE

    def current_step(self) -> Step | None:
        steps = self.path.steps
        if 0 <= self.current_step_index < len(steps):
            return steps[self.current_step_index]
        return None

    def snapshot(self) -> dict:
        path = self.path
        return {
            "threadId": self.thread_id,
            "topic": self.topic,
            "ageGroup": self.age_group,
            "title": self.title,
            "status": self.status.value,
            "currentStepIndex": self.current_step_index,
            "steps": [step.to_dict() for step in path.steps],
            "fullPathReady": path.full_path_ready,
            "nudgeCount": self.nudge_count,
            "responses": [response.to_dict() for response in self.responses],
            "createdAt": self.created_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "abandonedAt": self.abandoned_at.isoformat() if self.abandoned_at else None,
        }
