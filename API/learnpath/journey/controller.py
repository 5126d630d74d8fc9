from __future__ import annotations

import json
import math

from learnpath.agents.answer_evaluator import AnswerEvaluator
from learnpath.agents.step_synthesizer import StepSynthesizer
from learnpath.agents.summary_reporter import SummaryReporter
from learnpath.core.errors import JourneyNotActiveError, JourneyNotFoundError, StepUnavailableError
from learnpath.core.logging import DOMAIN_JOURNEY, get_domain_logger
from learnpath.core.settings import settings
from learnpath.data.age_profiles import get_age_profile
from learnpath.journey.models import Journey, JourneyStatus, StudentResponse, utc_now
from learnpath.journey.store import LearningJourneyStore

logger = get_domain_logger(__name__, DOMAIN_JOURNEY)

ANSWER_ERROR_FEEDBACK = "I had trouble understanding your answer. Could you try explaining it differently?"


def percent(part: int, whole: int) -> int:
    """Half-up rounded percentage; an empty whole counts as one."""
    return math.floor(part * 100 / max(1, whole) + 0.5)


def _log_state_transition(journey: Journey, *, event: str, from_state: str, to_state: str, payload: dict | None = None) -> None:
    logger.info(
        json.dumps(
            {
                "type": "state_transition",
                "thread_id": journey.thread_id,
                "step_index": journey.current_step_index,
                "from_state": from_state,
                "to_state": to_state,
                "event": event,
                "payload": payload or {},
                "ts": utc_now().isoformat(),
            }
        )
    )


class ProgressionController:
    """State machine over a journey: active -> completed | abandoned."""

    def __init__(
        self,
        store: LearningJourneyStore,
        evaluator: AnswerEvaluator,
        synthesizer: StepSynthesizer,
        reporter: SummaryReporter,
    ):
        self.store = store
        self.evaluator = evaluator
        self.synthesizer = synthesizer
        self.reporter = reporter

    def _require(self, thread_id: str) -> Journey:
        journey = self.store.get(thread_id)
        if journey is None:
            raise JourneyNotFoundError(thread_id)
        return journey

    def _require_active(self, thread_id: str) -> Journey:
        journey = self._require(thread_id)
        if not journey.is_active:
            raise JourneyNotActiveError(thread_id, journey.status.value)
        return journey

    @staticmethod
    def _step_payload(journey: Journey) -> dict | None:
        steps = journey.path.steps
        index = journey.current_step_index
        if not 0 <= index < len(steps):
            return None
        step = steps[index]
        return {
            "stepNumber": step.step_number,
            "title": step.title,
            "content": step.content,
            "question": step.question,
            "questionType": step.question_type,
            "totalSteps": len(steps),
            "progress": percent(index + 1, len(steps)),
        }

    def get_current_step(self, thread_id: str) -> dict | None:
        journey = self.store.get(thread_id)
        if journey is None or not journey.is_active:
            return None
        return self._step_payload(journey)

    def get_status(self, thread_id: str) -> dict | None:
        journey = self.store.get(thread_id)
        if journey is None:
            return None
        path = journey.path
        total = len(path.steps)
        current = min(journey.current_step_index + 1, total)
        return {
            "status": journey.status.value,
            "currentStep": current,
            "totalSteps": total,
            "topic": journey.topic,
            "progress": percent(current, total),
            "fullPathReady": path.full_path_ready,
        }

    def get_journey_info(self, thread_id: str) -> dict | None:
        journey = self.store.get(thread_id)
        if journey is None:
            return None
        total = len(journey.steps)
        completed = journey.current_step_index
        return {
            "threadId": journey.thread_id,
            "topic": journey.topic,
            "ageGroup": journey.age_group,
            "status": journey.status.value,
            "currentStep": journey.current_step_index,
            "totalSteps": total,
            "completedSteps": completed,
            "completionPercent": percent(completed, total),
            "startedAt": journey.created_at.isoformat(),
            "completedAt": journey.completed_at.isoformat() if journey.completed_at else None,
            "abandonedAt": journey.abandoned_at.isoformat() if journey.abandoned_at else None,
            "abandonReason": journey.abandon_reason,
        }

    async def submit_answer(self, thread_id: str, answer: str) -> dict:
        journey = self._require_active(thread_id)
        step = journey.current_step()
        if step is None:
            logger.warning("No current step to answer | thread_id=%s | index=%s", thread_id, journey.current_step_index)
            return {"type": "error", "feedback": ANSWER_ERROR_FEEDBACK}

        on_topic = await self.evaluator.check_relevance(answer, step.question, journey.topic)
        if not on_topic:
            journey.nudge_count += 1
            threshold = settings.nudge_abandon_threshold
            logger.info("Off-topic answer | thread_id=%s | nudge_count=%s", thread_id, journey.nudge_count)
            if journey.nudge_count == threshold:
                return {
                    "type": "abandon_option",
                    "feedback": (
                        f"I notice you're interested in other things right now. That's okay! We can stop our "
                        f"{journey.topic} learning journey here. Would you like to explore something else instead, "
                        "or should we continue with our lesson?"
                    ),
                    "canAbandon": True,
                    "nudgeCount": journey.nudge_count,
                }
            return {
                "type": "nudge",
                "feedback": (
                    f"That's an interesting thought! But let's stay focused on our {journey.topic} lesson for now. "
                    f"Can you try answering: {step.question}"
                ),
                "nudgeCount": journey.nudge_count,
                "canAbandon": journey.nudge_count >= threshold,
            }

        result = await self.evaluator.evaluate(answer, step, journey.topic, journey.age_group)
        journey.responses.append(
            StudentResponse(
                step_number=step.step_number,
                question=step.question,
                answer=answer,
                feedback=result.message,
                score=result.score,
            )
        )
        journey.nudge_count = 0
        return {
            "type": "feedback",
            "feedback": result.message,
            "score": result.score,
            "isCorrect": result.is_correct,
            "canProceed": True,
            "nudgeCount": 0,
        }

    async def advance(self, thread_id: str) -> dict:
        """Move to the next step, or complete the journey after the last one.

        While the planned path is not ready, each missing step is synthesized on
        demand. Synthesis stops once the journey holds ``step_count`` steps for its
        band: advancing past the last of those completes without another provider
        call, so an unplanned journey is never longer than a planned one.
        Raises StepUnavailableError when synthesis fails; the position is kept.
        """
        journey = self._require_active(thread_id)
        profile = get_age_profile(journey.age_group)
        path = journey.path
        target = journey.current_step_index + 1

        if target >= len(path.steps) and not path.full_path_ready and len(path.steps) < profile.step_count:
            step = await self.synthesizer.synthesize_next(journey)
            if step is None:
                raise StepUnavailableError(thread_id, target + 1)
            latest = journey.path
            # The planned path may have landed while synthesizing; it wins over the synthesized step.
            if not latest.full_path_ready and len(latest.steps) <= target:
                journey.path = latest.with_step(step)
            path = journey.path

        if target < len(path.steps):
            journey.current_step_index = target
            _log_state_transition(
                journey,
                event="advance",
                from_state=JourneyStatus.ACTIVE.value,
                to_state=JourneyStatus.ACTIVE.value,
                payload={"provenance": path.steps[target].provenance.value},
            )
            return {"type": "next_step", **self._step_payload(journey)}

        return await self._complete(journey)

    async def _complete(self, journey: Journey) -> dict:
        # Follow-ups are fetched first so a provider failure leaves the journey active and retryable.
        next_topics = await self.reporter.suggest_follow_ups(journey.topic, journey.age_group)

        journey.status = JourneyStatus.COMPLETED
        journey.completed_at = utc_now()
        journey.current_step_index = len(journey.steps)
        _log_state_transition(
            journey,
            event="complete",
            from_state=JourneyStatus.ACTIVE.value,
            to_state=JourneyStatus.COMPLETED.value,
            payload={"duration_seconds": round((journey.completed_at - journey.created_at).total_seconds())},
        )
        profile = get_age_profile(journey.age_group)
        return {
            "type": "completion",
            "message": journey.completion_message or profile.default_completion_message,
            "practiceQuestions": list(journey.practice_questions),
            "summary": self.reporter.summarize(journey).to_dict(),
            "nextTopics": [topic.to_dict() for topic in next_topics],
        }

    def abandon(self, thread_id: str, reason: str | None = None) -> dict:
        journey = self._require_active(thread_id)
        journey.status = JourneyStatus.ABANDONED
        journey.abandoned_at = utc_now()
        journey.abandon_reason = reason or "user_choice"

        completed = journey.current_step_index
        total = len(journey.steps)
        completion = percent(completed, total)
        _log_state_transition(
            journey,
            event="abandon",
            from_state=JourneyStatus.ACTIVE.value,
            to_state=JourneyStatus.ABANDONED.value,
            payload={"reason": journey.abandon_reason, "completion_percent": completion},
        )
        return {
            "type": "abandoned",
            "message": (
                f"No worries! We covered {completed} out of {total} steps ({completion}%) of our {journey.topic} "
                "journey. You learned some great things! What would you like to explore next?"
            ),
            "completionPercent": completion,
            "stepsCompleted": completed,
        }
