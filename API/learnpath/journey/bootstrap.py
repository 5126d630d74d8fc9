from __future__ import annotations

import asyncio
import json

from learnpath.agents.path_generator import PathGenerator
from learnpath.core.logging import DOMAIN_JOURNEY, get_domain_logger
from learnpath.data.age_profiles import get_age_profile
from learnpath.data.quick_start import QuickStartSelector
from learnpath.journey.models import Journey, PathSnapshot, Step, StepProvenance
from learnpath.journey.store import LearningJourneyStore

logger = get_domain_logger(__name__, DOMAIN_JOURNEY)


class JourneyBootstrap:
    """Serves a templated first step at once and plans the full path in the background."""

    def __init__(
        self,
        store: LearningJourneyStore,
        path_generator: PathGenerator,
        selector: QuickStartSelector | None = None,
    ):
        self.store = store
        self.path_generator = path_generator
        self.selector = selector or QuickStartSelector()

    def _quick_step(self, topic: str, band: str) -> Step:
        intro, question = self.selector.select(topic, band)
        return Step(
            step_number=1,
            title=f"Getting started with {topic}",
            content=intro,
            question=question,
            question_type="subjective",
            provenance=StepProvenance.QUICK,
        )

    async def start_journey(self, thread_id: str, topic: str, age_group: str) -> Journey:
        profile = get_age_profile(age_group)
        journey = Journey(
            thread_id=thread_id,
            topic=topic,
            age_group=profile.band,
            title=f"Exploring {topic}",
            path=PathSnapshot(steps=(self._quick_step(topic, profile.band),), full_path_ready=False),
        )
        previous = self.store.put(journey)
        if previous is not None and previous.path_task is not None and not previous.path_task.done():
            previous.path_task.cancel()

        journey.path_task = asyncio.create_task(
            self._plan_full_path(journey),
            name=f"learning-path:{thread_id}",
        )
        logger.info(
            json.dumps(
                {
                    "type": "journey_started",
                    "thread_id": thread_id,
                    "topic": topic,
                    "age_group": profile.band,
                    "target_steps": profile.step_count,
                    "replaced_existing": previous is not None,
                }
            )
        )
        return journey

    async def _plan_full_path(self, journey: Journey) -> None:
        try:
            generated = await self.path_generator.generate(journey.topic, journey.age_group)
        except asyncio.CancelledError:
            logger.info("Path generation cancelled | thread_id=%s", journey.thread_id)
            raise
        except Exception as exc:
            journey.path_error = str(exc) or exc.__class__.__name__
            logger.warning(
                json.dumps(
                    {
                        "type": "path_failed",
                        "thread_id": journey.thread_id,
                        "topic": journey.topic,
                        "error": journey.path_error,
                    }
                )
            )
            return

        if not journey.is_active:
            logger.info(
                "Planned path arrived after journey finished | thread_id=%s | status=%s",
                journey.thread_id,
                journey.status.value,
            )
            return

        journey.completion_message = generated.completion_message
        journey.practice_questions = generated.practice_questions
        journey.path = PathSnapshot(steps=generated.steps, full_path_ready=True)
        logger.info(
            json.dumps(
                {
                    "type": "path_ready",
                    "thread_id": journey.thread_id,
                    "steps": len(generated.steps),
                    "current_step_index": journey.current_step_index,
                }
            )
        )


async def wait_for_path(journey: Journey) -> bool:
    """Block until background planning settles; return whether the full path is ready."""
    if journey.path_task is not None:
        await journey.path_task
    return journey.full_path_ready
