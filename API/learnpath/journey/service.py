"""
Journey service: the single entry point a host application talks to.

Each instance owns its store, provider and agents; nothing is kept at module
level, so hosts and tests control the lifecycle explicitly.
"""
from __future__ import annotations

from learnpath.agents.answer_evaluator import AnswerEvaluator
from learnpath.agents.path_generator import PathGenerator
from learnpath.agents.quiz_synthesizer import QuizSynthesizer
from learnpath.agents.step_synthesizer import StepSynthesizer
from learnpath.agents.summary_reporter import SummaryReporter
from learnpath.core.errors import JourneyNotFoundError
from learnpath.core.llm_provider import BaseLLMProvider, get_llm_provider
from learnpath.core.settings import settings
from learnpath.data.quick_start import QuickStartSelector
from learnpath.journey.bootstrap import JourneyBootstrap, wait_for_path
from learnpath.journey.controller import ProgressionController
from learnpath.journey.models import Journey, JourneySummary, Quiz
from learnpath.journey.store import InMemoryJourneyStore, LearningJourneyStore


class JourneyService:
    def __init__(
        self,
        provider: BaseLLMProvider | None = None,
        store: LearningJourneyStore | None = None,
        selector: QuickStartSelector | None = None,
    ):
        self.provider = provider or get_llm_provider()
        self.store = store if store is not None else InMemoryJourneyStore()
        self.path_generator = PathGenerator(self.provider)
        self.step_synthesizer = StepSynthesizer(self.provider)
        self.evaluator = AnswerEvaluator(self.provider)
        self.reporter = SummaryReporter(self.provider)
        self.quiz_synthesizer = QuizSynthesizer(self.provider, reporter=self.reporter)
        self.bootstrap = JourneyBootstrap(
            self.store,
            self.path_generator,
            selector or QuickStartSelector(seed=settings.quick_start_seed),
        )
        self.controller = ProgressionController(self.store, self.evaluator, self.step_synthesizer, self.reporter)

    def _require(self, thread_id: str) -> Journey:
        journey = self.store.get(thread_id)
        if journey is None:
            raise JourneyNotFoundError(thread_id)
        return journey

    def get_journey(self, thread_id: str) -> Journey | None:
        return self.store.get(thread_id)

    async def start_journey(self, thread_id: str, topic: str, age_group: str) -> Journey:
        return await self.bootstrap.start_journey(thread_id, topic, age_group)

    async def wait_for_path(self, thread_id: str) -> bool:
        return await wait_for_path(self._require(thread_id))

    def get_current_step(self, thread_id: str) -> dict | None:
        return self.controller.get_current_step(thread_id)

    async def submit_answer(self, thread_id: str, answer: str) -> dict:
        return await self.controller.submit_answer(thread_id, answer)

    async def advance(self, thread_id: str) -> dict:
        return await self.controller.advance(thread_id)

    def abandon(self, thread_id: str, reason: str | None = None) -> dict:
        return self.controller.abandon(thread_id, reason)

    def get_status(self, thread_id: str) -> dict | None:
        return self.controller.get_status(thread_id)

    def get_journey_info(self, thread_id: str) -> dict | None:
        return self.controller.get_journey_info(thread_id)

    def get_summary(self, thread_id: str) -> JourneySummary:
        return self.reporter.summarize(self._require(thread_id))

    async def generate_quiz(self, thread_id: str, external_context: list | None = None) -> Quiz:
        return await self.quiz_synthesizer.generate(self._require(thread_id), external_context)

    def practice_quiz(self, thread_id: str) -> dict:
        return self.quiz_synthesizer.practice_quiz(self._require(thread_id))

    def evict(self, thread_id: str) -> bool:
        journey = self.store.remove(thread_id)
        if journey is None:
            return False
        if journey.path_task is not None and not journey.path_task.done():
            journey.path_task.cancel()
        return True

    def cancel_pending(self) -> int:
        """Cancel every background path generation still running; return how many."""
        cancelled = 0
        for thread_id in self.store.thread_ids():
            journey = self.store.get(thread_id)
            if journey is not None and journey.path_task is not None and not journey.path_task.done():
                journey.path_task.cancel()
                cancelled += 1
        return cancelled
