from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from threading import Lock

from learnpath.journey.models import Journey, JourneyStatus

logger = logging.getLogger(__name__)


class LearningJourneyStore(ABC):
    @abstractmethod
    def put(self, journey: Journey) -> Journey | None:
        """Insert or replace the journey for its thread id; return the replaced one."""
        raise NotImplementedError

    @abstractmethod
    def get(self, thread_id: str) -> Journey | None:
        raise NotImplementedError

    @abstractmethod
    def remove(self, thread_id: str) -> Journey | None:
        raise NotImplementedError

    @abstractmethod
    def thread_ids(self) -> list[str]:
        raise NotImplementedError

    def __len__(self) -> int:
        return len(self.thread_ids())


class InMemoryJourneyStore(LearningJourneyStore):
    """Process-local store. Eviction is left to the owner (see ``evict``/``prune_finished``)."""

    def __init__(self):
        self._journeys: dict[str, Journey] = {}
        self._lock = Lock()

    def put(self, journey: Journey) -> Journey | None:
        with self._lock:
            previous = self._journeys.get(journey.thread_id)
            self._journeys[journey.thread_id] = journey
        return previous

    def get(self, thread_id: str) -> Journey | None:
        with self._lock:
            return self._journeys.get(thread_id)

    def remove(self, thread_id: str) -> Journey | None:
        with self._lock:
            return self._journeys.pop(thread_id, None)

    def thread_ids(self) -> list[str]:
        with self._lock:
            return list(self._journeys)

    def prune_finished(self, older_than: datetime) -> list[str]:
        """Drop completed/abandoned journeys that finished before ``older_than``."""
        removed: list[str] = []
        with self._lock:
            for thread_id, journey in list(self._journeys.items()):
                if journey.status == JourneyStatus.ACTIVE:
                    continue
                finished_at = journey.completed_at or journey.abandoned_at
                if finished_at is not None and finished_at < older_than:
                    del self._journeys[thread_id]
                    removed.append(thread_id)
        if removed:
            logger.info("Pruned %s finished journeys", len(removed))
        return removed
