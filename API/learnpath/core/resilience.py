import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock

import httpx

from learnpath.core.settings import settings

RETRYABLE_ERRORS: tuple[type[Exception], ...] = (
    TimeoutError,
    ConnectionError,
    asyncio.TimeoutError,
    httpx.TimeoutException,
    httpx.TransportError,
)


async def retry_with_backoff(
    async_func,
    *,
    max_retries: int | None = None,
    base_delay_seconds: float | None = None,
    retryable_errors: tuple[type[Exception], ...] = RETRYABLE_ERRORS,
):
    attempts = max(1, max_retries if max_retries is not None else settings.llm_max_retries)
    delay = base_delay_seconds if base_delay_seconds is not None else settings.llm_retry_base_delay_seconds
    last_exception = None
    for attempt in range(attempts):
        try:
            return await async_func()
        except retryable_errors as exc:  # type: ignore[misc]
            last_exception = exc
            if attempt == attempts - 1:
                break
            await asyncio.sleep(delay * (2**attempt))
    if last_exception:
        raise last_exception


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreaker:
    """Stops calling a provider after repeated failures until a cool-down passes."""

    name: str
    failure_threshold: int = 4
    recovery_timeout_seconds: float = 30.0
    half_open_max_calls: int = 1
    state: CircuitState = field(default=CircuitState.CLOSED)
    failure_count: int = field(default=0)
    last_failure_time: float = field(default=0.0)
    half_open_calls: int = field(default=0)
    _lock: Lock = field(default_factory=Lock)

    def can_execute(self) -> bool:
        with self._lock:
            if self.state == CircuitState.CLOSED:
                return True
            if self.state == CircuitState.OPEN:
                if time.monotonic() - self.last_failure_time >= self.recovery_timeout_seconds:
                    self.state = CircuitState.HALF_OPEN
                    self.half_open_calls = 1
                    return True
                return False
            if self.half_open_calls < self.half_open_max_calls:
                self.half_open_calls += 1
                return True
            return False

    def record_success(self) -> None:
        with self._lock:
            self.state = CircuitState.CLOSED
            self.failure_count = 0
            self.half_open_calls = 0

    def record_failure(self) -> None:
        with self._lock:
            self.failure_count += 1
            self.last_failure_time = time.monotonic()
            if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
                self.state = CircuitState.OPEN
                self.half_open_calls = 0

    def status(self) -> dict:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
        }


_registry: dict[str, CircuitBreaker] = {}
_registry_lock = Lock()


def get_breaker(name: str) -> CircuitBreaker:
    with _registry_lock:
        if name not in _registry:
            _registry[name] = CircuitBreaker(
                name=name,
                failure_threshold=settings.breaker_failure_threshold,
                recovery_timeout_seconds=settings.breaker_recovery_timeout_seconds,
            )
        return _registry[name]


def get_breakers_status() -> dict[str, dict]:
    with _registry_lock:
        return {name: breaker.status() for name, breaker in _registry.items()}
