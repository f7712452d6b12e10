from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)


class CircuitOpenError(Exception):
    """Raised when calls are blocked by an open circuit."""


@dataclass
class CircuitBreakerState:
    failure_count: int = 0
    opened_at_seconds: float | None = None
    trial_in_flight: bool = False


class CircuitBreaker:
    def __init__(
        self,
        name: str = "default",
        failure_threshold: int = 3,
        recovery_timeout_seconds: float = 30,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        self.name = name
        self._failure_threshold = failure_threshold
        self._recovery_timeout_seconds = recovery_timeout_seconds
        self._state = CircuitBreakerState()

    @property
    def failure_count(self) -> int:
        return self._state.failure_count

    def is_open(self, now_seconds: float) -> bool:
        opened_at = self._state.opened_at_seconds
        if opened_at is None:
            return False
        return now_seconds - opened_at < self._recovery_timeout_seconds

    async def call(
        self,
        operation: Callable[[], Awaitable[T]],
        now_seconds: float,
    ) -> T:
        trial = False
        if self._state.opened_at_seconds is not None:
            if self.is_open(now_seconds) or self._state.trial_in_flight:
                logger.warning(
                    "circuit_open",
                    extra={"component": "locator_api", "circuit": self.name, "now_seconds": now_seconds},
                )
                raise CircuitOpenError(f"circuit {self.name} is open")
            # recovery window elapsed; one trial call at a time until it settles
            self._state.trial_in_flight = True
            trial = True
            logger.info("circuit_half_open", extra={"component": "locator_api", "circuit": self.name})

        try:
            result = await operation()
        except Exception:
            self._record_failure(now_seconds, trial)
            raise
        except BaseException:
            if trial:
                self._state.trial_in_flight = False
            raise
        self._state = CircuitBreakerState()
        return result

    def _record_failure(self, now_seconds: float, trial: bool = False) -> None:
        self._state.failure_count += 1
        if trial:
            self._state.trial_in_flight = False
        if trial or self._state.failure_count >= self._failure_threshold:
            self._state.opened_at_seconds = now_seconds
            logger.error(
                "circuit_opened",
                extra={
                    "component": "locator_api",
                    "circuit": self.name,
                    "failure_count": self._state.failure_count,
                    "opened_at_seconds": now_seconds,
                },
            )
