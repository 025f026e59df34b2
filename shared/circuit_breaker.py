"""
Circuit breaker for calls to the issuing authority.
"""

import time
from enum import Enum
from typing import Dict, Any, Callable, Awaitable, Tuple, Type

from shared.logging import get_logger


class CircuitBreakerState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    """Raised when a call is refused because the breaker is open."""

    def __init__(self, name: str, retry_after: float):
        super().__init__(f"Circuit breaker '{name}' is OPEN - blocking call")
        self.name = name
        self.retry_after = retry_after


class CircuitBreaker:
    """Counts consecutive failures of one upstream and stops calling it for a while."""

    def __init__(self,
                 name: str,
                 failure_threshold: int = 5,
                 recovery_timeout: float = 30.0,
                 tracked_exceptions: Tuple[Type[BaseException], ...] = (Exception,)):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.tracked_exceptions = tracked_exceptions
        self.logger = get_logger(f"gate.circuit_breaker.{name}")

        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0
        self._opened_at = 0.0

    @property
    def state(self) -> CircuitBreakerState:
        return self._state

    def _remaining_cooldown(self) -> float:
        return max(0.0, self.recovery_timeout - (time.monotonic() - self._opened_at))

    def _should_attempt_call(self) -> bool:
        if self._state is CircuitBreakerState.OPEN:
            if self._remaining_cooldown() > 0:
                return False
            self._state = CircuitBreakerState.HALF_OPEN
            self.logger.info("Circuit breaker transitioning to half-open")
        return True

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Execute ``func`` unless the breaker is open."""
        if not self._should_attempt_call():
            raise CircuitOpenError(self.name, self._remaining_cooldown())

        try:
            result = await func(*args, **kwargs)
        except self.tracked_exceptions:
            self._record_failure()
            raise

        if self._state is not CircuitBreakerState.CLOSED or self._failure_count:
            if self._state is CircuitBreakerState.HALF_OPEN:
                self.logger.info("Circuit breaker reset to CLOSED after successful call")
            self._state = CircuitBreakerState.CLOSED
            self._failure_count = 0
        return result

    def _record_failure(self):
        self._failure_count += 1

        if self._state is CircuitBreakerState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._state = CircuitBreakerState.OPEN
            self._opened_at = time.monotonic()
            self.logger.warning(
                "Circuit breaker opened due to failures",
                failure_count=self._failure_count,
                threshold=self.failure_threshold
            )

    def get_state(self) -> Dict[str, Any]:
        """Get current circuit breaker state."""
        return {
            "name": self.name,
            "state": self._state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout
        }

    def reset(self):
        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0
        self._opened_at = 0.0
