import asyncio
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable

from app.core.errors import TransientIO

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpenError(TransientIO):
    pass


class CircuitBreaker:
    """Trips after consecutive transport failures against a remote blob store.

    Only ``TransientIO`` failures count; a missing artifact is a normal answer.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        timeout_seconds: int = 30,
        half_open_max_calls: int = 1,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.timeout_seconds = timeout_seconds
        self.half_open_max_calls = half_open_max_calls

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time = None
        self.half_open_calls = 0

    def before_call(self) -> None:
        if self.state == CircuitState.OPEN:
            if self._should_attempt_reset():
                logger.info(f"Circuit breaker {self.name} half-open")
                self.state = CircuitState.HALF_OPEN
                self.half_open_calls = 0
                self.success_count = 0
            else:
                logger.warning(f"Circuit breaker {self.name} is open, rejecting call")
                raise CircuitBreakerOpenError()

        if self.state == CircuitState.HALF_OPEN:
            if self.half_open_calls >= self.half_open_max_calls:
                logger.warning(f"Circuit breaker {self.name} half-open limit reached")
                raise CircuitBreakerOpenError()
            self.half_open_calls += 1

    async def call(self, func: Callable, *args, **kwargs) -> Any:
        self.before_call()

        try:
            if asyncio.iscoroutinefunction(func):
                result = await func(*args, **kwargs)
            else:
                result = func(*args, **kwargs)
        except TransientIO:
            self.record_failure()
            raise

        self.record_success()
        return result

    def record_success(self) -> None:
        if self.state == CircuitState.HALF_OPEN:
            self.success_count += 1
            if self.success_count >= self.half_open_max_calls:
                logger.info(f"Circuit breaker {self.name} closed")
                self.state = CircuitState.CLOSED
                self.success_count = 0
                self.failure_count = 0
        else:
            self.failure_count = 0

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = datetime.now(timezone.utc)

        if self.state == CircuitState.HALF_OPEN:
            self.state = CircuitState.OPEN
            self.success_count = 0
            self.half_open_calls = 0
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                f"Circuit breaker {self.name} opened after {self.failure_count} failures"
            )
            self.state = CircuitState.OPEN

    def _should_attempt_reset(self) -> bool:
        if not self.last_failure_time:
            return True

        elapsed = datetime.now(timezone.utc) - self.last_failure_time
        return elapsed > timedelta(seconds=self.timeout_seconds)

    def get_state(self) -> CircuitState:
        return self.state
