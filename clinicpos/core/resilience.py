"""
Database fault tolerance.

Every repository call runs through ``db_circuit_breaker``.  Once the database
has failed ``CB_FAILURE_THRESHOLD`` times in a row, calls are refused with a
:class:`CircuitBreakerError` (rendered as 503 + ``Retry-After``) until
``CB_RECOVERY_TIMEOUT`` has passed; the next call is then a probe.

``retry_with_backoff`` is used once, at startup, to wait for the database
before creating tables.
"""

import asyncio
import functools
import logging
import random
import time
from enum import Enum
from typing import Any, Callable, Iterator, Optional, Tuple, Type

from sqlalchemy.exc import InterfaceError, OperationalError

from clinicpos.core.config import settings

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS: Tuple[Type[Exception], ...] = (ConnectionError, OSError, TimeoutError)
# What a lost database looks like once SQLAlchemy has wrapped the driver error.
DB_UNAVAILABLE_ERRORS: Tuple[Type[Exception], ...] = TRANSIENT_ERRORS + (
    OperationalError,
    InterfaceError,
)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerError(Exception):
    """The circuit is open; ``retry_after`` is the number of seconds left."""

    def __init__(self, name: str, retry_after: float):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"'{name}' is unavailable, retry in {retry_after:.1f}s")


class CircuitBreaker:
    """
    Async circuit breaker.

    Only ``expected_exceptions`` count as failures.  Business errors
    (IntegrityError, validation) pass straight through and leave the state
    alone.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        expected_exceptions: Tuple[Type[Exception], ...] = (Exception,),
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exceptions = expected_exceptions

        self._failures = 0
        self._calls_ok = 0
        self._opened_at: Optional[float] = None

    @property
    def state(self) -> CircuitState:
        if self._opened_at is None:
            return CircuitState.CLOSED
        if time.monotonic() - self._opened_at >= self.recovery_timeout:
            return CircuitState.HALF_OPEN
        return CircuitState.OPEN

    def retry_after(self) -> float:
        if self._opened_at is None:
            return 0.0
        return max(self.recovery_timeout - (time.monotonic() - self._opened_at), 0.0)

    async def call(self, func: Callable, *args: Any, **kwargs: Any) -> Any:
        if self.state == CircuitState.OPEN:
            raise CircuitBreakerError(self.name, self.retry_after())

        probing = self.state == CircuitState.HALF_OPEN
        try:
            result = await func(*args, **kwargs)
        except self.expected_exceptions as exc:
            self._on_failure(exc, probing)
            raise

        if self._opened_at is not None:
            logger.info("Circuit '%s' closed, probe succeeded", self.name)
        self._opened_at = None
        self._failures = 0
        self._calls_ok += 1
        return result

    def _on_failure(self, exc: Exception, probing: bool) -> None:
        self._failures += 1
        if probing or self._failures >= self.failure_threshold:
            self._opened_at = time.monotonic()
            logger.error(
                "Circuit '%s' open for %.1fs after %d failures (last: %s)",
                self.name,
                self.recovery_timeout,
                self._failures,
                type(exc).__name__,
            )
        else:
            logger.warning(
                "Circuit '%s' failure %d/%d: %s",
                self.name,
                self._failures,
                self.failure_threshold,
                exc,
            )

    def get_status(self) -> dict:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self._failures,
            "failure_threshold": self.failure_threshold,
            "success_count": self._calls_ok,
            "retry_after_s": round(self.retry_after(), 1),
        }


db_circuit_breaker = CircuitBreaker(
    name="database",
    failure_threshold=settings.CB_FAILURE_THRESHOLD,
    recovery_timeout=settings.CB_RECOVERY_TIMEOUT,
    expected_exceptions=DB_UNAVAILABLE_ERRORS,
)


def _delays(base_delay: float, max_delay: float, jitter: bool) -> Iterator[float]:
    delay = base_delay
    while True:
        wait = min(delay, max_delay)
        if jitter:
            wait += random.uniform(0, wait * 0.5)
        yield wait
        delay *= 2


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    jitter: bool = True,
    retryable_exceptions: Tuple[Type[Exception], ...] = TRANSIENT_ERRORS,
) -> Callable:
    """
    Retry an async function on ``retryable_exceptions``, doubling the wait
    from ``base_delay`` up to ``max_delay``.  The last error is re-raised
    once ``max_retries`` retries have failed.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            waits = _delays(base_delay, max_delay, jitter)
            for attempt in range(1, max_retries + 2):
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as exc:
                    if attempt > max_retries:
                        logger.error(
                            "%s still failing after %d retries: %s",
                            func.__qualname__,
                            max_retries,
                            exc,
                        )
                        raise
                    wait = next(waits)
                    logger.warning(
                        "%s failed (%s), retry %d/%d in %.2fs",
                        func.__qualname__,
                        type(exc).__name__,
                        attempt,
                        max_retries,
                        wait,
                    )
                    await asyncio.sleep(wait)

        return wrapper

    return decorator
