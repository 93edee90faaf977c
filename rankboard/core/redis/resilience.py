"""
Circuit breaker and retry policy shared by every Redis command.

Only connection-level failures (refused, reset, timed out) are retried and
counted against the circuit. Command errors such as WRONGTYPE propagate on
the first attempt. WatchError is the normal outcome of a lost optimistic
race and passes through without touching the circuit.

Configuration Keys
------------------
- core.redis.resilience.circuit.failure_threshold   (default 5)
- core.redis.resilience.circuit.success_threshold   (default 2)
- core.redis.resilience.circuit.timeout_seconds     (default 60)
- core.redis.resilience.retry.max_attempts          (default 3)
- core.redis.resilience.retry.initial_delay_seconds (default 0.1)
- core.redis.resilience.retry.max_delay_seconds     (default 2.0)
- core.redis.resilience.retry.backoff_multiplier    (default 2.0)
- core.redis.resilience.retry.jitter                (default true)
"""

from __future__ import annotations

import asyncio
import random
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from rankboard.core.config import ConfigManager
from rankboard.core.logging.logger import get_logger

logger = get_logger(__name__)

_PREFIX = "core.redis.resilience"


class CircuitState(Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CircuitBreakerOpenError(Exception):
    """The circuit is OPEN; the command was not sent."""


class RedisResilience:
    """
    Wraps a zero-argument coroutine factory with the circuit and retry policy.

    Example
    -------
    >>> score = await resilience.execute(
    ...     lambda: client.zscore("rank:weekly", "jin_1"), "ZSCORE:rank:weekly"
    ... )
    """

    TRANSIENT_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError)

    def __init__(self) -> None:
        self._failure_threshold = ConfigManager.get_int(f"{_PREFIX}.circuit.failure_threshold", 5)
        self._success_threshold = ConfigManager.get_int(f"{_PREFIX}.circuit.success_threshold", 2)
        self._open_seconds = ConfigManager.get_int(f"{_PREFIX}.circuit.timeout_seconds", 60)
        self._max_attempts = ConfigManager.get_int(f"{_PREFIX}.retry.max_attempts", 3)
        self._initial_delay = ConfigManager.get_float(f"{_PREFIX}.retry.initial_delay_seconds", 0.1)
        self._max_delay = ConfigManager.get_float(f"{_PREFIX}.retry.max_delay_seconds", 2.0)
        self._multiplier = ConfigManager.get_float(f"{_PREFIX}.retry.backoff_multiplier", 2.0)
        self._jitter = ConfigManager.get_bool(f"{_PREFIX}.retry.jitter", True)

        self._state = CircuitState.CLOSED
        self._failures = 0
        self._successes = 0
        self._opened_at: Optional[float] = None
        self._lock = asyncio.Lock()

    async def execute(
        self,
        operation: Callable[[], Awaitable[Any]],
        operation_name: str,
        max_attempts: Optional[int] = None,
    ) -> Any:
        """
        Run `operation`, retrying transient failures.

        Pass `max_attempts=1` for commands that must not run twice
        (INCR, scripts, EXEC).

        Raises
        ------
        CircuitBreakerOpenError
            The circuit is OPEN.
        Exception
            Whatever the last attempt raised.
        """
        await self._admit(operation_name)

        attempts = max(1, self._max_attempts if max_attempts is None else max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                result = await operation()
            except self.TRANSIENT_ERRORS as exc:
                await self._on_failure()
                if attempt == attempts or self._state is CircuitState.OPEN:
                    logger.error(
                        "Redis command failed",
                        extra={
                            "command": operation_name,
                            "attempts": attempt,
                            "error_type": type(exc).__name__,
                            "circuit_state": self._state.value,
                        },
                    )
                    raise
                delay = self._backoff(attempt)
                logger.warning(
                    "Redis command failed, retrying",
                    extra={"command": operation_name, "attempt": attempt, "delay_seconds": round(delay, 3)},
                )
                await asyncio.sleep(delay)
            else:
                await self._on_success()
                return result

    def _backoff(self, attempt: int) -> float:
        delay = min(self._initial_delay * self._multiplier ** (attempt - 1), self._max_delay)
        if self._jitter and delay > 0:
            delay *= random.uniform(0.5, 1.0)
        return delay

    # ========================================================================
    # Circuit transitions
    # ========================================================================

    async def _admit(self, operation_name: str) -> None:
        async with self._lock:
            if self._state is not CircuitState.OPEN:
                return
            if time.monotonic() - (self._opened_at or 0.0) >= self._open_seconds:
                self._state = CircuitState.HALF_OPEN
                self._successes = 0
                logger.info("Redis circuit half-open, admitting trial command")
                return
        raise CircuitBreakerOpenError(f"Redis circuit is OPEN; {operation_name} rejected")

    async def _on_success(self) -> None:
        async with self._lock:
            self._failures = 0
            if self._state is CircuitState.HALF_OPEN:
                self._successes += 1
                if self._successes >= self._success_threshold:
                    self._close()
                    logger.info("Redis circuit closed")

    async def _on_failure(self) -> None:
        async with self._lock:
            self._failures += 1
            if self._state is CircuitState.HALF_OPEN or self._failures >= self._failure_threshold:
                self._open()

    def _open(self) -> None:
        if self._state is not CircuitState.OPEN:
            logger.warning(
                "Redis circuit opened",
                extra={"failure_count": self._failures, "open_seconds": self._open_seconds},
            )
        self._state = CircuitState.OPEN
        self._opened_at = time.monotonic()
        self._successes = 0

    def _close(self) -> None:
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._successes = 0
        self._opened_at = None

    async def reset(self) -> None:
        async with self._lock:
            self._close()

    async def force_open(self) -> None:
        async with self._lock:
            self._open()

    # ========================================================================
    # Status
    # ========================================================================

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def is_closed(self) -> bool:
        return self._state is CircuitState.CLOSED

    @property
    def is_open(self) -> bool:
        return self._state is CircuitState.OPEN

    def get_status(self) -> Dict[str, Any]:
        remaining = None
        if self._state is CircuitState.OPEN and self._opened_at is not None:
            remaining = max(0.0, self._open_seconds - (time.monotonic() - self._opened_at))
        return {
            "circuit_state": self._state.value,
            "failure_count": self._failures,
            "failure_threshold": self._failure_threshold,
            "time_until_half_open": remaining,
            "retry_max_attempts": self._max_attempts,
        }
