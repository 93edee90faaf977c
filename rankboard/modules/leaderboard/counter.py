"""
Per-leaderboard operation counter.

Each leaderboard owns one integer string key (`rank:<name>:operationCount`).
Every submission takes the next value and turns it into a tie-break weight.
Bookkeeping calls never raise on a missing name: they report 0 instead.
"""

from __future__ import annotations

from typing import Optional

from rankboard.core.config import ConfigManager
from rankboard.core.logging.logger import get_logger
from rankboard.modules.leaderboard import keys
from rankboard.modules.leaderboard.store import RankStore
from rankboard.modules.shared.exceptions import InvalidArgumentError

logger = get_logger(__name__)

DEFAULT_CIRCULAR_BOUND = 99_999


class OperationCounter:
    """
    Monotonic counter per leaderboard, with an optional wrap-around mode.

    Example
    -------
    >>> counter = OperationCounter(MemoryRankStore())
    >>> await counter.offer("weekly")
    1
    """

    def __init__(self, store: RankStore, circular_bound: Optional[int] = None) -> None:
        self._store = store
        self._circular_bound = circular_bound

    @staticmethod
    def counter_key(name: str) -> str:
        return keys.counter_key(name)

    @property
    def circular_bound(self) -> int:
        if self._circular_bound is not None:
            return self._circular_bound
        return ConfigManager.get_int(
            "leaderboard.counter.circular_bound", DEFAULT_CIRCULAR_BOUND
        )

    async def peek(self, name: Optional[str]) -> int:
        """Current value without incrementing. 0 when unset or unreadable."""
        if not name:
            return 0

        key = self.counter_key(name)
        raw = await self._store.get(key)
        if raw is None:
            return 0

        try:
            return int(raw)
        except (TypeError, ValueError):
            logger.warning(
                "Operation counter holds a non-integer value, reporting 0",
                extra={"key": key, "value": repr(raw)},
            )
            return 0

    async def offer(self, name: Optional[str]) -> int:
        """Atomically increment and return the new value."""
        if not name:
            return 0
        return await self._store.incr(self.counter_key(name))

    async def offer_circular(self, name: Optional[str], bound: Optional[int] = None) -> int:
        """
        Atomically increment, wrapping back to 1 once the value passes `bound`.

        The wrap happens server-side in the same step as the increment, so
        concurrent callers never observe a value above `bound`.

        Raises
        ------
        InvalidArgumentError
            If `bound` is less than 1.
        """
        if not name:
            return 0

        limit = self.circular_bound if bound is None else bound
        if limit < 1:
            raise InvalidArgumentError("bound", f"must be at least 1, got {limit}")

        value = await self._store.incr_circular(self.counter_key(name), limit)
        if value == 1:
            logger.debug(
                "Operation counter started a new cycle",
                extra={"leaderboard": name, "bound": limit},
            )
        return value

    async def init(self, name: Optional[str], value: int) -> None:
        """Overwrite the counter unconditionally. Intended for admin tooling and tests."""
        if not name:
            return
        await self._store.set(self.counter_key(name), str(int(value)))
        logger.info(
            "Operation counter initialized",
            extra={"leaderboard": name, "value": int(value)},
        )
