"""
Rank store abstraction.

`RankStore` is the narrow slice of sorted-set and string commands the
leaderboard needs. `RedisRankStore` (rankboard.core.redis.rank_store) is the
production implementation; `MemoryRankStore` below mirrors Redis ordering
rules in-process for unit tests and local experiments.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Protocol, Tuple, runtime_checkable

ScoreUpdate = Callable[[Optional[float]], float]


@runtime_checkable
class RankStore(Protocol):
    """Async sorted-set / string-key primitives used by the leaderboard."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...

    async def incr(self, key: str) -> int:
        ...

    async def incr_by(self, key: str, amount: int) -> int:
        ...

    async def incr_circular(self, key: str, bound: int) -> int:
        """INCR, resetting to 1 in the same step once the value exceeds `bound`."""
        ...

    async def zadd(self, key: str, member: str, score: float) -> None:
        ...

    async def zincrby(self, key: str, member: str, amount: float) -> float:
        ...

    async def zscore(self, key: str, member: str) -> Optional[float]:
        ...

    async def zrevrank(self, key: str, member: str) -> Optional[int]:
        """0-based rank in descending order, None when absent."""
        ...

    async def zrevrange_with_scores(
        self, key: str, start: int, end: int
    ) -> List[Tuple[str, float]]:
        """Inclusive 0-based slice in descending order. Negative indices count from the end."""
        ...

    async def update_score(self, key: str, member: str, compute: ScoreUpdate) -> float:
        """
        Atomically replace a member's score with `compute(current)`.

        `current` is None when the member is absent. Returns the stored score.
        """
        ...


class MemoryRankStore:
    """
    In-process RankStore.

    Ordering matches ZREVRANGE: score descending, then member descending
    (byte order) on equal scores.
    """

    def __init__(self) -> None:
        self._strings: Dict[str, str] = {}
        self._zsets: Dict[str, Dict[str, float]] = {}

    # --- string keys -----------------------------------------------------

    async def get(self, key: str) -> Optional[str]:
        return self._strings.get(key)

    async def set(self, key: str, value: str) -> None:
        self._strings[key] = str(value)

    async def incr(self, key: str) -> int:
        return await self.incr_by(key, 1)

    async def incr_by(self, key: str, amount: int) -> int:
        raw = self._strings.get(key, "0")
        try:
            current = int(raw)
        except ValueError as exc:
            # Same failure Redis reports for a non-integer value
            raise ValueError("value is not an integer or out of range") from exc
        current += amount
        self._strings[key] = str(current)
        return current

    async def incr_circular(self, key: str, bound: int) -> int:
        value = await self.incr(key)
        if value > bound:
            self._strings[key] = "1"
            return 1
        return value

    # --- sorted sets -----------------------------------------------------

    async def zadd(self, key: str, member: str, score: float) -> None:
        self._zsets.setdefault(key, {})[member] = float(score)

    async def zincrby(self, key: str, member: str, amount: float) -> float:
        zset = self._zsets.setdefault(key, {})
        zset[member] = zset.get(member, 0.0) + float(amount)
        return zset[member]

    async def zscore(self, key: str, member: str) -> Optional[float]:
        return self._zsets.get(key, {}).get(member)

    async def zrevrank(self, key: str, member: str) -> Optional[int]:
        if member not in self._zsets.get(key, {}):
            return None
        for index, (name, _) in enumerate(self._ordered(key)):
            if name == member:
                return index
        return None

    async def zrevrange_with_scores(
        self, key: str, start: int, end: int
    ) -> List[Tuple[str, float]]:
        ordered = self._ordered(key)
        size = len(ordered)
        if start < 0:
            start = max(size + start, 0)
        if end < 0:
            end = size + end
        if start >= size or start > end:
            return []
        return ordered[start : min(end, size - 1) + 1]

    async def update_score(self, key: str, member: str, compute: ScoreUpdate) -> float:
        # No await between read and write, so this is atomic on one event loop
        zset = self._zsets.setdefault(key, {})
        new_score = float(compute(zset.get(member)))
        zset[member] = new_score
        return new_score

    def _ordered(self, key: str) -> List[Tuple[str, float]]:
        entries = list(self._zsets.get(key, {}).items())
        entries.sort(key=lambda item: (item[1], item[0].encode("utf-8")), reverse=True)
        return entries
