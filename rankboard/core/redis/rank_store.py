"""
RedisRankStore: RankStore implementation over redis.asyncio.

Every command runs through RedisResilience. Redis errors, socket errors and
an open circuit all surface as StoreUnavailableError, so leaderboard code
never sees redis-py exception types.

Idempotent commands (GET, SET, ZADD, reads) use the configured retry policy.
Non-idempotent ones (INCR, INCRBY, ZINCRBY, the circular-counter script, and
each WATCH/MULTI/EXEC round) run exactly once per call.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, List, Optional, Tuple

from redis.asyncio.client import Redis as AsyncRedis  # type: ignore[misc]
from redis.exceptions import RedisError, WatchError

from rankboard.core.config import ConfigManager
from rankboard.core.exceptions import StoreUnavailableError
from rankboard.core.logging.logger import get_logger
from rankboard.core.redis.resilience import CircuitBreakerOpenError, RedisResilience
from rankboard.modules.shared.exceptions import ConcurrentUpdateError

logger = get_logger(__name__)

# KEYS[1] = counter key, ARGV[1] = inclusive upper bound
_LUA_INCR_CIRCULAR_SCRIPT = """
local value = redis.call('INCR', KEYS[1])
if value > tonumber(ARGV[1]) then
    redis.call('SET', KEYS[1], 1)
    return 1
end
return value
"""


class RedisRankStore:
    """
    Redis-backed rank store.

    Example
    -------
    >>> await RedisService.initialize()
    >>> store = RedisRankStore(RedisService.client(), RedisService.get_resilience())
    >>> await store.zadd("rank:weekly", "jin", 100.01)
    """

    def __init__(
        self,
        client: AsyncRedis,
        resilience: RedisResilience,
        cas_max_attempts: Optional[int] = None,
    ) -> None:
        self._client = client
        self._resilience = resilience
        self._cas_max_attempts = max(
            1,
            cas_max_attempts
            if cas_max_attempts is not None
            else ConfigManager.get_int("leaderboard.cas.max_attempts", 16),
        )
        self._incr_circular_script = client.register_script(_LUA_INCR_CIRCULAR_SCRIPT)

    # ═══════════════════════════════════════════════════════════════════════
    # EXECUTION
    # ═══════════════════════════════════════════════════════════════════════

    async def _run(
        self,
        operation: Callable[[], Awaitable[Any]],
        command: str,
        key: str,
        max_attempts: Optional[int] = None,
    ) -> Any:
        try:
            return await self._resilience.execute(
                operation=operation,
                operation_name=f"{command}:{key}",
                max_attempts=max_attempts,
            )
        except WatchError:
            raise
        except (RedisError, OSError, CircuitBreakerOpenError) as exc:
            logger.error(
                "Rank store command failed",
                extra={
                    "command": command,
                    "key": key,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            raise StoreUnavailableError(command, exc, key=key) from exc

    # ═══════════════════════════════════════════════════════════════════════
    # STRING KEYS
    # ═══════════════════════════════════════════════════════════════════════

    async def get(self, key: str) -> Optional[str]:
        value = await self._run(lambda: self._client.get(key), "GET", key)
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set(self, key: str, value: str) -> None:
        await self._run(lambda: self._client.set(key, value), "SET", key)

    async def incr(self, key: str) -> int:
        value = await self._run(lambda: self._client.incr(key), "INCR", key, max_attempts=1)
        return int(value)

    async def incr_by(self, key: str, amount: int) -> int:
        value = await self._run(
            lambda: self._client.incrby(key, amount), "INCRBY", key, max_attempts=1
        )
        return int(value)

    async def incr_circular(self, key: str, bound: int) -> int:
        value = await self._run(
            lambda: self._incr_circular_script(keys=[key], args=[bound]),
            "EVALSHA",
            key,
            max_attempts=1,
        )
        return int(value)

    # ═══════════════════════════════════════════════════════════════════════
    # SORTED SETS
    # ═══════════════════════════════════════════════════════════════════════

    async def zadd(self, key: str, member: str, score: float) -> None:
        await self._run(lambda: self._client.zadd(key, {member: score}), "ZADD", key)

    async def zincrby(self, key: str, member: str, amount: float) -> float:
        value = await self._run(
            lambda: self._client.zincrby(key, amount, member),
            "ZINCRBY",
            key,
            max_attempts=1,
        )
        return float(value)

    async def zscore(self, key: str, member: str) -> Optional[float]:
        value = await self._run(lambda: self._client.zscore(key, member), "ZSCORE", key)
        return None if value is None else float(value)

    async def zrevrank(self, key: str, member: str) -> Optional[int]:
        value = await self._run(lambda: self._client.zrevrank(key, member), "ZREVRANK", key)
        return None if value is None else int(value)

    async def zrevrange_with_scores(
        self, key: str, start: int, end: int
    ) -> List[Tuple[str, float]]:
        rows = await self._run(
            lambda: self._client.zrevrange(key, start, end, withscores=True),
            "ZREVRANGE",
            key,
        )
        entries: List[Tuple[str, float]] = []
        for member, score in rows or []:
            if isinstance(member, bytes):
                member = member.decode("utf-8")
            entries.append((member, float(score)))
        return entries

    # ═══════════════════════════════════════════════════════════════════════
    # OPTIMISTIC UPDATE
    # ═══════════════════════════════════════════════════════════════════════

    async def update_score(
        self,
        key: str,
        member: str,
        compute: Callable[[Optional[float]], float],
    ) -> float:
        """
        WATCH the sorted set, read the member's score, ZADD `compute(current)`.

        Raises
        ------
        ConcurrentUpdateError
            If every attempt lost the race to another writer.
        StoreUnavailableError
            If Redis cannot be reached.
        """
        for attempt in range(1, self._cas_max_attempts + 1):
            try:
                return await self._run(
                    lambda: self._compare_and_set(key, member, compute),
                    "ZCAS",
                    key,
                    max_attempts=1,
                )
            except WatchError:
                logger.debug(
                    "Optimistic score update lost a race, retrying",
                    extra={"key": key, "member": member, "attempt": attempt},
                )

        logger.warning(
            "Optimistic score update exhausted its attempts",
            extra={"key": key, "member": member, "attempts": self._cas_max_attempts},
        )
        raise ConcurrentUpdateError(key, member, self._cas_max_attempts)

    async def _compare_and_set(
        self,
        key: str,
        member: str,
        compute: Callable[[Optional[float]], float],
    ) -> float:
        async with self._client.pipeline(transaction=True) as pipe:
            await pipe.watch(key)
            current = await pipe.zscore(key, member)
            new_score = float(compute(None if current is None else float(current)))
            pipe.multi()
            pipe.zadd(key, {member: new_score})
            await pipe.execute()
        return new_score
