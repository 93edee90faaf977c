"""
Redis infrastructure for Rankboard.

- **service.py**: singleton async client lifecycle and health
- **resilience.py**: circuit breaker and retry policy
- **rank_store.py**: RankStore implementation over Redis
"""

from rankboard.core.redis.rank_store import RedisRankStore
from rankboard.core.redis.resilience import (
    CircuitBreakerOpenError,
    CircuitState,
    RedisResilience,
)
from rankboard.core.redis.service import RedisService

__all__ = [
    "RedisService",
    "RedisResilience",
    "RedisRankStore",
    "CircuitState",
    "CircuitBreakerOpenError",
]
