"""
Rankboard - Application Wiring
==============================

Bootstrap order
---------------
- Config validation
- ConfigManager initialization (YAML defaults)
- RedisService initialization
- RankStore, OperationCounter, LeaderboardService construction

Usage
-----
>>> service = await create_leaderboard_service()
>>> await service.submit_score("weekly", "jin", 100)
>>> await shutdown()
"""

from __future__ import annotations

from typing import Optional

from rankboard.core.config.config import Config
from rankboard.core.config.manager import ConfigManager
from rankboard.core.logging.logger import get_logger
from rankboard.core.redis.rank_store import RedisRankStore
from rankboard.core.redis.service import RedisService
from rankboard.modules.leaderboard.counter import OperationCounter
from rankboard.modules.leaderboard.service import LeaderboardService

logger = get_logger(__name__)


async def create_leaderboard_service(redis_url: Optional[str] = None) -> LeaderboardService:
    """
    Initialize infrastructure and return a ready LeaderboardService.

    Args:
        redis_url: Overrides Config.REDIS_URL

    Raises:
        ConfigInitializationError: YAML defaults could not be loaded
        StoreUnavailableError: Redis could not be reached
    """
    logger.info("========== RANKBOARD INITIALIZATION START ==========")

    Config.validate()
    logger.info("✓ Configuration validated")

    ConfigManager.initialize()
    logger.info("✓ Config manager initialized")

    await RedisService.initialize(url=redis_url)
    logger.info("✓ Redis service initialized")

    store = RedisRankStore(RedisService.client(), RedisService.get_resilience())
    counter = OperationCounter(store)
    service = LeaderboardService(store, counter)

    logger.info(
        "========== RANKBOARD READY ==========",
        extra={"decimal_places": service.decimal_places},
    )
    return service


async def shutdown() -> None:
    """Release the Redis connection pool."""
    await RedisService.shutdown()
    logger.info("✓ Redis service shut down")
