"""
Process-wide owner of the async Redis client.

One connection pool and one RedisResilience are shared by every rank store
in the process. Connection settings come from Config (REDIS_URL,
REDIS_SOCKET_TIMEOUT, REDIS_MAX_CONNECTIONS) and from the `core.redis.*`
YAML keys.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError

from rankboard.core.config import ConfigManager
from rankboard.core.config.config import Config
from rankboard.core.exceptions import StoreUnavailableError
from rankboard.core.logging.logger import get_logger
from rankboard.core.redis.resilience import RedisResilience

logger = get_logger(__name__)


def _scheme(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    return url.split("://", 1)[0] if "://" in url else "unknown"


class RedisService:
    """
    Usage
    -----
    >>> await RedisService.initialize()
    >>> store = RedisRankStore(RedisService.client(), RedisService.get_resilience())
    >>> await RedisService.shutdown()
    """

    _client: Optional[AsyncRedis] = None
    _resilience: Optional[RedisResilience] = None
    _url: Optional[str] = None
    _healthy: bool = False
    _lock = asyncio.Lock()

    @classmethod
    async def initialize(cls, url: Optional[str] = None) -> None:
        """
        Connect and PING. A second call is a no-op.

        Raises
        ------
        StoreUnavailableError
            PING failed; the half-built client is closed first.
        """
        async with cls._lock:
            if cls._client is not None:
                return

            target = url or Config.REDIS_URL
            client = AsyncRedis.from_url(
                target,
                socket_timeout=Config.REDIS_SOCKET_TIMEOUT,
                max_connections=Config.REDIS_MAX_CONNECTIONS,
                encoding=str(ConfigManager.get("core.redis.encoding", "utf-8")),
                decode_responses=ConfigManager.get_bool("core.redis.decode_responses", True),
                health_check_interval=ConfigManager.get_int(
                    "core.redis.health_check_interval_seconds", 30
                ),
                # Retries belong to RedisResilience
                retry_on_timeout=False,
            )
            try:
                await client.ping()
            except (RedisError, OSError) as exc:
                await client.aclose()
                logger.critical(
                    "Redis unreachable at startup",
                    extra={"url_scheme": _scheme(target), "error_type": type(exc).__name__},
                )
                raise StoreUnavailableError("initialize", exc) from exc

            cls._client = client
            cls._resilience = RedisResilience()
            cls._url = target
            cls._healthy = True
            logger.info("Redis connected", extra={"url_scheme": _scheme(target)})

    @classmethod
    async def shutdown(cls) -> None:
        client, cls._client = cls._client, None
        cls._resilience = None
        cls._url = None
        cls._healthy = False
        if client is None:
            return
        try:
            await client.aclose()
        except (RedisError, OSError) as exc:
            logger.warning("Error closing Redis client", extra={"error_type": type(exc).__name__})
        else:
            logger.info("Redis connection closed")

    @classmethod
    async def health_check(cls) -> bool:
        """PING; never raises."""
        if cls._client is None:
            cls._healthy = False
            return False
        try:
            cls._healthy = bool(await cls._client.ping())
        except (RedisError, OSError) as exc:
            logger.warning("Redis health check failed", extra={"error_type": type(exc).__name__})
            cls._healthy = False
        return cls._healthy

    @classmethod
    def is_healthy(cls) -> bool:
        return cls._healthy

    @classmethod
    def get_status(cls) -> Dict[str, Any]:
        return {
            "initialized": cls._client is not None,
            "healthy": cls._healthy,
            "url_scheme": _scheme(cls._url),
            "resilience": cls._resilience.get_status() if cls._resilience else None,
        }

    @classmethod
    def client(cls) -> AsyncRedis:
        if cls._client is None:
            raise RuntimeError("RedisService.initialize() has not been awaited")
        return cls._client

    @classmethod
    def get_resilience(cls) -> RedisResilience:
        if cls._resilience is None:
            raise RuntimeError("RedisService.initialize() has not been awaited")
        return cls._resilience
