"""
Integration Tests for the Redis-backed leaderboard
==================================================

Purpose
-------
Run the leaderboard against a real Redis (testcontainers) to cover what the
in-memory store cannot: server-side tie ordering, the circular-counter Lua
script, and WATCH/MULTI/EXEC contention.

Testing Strategy
----------------
- Each test gets an emptied database
- Skipped automatically when Docker is unavailable
"""

import asyncio
from decimal import Decimal

import pytest

from rankboard.app import create_leaderboard_service, shutdown
from rankboard.core.redis.rank_store import RedisRankStore
from rankboard.core.redis.resilience import RedisResilience
from rankboard.core.redis.service import RedisService
from rankboard.modules.leaderboard.counter import OperationCounter
from rankboard.modules.leaderboard.service import LeaderboardService
from rankboard.modules.leaderboard.weights import compute_weight, extract_weight


# ============================================================================
# KEY LAYOUT & COUNTER
# ============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestOperationCounter:
    """Counter behavior on a real server."""

    async def test_counter_key_layout(self, redis_leaderboard, redis_client):
        await redis_leaderboard.counter.offer("age")
        assert await redis_client.get("rank:age:operationCount") == "1"

    async def test_circular_wrap_is_server_side(self, redis_store, redis_client):
        counter = OperationCounter(redis_store)
        await counter.init("board", 99_998)

        assert await counter.offer_circular("board") == 99_999
        assert await counter.offer_circular("board") == 1
        assert await redis_client.get("rank:board:operationCount") == "1"

    async def test_concurrent_circular_offers_stay_in_bound(self, redis_store):
        counter = OperationCounter(redis_store)

        values = await asyncio.gather(
            *(counter.offer_circular("board", bound=10) for _ in range(50))
        )

        assert all(1 <= value <= 10 for value in values)
        assert sorted(values) == sorted(list(range(1, 11)) * 5)


# ============================================================================
# LEADERBOARD
# ============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestLeaderboard:
    """Submission and queries through RedisRankStore."""

    async def test_ties_list_most_recent_first(self, redis_leaderboard):
        for member in ("jin_1", "jin_2", "jin_3"):
            await redis_leaderboard.submit_score("board", member, 100)

        entries = await redis_leaderboard.get_rank_range("board", 1, 10)

        assert [entry.member for entry in entries] == ["jin_3", "jin_2", "jin_1"]
        assert [str(entry.score) for entry in entries] == ["100.00"] * 3

    async def test_round_trip_and_weight_replacement(self, redis_leaderboard, redis_client):
        w1 = compute_weight(7, 2)
        w2 = compute_weight(3, 2)

        assert await redis_leaderboard.join_rank("board", "m1", 100, w1) == Decimal("100")
        assert await redis_leaderboard.get_rank_score("board", "m1") == Decimal("100")

        await redis_leaderboard.join_rank("board", "m1", 50, w2)
        stored = await redis_client.zscore("rank:board", "m1")

        assert extract_weight(stored, 2) == w2
        assert await redis_leaderboard.get_rank_score("board", "m1") == Decimal("50")

    @pytest.mark.parametrize(
        "raw_score, weight",
        [(Decimal("100"), compute_weight(2, 2)), (Decimal("12.5"), compute_weight(99_999, 2))],
    )
    async def test_existing_member_displays_latest_raw(self, redis_leaderboard, raw_score, weight):
        await redis_leaderboard.join_rank("board", "M", 100, compute_weight(1, 2))

        await redis_leaderboard.join_rank("board", "M", raw_score, weight)

        assert await redis_leaderboard.get_rank_score("board", "M") == raw_score

    async def test_absent_member_and_board(self, redis_leaderboard):
        assert await redis_leaderboard.get_rank_number("board", "nobody") is None
        assert await redis_leaderboard.get_rank_score("board", "nobody") is None
        assert await redis_leaderboard.get_rank_range("unknown", 1, 10) == []

    async def test_rank_numbers(self, redis_leaderboard):
        await redis_leaderboard.submit_score("board", "low", 10)
        await redis_leaderboard.submit_score("board", "high", 20)

        assert await redis_leaderboard.get_rank_number("board", "high") == 1
        assert await redis_leaderboard.get_rank_number("board", "low") == 2

    async def test_concurrent_joins_leave_one_clean_weight(self, redis_client):
        store = RedisRankStore(redis_client, RedisResilience(), cas_max_attempts=64)
        service = LeaderboardService(store, decimal_places=2)
        submitted = {compute_weight(index, 2) for index in range(1, 11)}

        await asyncio.gather(
            *(service.join_rank("board", "m1", 1, weight) for weight in submitted)
        )

        stored = await redis_client.zscore("rank:board", "m1")
        assert extract_weight(stored, 2) in submitted
        assert await service.get_rank_score("board", "m1") == Decimal("1")

    async def test_same_score_members_keep_distinct_ranks(self, redis_leaderboard):
        """Alternating resubmissions keep a strict total order."""
        members = ["m1", "m2", "m3", "m4"]
        for round_index in range(6):
            order = members if round_index % 2 == 0 else list(reversed(members))
            for member in order:
                await redis_leaderboard.submit_score("board", member, 1, circular=True)

        entries = await redis_leaderboard.get_rank_range("board", 1, 4)
        ranks = [await redis_leaderboard.get_rank_number("board", e.member) for e in entries]

        assert ranks == [1, 2, 3, 4]
        assert {entry.score for entry in entries} == {Decimal("1.00")}


# ============================================================================
# APPLICATION WIRING
# ============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestApplicationWiring:
    """create_leaderboard_service() against the container."""

    async def test_create_and_shutdown(self, redis_url, redis_client):
        service = await create_leaderboard_service(redis_url=redis_url)
        try:
            assert await RedisService.health_check() is True
            await service.submit_score("wired", "m1", 42)
            assert await service.get_rank_score("wired", "m1") == Decimal("42")
        finally:
            await shutdown()

        assert RedisService.get_status()["initialized"] is False
