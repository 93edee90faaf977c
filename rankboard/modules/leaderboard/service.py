"""
Leaderboard Service
===================

Purpose
-------
Record scores into named leaderboards and answer score, rank, and range
queries, with a deterministic order for members on equal scores.

Domain
------
- Fold a tie-break weight into each stored score (see `weights`)
- Replace a member's previous score and weight on resubmission; nothing accumulates
- Strip weights back out of every score handed to callers
- Translate between 1-based caller ranks and 0-based store ranks

Invariants
----------
- Stored score = latest raw score + latest weight, with
  0 <= weight < 10^-decimal_places (enforced by `join_rank`)
- Absent members and leaderboards are reported as None (or [] for ranges),
  never as 0 or -1
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from rankboard.core.config import ConfigManager
from rankboard.core.config.config import Config
from rankboard.core.exceptions import ConfigurationError
from rankboard.core.logging.logger import LogContext, get_logger
from rankboard.modules.leaderboard import keys, weights
from rankboard.modules.leaderboard.counter import OperationCounter
from rankboard.modules.leaderboard.store import RankStore
from rankboard.modules.shared.exceptions import InvalidArgumentError

logger = get_logger(__name__)


@dataclass(frozen=True)
class RankEntry:
    """One row of a ranked listing. `score` is the display value."""

    member: str
    score: Decimal


class LeaderboardService:
    """
    Stateless facade over a RankStore.

    Public Methods
    --------------
    - join_rank() -> Record a raw score with an explicit tie-break weight
    - submit_score() -> Record a raw score, drawing the weight from the counter
    - get_rank_score() -> Display score of a member
    - get_rank_number() -> 1-based rank of a member
    - get_rank_range() -> Ranked slice of a leaderboard
    """

    def __init__(
        self,
        store: RankStore,
        counter: Optional[OperationCounter] = None,
        decimal_places: Optional[int] = None,
    ) -> None:
        if decimal_places is None:
            decimal_places = ConfigManager.get_int(
                "leaderboard.decimal_places", Config.RANK_DECIMAL_PLACES
            )
        if not weights.MIN_DECIMAL_PLACES <= decimal_places <= weights.MAX_DECIMAL_PLACES:
            raise ConfigurationError(
                "leaderboard.decimal_places",
                f"must be between {weights.MIN_DECIMAL_PLACES} and "
                f"{weights.MAX_DECIMAL_PLACES}, got {decimal_places}",
            )

        self._store = store
        self._counter = counter or OperationCounter(store)
        self._decimal_places = decimal_places

    @property
    def decimal_places(self) -> int:
        return self._decimal_places

    @property
    def counter(self) -> OperationCounter:
        return self._counter

    @staticmethod
    def rank_key(name: str) -> str:
        return keys.rank_key(name)

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def join_rank(
        self,
        name: str,
        member: str,
        raw_score: weights.Number,
        weight: weights.Number,
    ) -> Decimal:
        """
        Set a member's score to `raw_score` with tie-break `weight`.

        Whatever the member held before, weight included, is replaced in one
        atomic update, so the displayed score is exactly the latest
        `raw_score` (truncated to `decimal_places`) and old weights never
        compound.

        Args:
            name: Leaderboard name
            member: Member id
            raw_score: Score to display
            weight: Tie-break fraction in [0, 10^-decimal_places)

        Returns:
            The member's new display score.

        Raises:
            InvalidArgumentError: Empty name or member, non-numeric raw_score,
                or a weight that would spill into the displayed digits
            ConcurrentUpdateError: Lost too many races to concurrent writers
            StoreUnavailableError: Store could not be reached
        """
        self._require_identifiers(name, member)
        raw = self._require_score(raw_score)
        fraction = self._require_weight(weight)
        places = self._decimal_places

        if not weights.fits_precision_budget(raw, fraction):
            logger.warning(
                "Composite score exceeds double precision; tie order may be lost",
                extra={
                    "leaderboard": name,
                    "member": member,
                    "digits": weights.precision_budget(raw, fraction),
                },
            )

        replaced: List[Decimal] = []

        def next_score(current: Optional[float]) -> float:
            replaced.append(weights.extract_weight(current, places))
            return float(raw + fraction)

        async with LogContext(leaderboard=name, member=member, operation="join_rank"):
            stored = await self._store.update_score(self.rank_key(name), member, next_score)
            display = weights.to_display(stored, places)

            logger.debug(
                "Score recorded",
                extra={
                    "display_score": str(display),
                    "weight": str(fraction),
                    "replaced_weight": str(replaced[-1]) if replaced else None,
                },
            )
            return display

    async def submit_score(
        self,
        name: str,
        member: str,
        raw_score: weights.Number,
        circular: bool = False,
    ) -> Decimal:
        """
        Record a score with a weight drawn from the leaderboard's counter.

        The most recent submission ranks first among equal scores. With
        `circular=True` the counter wraps at the configured bound.
        """
        self._require_identifiers(name, member)
        self._require_score(raw_score)

        if circular:
            counter_value = await self._counter.offer_circular(name)
        else:
            counter_value = await self._counter.offer(name)

        weight = weights.compute_weight(counter_value, self._decimal_places)
        return await self.join_rank(name, member, raw_score, weight)

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def get_rank_score(self, name: str, member: str) -> Optional[Decimal]:
        """Display score of `member`, or None if it is not on the leaderboard."""
        if not name or not member:
            return None

        score = await self._store.zscore(self.rank_key(name), member)
        if score is None:
            return None
        return weights.to_display(score, self._decimal_places)

    async def get_rank_number(self, name: str, member: str) -> Optional[int]:
        """1-based rank of `member`, or None if it is not on the leaderboard."""
        if not name or not member:
            return None

        rank = await self._store.zrevrank(self.rank_key(name), member)
        if rank is None:
            return None
        return rank + 1

    async def get_rank_range(self, name: str, start: int, end: int) -> List[RankEntry]:
        """
        Members ranked `start` through `end` (1-based, inclusive).

        `start` below 1 is treated as 1. An unknown leaderboard, or `end`
        before `start`, gives an empty list.
        """
        if not name:
            return []

        start = max(start, 1)
        if end < start:
            return []

        rows = await self._store.zrevrange_with_scores(self.rank_key(name), start - 1, end - 1)
        return [
            RankEntry(member=member, score=weights.to_display(score, self._decimal_places))
            for member, score in rows
        ]

    # ========================================================================
    # VALIDATION
    # ========================================================================

    @staticmethod
    def _require_identifiers(name: str, member: str) -> None:
        if not name:
            raise InvalidArgumentError("name", "leaderboard name must be a non-empty string")
        if not member:
            raise InvalidArgumentError("member", "member id must be a non-empty string")

    def _require_score(self, raw_score: weights.Number) -> Decimal:
        try:
            value = weights.truncate_score(raw_score, self._decimal_places)
        except (TypeError, ValueError, ArithmeticError) as exc:
            raise InvalidArgumentError("raw_score", f"not a number: {raw_score!r}") from exc
        if not value.is_finite():
            raise InvalidArgumentError("raw_score", f"must be finite, got {raw_score!r}")
        return value

    def _require_weight(self, weight: weights.Number) -> Decimal:
        if not weights.is_valid_weight(weight):
            raise InvalidArgumentError("weight", f"must be in (-1, 1), got {weight!r}")
        fraction = weights.to_decimal(weight)
        if not weights.fits_below_display(fraction, self._decimal_places):
            raise InvalidArgumentError(
                "weight",
                f"must be in [0, 1e-{self._decimal_places}) to stay below the displayed digits, "
                f"got {weight!r}",
            )
        return fraction
