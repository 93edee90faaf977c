"""
Leaderboard module.

- **weights.py**: tie-break weight encoding (pure)
- **counter.py**: per-leaderboard operation counter
- **store.py**: RankStore protocol and in-memory implementation
- **service.py**: submissions and rank queries
"""

from rankboard.modules.leaderboard.counter import OperationCounter
from rankboard.modules.leaderboard.keys import counter_key, rank_key
from rankboard.modules.leaderboard.service import LeaderboardService, RankEntry
from rankboard.modules.leaderboard.store import MemoryRankStore, RankStore

__all__ = [
    "LeaderboardService",
    "RankEntry",
    "OperationCounter",
    "RankStore",
    "MemoryRankStore",
    "rank_key",
    "counter_key",
]
