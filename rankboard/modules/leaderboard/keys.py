"""Redis key layout for leaderboards."""

KEY_RANK_PREFIX = "rank:"
KEY_OPERATION_COUNT_SUFFIX = ":operationCount"


def rank_key(name: str) -> str:
    """Sorted-set key holding a leaderboard's composite scores."""
    return f"{KEY_RANK_PREFIX}{name}"


def counter_key(name: str) -> str:
    """String key holding a leaderboard's operation counter."""
    return f"{KEY_RANK_PREFIX}{name}{KEY_OPERATION_COUNT_SUFFIX}"
