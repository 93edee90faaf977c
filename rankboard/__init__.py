"""
Rankboard: Redis-backed leaderboards with deterministic tie-breaking.

Members with equal scores are ordered by a fractional weight folded into
the stored score, drawn from a per-leaderboard operation counter.
"""

__version__ = "0.1.0"
