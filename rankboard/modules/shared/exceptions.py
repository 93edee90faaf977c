"""
Errors raised by leaderboard services to their callers.

`InvalidArgumentError` means the call can never succeed as written;
`ConcurrentUpdateError` means it lost to other writers and may be retried.
"""

from __future__ import annotations

from rankboard.core.exceptions import ErrorSeverity, RankboardError


class RankboardDomainException(RankboardError):
    pass


class InvalidArgumentError(RankboardDomainException):
    """Empty leaderboard or member id, non-numeric score, or unusable weight."""

    severity = ErrorSeverity.INFO
    code = "INVALID_ARGUMENT"

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"invalid {field}: {message}", field=field)
        self.field = field


class ConcurrentUpdateError(RankboardDomainException):
    """Every WATCH/EXEC round for one member's score was invalidated by another writer."""

    severity = ErrorSeverity.WARNING
    retryable = True
    code = "CONCURRENT_UPDATE"

    def __init__(self, leaderboard: str, member: str, attempts: int) -> None:
        super().__init__(
            f"score update for {member!r} on {leaderboard!r} lost {attempts} races",
            leaderboard=leaderboard,
            member=member,
            attempts=attempts,
        )
        self.leaderboard = leaderboard
        self.member = member
        self.attempts = attempts
