"""Shared domain primitives for Rankboard modules."""

from rankboard.modules.shared.exceptions import (
    ConcurrentUpdateError,
    InvalidArgumentError,
    RankboardDomainException,
)

__all__ = [
    "RankboardDomainException",
    "InvalidArgumentError",
    "ConcurrentUpdateError",
]
