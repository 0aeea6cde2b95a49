"""Shared cache store: versioned read-through caching and rate admission."""

from .coordinator import INITIAL_VERSION, CacheCoordinator
from .rate_limit import RateDecision, RateLimiter, RatePolicy, build_policies
from .store import CacheStore

__all__ = [
    "CacheCoordinator",
    "CacheStore",
    "INITIAL_VERSION",
    "RateDecision",
    "RateLimiter",
    "RatePolicy",
    "build_policies",
]
