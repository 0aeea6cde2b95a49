"""Distributed fixed-window rate limiter.

All service instances share their buckets through the cache store, so a
quota holds across the whole deployment rather than per process. Each
policy (scope) owns one bucket per actor, keyed ``<scope>:<actorId>``; the
bucket is a counter created with the window as its expiry, so the window
resets when the key expires.

``try_consume`` is a plain boolean gate. Mapping a refusal to an HTTP 429
is the caller's job. A refusal caused by an unreachable store is marked
``degraded`` so callers can report an outage instead of a quota.
"""

from dataclasses import dataclass

from loguru import logger

from social_server.constants import SCOPE_GLOBAL, SCOPE_MEDIA_UPLOAD, SCOPE_POST_CREATE, SCOPE_REGISTRATION
from social_server.exceptions import CacheStoreError
from social_server.settings import Settings

from .keys import bucket_key
from .store import CacheStore


@dataclass(frozen=True)
class RatePolicy:
    """Quota of ``points`` per fixed window of ``window_seconds`` for one scope."""

    scope: str
    points: int
    window_seconds: float

    @property
    def window_ms(self) -> int:
        return max(int(self.window_seconds * 1000), 1)


@dataclass(frozen=True)
class RateDecision:
    """Outcome of one consumption attempt."""

    allowed: bool
    remaining: int
    reset_after_ms: int
    degraded: bool = False

    @property
    def retry_after_seconds(self) -> int:
        """Whole seconds until the window resets, for ``Retry-After`` headers."""
        return max(-(-self.reset_after_ms // 1000), 1)


def build_policies(settings: Settings) -> list[RatePolicy]:
    """Build the deployment's rate policies from settings."""
    return [
        RatePolicy(SCOPE_GLOBAL, settings.global_rate_points, settings.global_rate_window),
        RatePolicy(SCOPE_POST_CREATE, settings.post_create_rate_points, settings.post_create_rate_window),
        RatePolicy(SCOPE_MEDIA_UPLOAD, settings.media_upload_rate_points, settings.media_upload_rate_window),
        RatePolicy(SCOPE_REGISTRATION, settings.registration_rate_points, settings.registration_rate_window),
    ]


class RateLimiter:
    """Admission controller over a set of policies sharing one atomic primitive."""

    def __init__(self, store: CacheStore, policies: list[RatePolicy], fail_open: bool = False) -> None:
        """Create the limiter.

        Args:
            store: Shared cache store holding the buckets
            policies: One policy per scope
            fail_open: Admit requests when the store is unavailable (default: refuse)
        """
        self._store = store
        self._policies = {policy.scope: policy for policy in policies}
        self._fail_open = fail_open

    def policy(self, scope: str) -> RatePolicy:
        """Get the policy of a scope.

        Raises:
            KeyError: If no policy is configured for the scope
        """
        return self._policies[scope]

    async def consume(self, scope: str, actor_id: str, cost: int = 1, fail_open: bool | None = None) -> RateDecision:
        """Consume ``cost`` points from the actor's bucket in ``scope``.

        Never raises on quota exhaustion or store failure; both come back as
        a decision.

        Args:
            scope: Policy scope
            actor_id: Actor id or client IP owning the bucket
            cost: Points to consume
            fail_open: Overrides the limiter-wide store-failure decision for this call
        """
        if fail_open is None:
            fail_open = self._fail_open
        policy = self.policy(scope)
        try:
            consumed, reset_after_ms = await self._store.consume(bucket_key(scope, actor_id), cost, policy.window_ms)
        except CacheStoreError as e:
            logger.error(f"Rate limiter store unavailable for {scope}, {'admitting' if fail_open else 'refusing'}: {e}")
            return RateDecision(allowed=fail_open, remaining=0, reset_after_ms=policy.window_ms, degraded=True)

        allowed = consumed <= policy.points
        if not allowed:
            logger.warning(f"Rate limit exceeded for {scope}:{actor_id}")
        return RateDecision(allowed=allowed, remaining=max(policy.points - consumed, 0), reset_after_ms=reset_after_ms)

    async def try_consume(self, scope: str, actor_id: str, cost: int = 1, fail_open: bool | None = None) -> bool:
        """Return True if the actor may proceed in ``scope``."""
        return (await self.consume(scope, actor_id, cost, fail_open)).allowed
