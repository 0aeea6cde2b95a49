"""API dependencies for FastAPI endpoints."""

from collections.abc import Awaitable, Callable
from typing import TypeVar

from fastapi import HTTPException, Request, status

from social_server.cache import RateDecision, RateLimiter
from social_server.constants import ACTOR_HEADER

T = TypeVar("T")

# Methods admitted by the global limiter even when its store is unreachable
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def service[T](service_type: type[T]) -> Callable[[Request], T]:
    """FastAPI dependency that provides a service by type.

    Args:
        service_type: The type of service to retrieve from the registry

    Returns:
        A callable that returns the requested service instance

    Example:
        ```python
        @router.get("/endpoint")
        async def endpoint(service: MyService = Depends(service(MyService))):
            return await service.do_something()
        ```
    """

    def get_service(request: Request) -> T:
        return request.app.state.services.get(service_type)

    return get_service


def get_actor_id(request: Request) -> str:
    """Return the authenticated actor forwarded by the gateway.

    Raises:
        HTTPException: 401 if the request carries no actor
    """
    actor_id = request.headers.get(ACTOR_HEADER, "").strip()
    if not actor_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return actor_id


def client_ip(request: Request) -> str:
    """Return the address the request came from, as seen by the server."""
    return request.client.host if request.client else "unknown"


def _refuse(decision: RateDecision) -> HTTPException:
    if decision.degraded:
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service temporarily unavailable")
    return HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Too many requests",
        headers={"Retry-After": str(decision.retry_after_seconds)},
    )


def rate_limited(scope: str) -> Callable[[Request], Awaitable[str]]:
    """FastAPI dependency consuming one point of ``scope`` for the requesting actor.

    Returns the actor id so routes can depend on it instead of ``get_actor_id``.
    A refusal caused by an unreachable cache store is a 503, not a 429.

    Example:
        ```python
        @router.post("/posts")
        async def create(actor_id: str = Depends(rate_limited(SCOPE_POST_CREATE))):
            ...
        ```
    """

    async def check(request: Request) -> str:
        actor_id = get_actor_id(request)
        limiter: RateLimiter = request.app.state.services.get(RateLimiter)
        decision = await limiter.consume(scope, actor_id)
        if not decision.allowed:
            raise _refuse(decision)
        return actor_id

    return check


def rate_limited_by_ip(scope: str) -> Callable[[Request], Awaitable[str]]:
    """FastAPI dependency consuming one point of ``scope`` for the client address.

    For unauthenticated routes such as account registration; returns the
    client IP.

    Example:
        ```python
        @router.post("/register")
        async def register(ip: str = Depends(rate_limited_by_ip(SCOPE_REGISTRATION))):
            ...
        ```
    """

    async def check(request: Request) -> str:
        ip = client_ip(request)
        limiter: RateLimiter = request.app.state.services.get(RateLimiter)
        decision = await limiter.consume(scope, ip)
        if not decision.allowed:
            raise _refuse(decision)
        return ip

    return check
