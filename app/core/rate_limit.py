"""Rate limiting for the HTTP layer.

This module wires the rate limiting adapter into FastAPI in two places:

- ``rate_limit_middleware`` runs before every request under the API prefix and
  picks a policy from the path and method (chat messages < writes < reads).
- ``enforce_rate_limit(scope)`` is a route dependency for handlers that need
  their own, stricter quota on top of the middleware.

Both share the limiter stored on ``app.state.rate_limiter`` but never share
counters: keys are namespaced by policy name.

Clients are identified by the first X-Forwarded-For entry, then X-Real-IP,
then the socket peer address, falling back to 127.0.0.1 only when none is
known. The raw identifier is never logged, only a hash.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Awaitable, Callable

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision, RateLimitPolicy
from app.core.config import AppSettings, settings

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests. Please try again later."
FALLBACK_CLIENT_IDENTIFIER = "127.0.0.1"

DEFAULT_POLICY = "default"
WRITE_POLICY = "write"
CHAT_POLICY = "chat"

_WRITE_METHODS = frozenset({"POST", "PATCH"})


def build_policies(app_settings: AppSettings) -> dict[str, RateLimitPolicy]:
    """Build the middleware policies from configuration.

    Args:
        app_settings: Application settings holding quotas and window size.

    Returns:
        Mapping of policy name to policy.
    """

    window_ms = app_settings.rate_limit_window_ms
    return {
        DEFAULT_POLICY: RateLimitPolicy(DEFAULT_POLICY, app_settings.rate_limit_default_requests, window_ms),
        WRITE_POLICY: RateLimitPolicy(WRITE_POLICY, app_settings.rate_limit_write_requests, window_ms),
        CHAT_POLICY: RateLimitPolicy(CHAT_POLICY, app_settings.rate_limit_chat_requests, window_ms),
    }


def resolve_policy(
    path: str,
    method: str,
    policies: dict[str, RateLimitPolicy],
    *,
    api_prefix: str = "/api/",
) -> RateLimitPolicy | None:
    """Pick the policy for a request, or None when the path is not limited.

    Examples:
        >>> policies = build_policies(AppSettings())
        >>> resolve_policy("/api/projects/1/messages", "POST", policies).name
        'chat'
        >>> resolve_policy("/api/projects", "PATCH", policies).name
        'write'
        >>> resolve_policy("/api/projects", "GET", policies).name
        'default'
        >>> resolve_policy("/health", "GET", policies) is None
        True
    """

    if not path.startswith(api_prefix):
        return None
    if "/messages" in path:
        return policies[CHAT_POLICY]
    if method.upper() in _WRITE_METHODS:
        return policies[WRITE_POLICY]
    return policies[DEFAULT_POLICY]


def get_client_identifier(request: Request) -> str:
    """Return the client address used as the rate limit identifier."""

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host

    return FALLBACK_CLIENT_IDENTIFIER


def get_policies(request: Request) -> dict[str, RateLimitPolicy]:
    """Return the app's middleware policies, rebuilt only when quotas change.

    The policies are cached on ``app.state`` together with the settings they
    were built from, so configuration changes (primarily in tests) still apply.
    """

    config = (
        settings.app.rate_limit_window_ms,
        settings.app.rate_limit_default_requests,
        settings.app.rate_limit_write_requests,
        settings.app.rate_limit_chat_requests,
    )
    state = request.app.state
    if getattr(state, "rate_limit_policies_config", None) != config:
        state.rate_limit_policies = build_policies(settings.app)
        state.rate_limit_policies_config = config
    return state.rate_limit_policies


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the application serving ``request``."""

    return request.app.state.rate_limiter


def hash_identifier(identifier: str) -> str:
    """Hash the rate limit identifier for logging without exposing addresses."""
    return hashlib.sha256(identifier.encode()).hexdigest()[:16]


def rate_limit_headers(decision: RateLimitDecision) -> dict[str, str]:
    """Quota headers forwarded on every limited response."""

    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": decision.reset_at_iso(),
    }


def _rejection(decision: RateLimitDecision, now_ms: int) -> tuple[dict, dict[str, str]]:
    """Build the 429 body and headers for a rejected decision."""

    retry_after = decision.retry_after_seconds(now_ms)
    body = {"error": RATE_LIMIT_MESSAGE, "retryAfter": retry_after}
    headers = rate_limit_headers(decision)
    headers["X-RateLimit-Remaining"] = "0"
    headers["Retry-After"] = str(retry_after)
    return body, headers


def _check(
    limiter: AbstractRateLimiter,
    identifier: str,
    policy: RateLimitPolicy,
    *,
    path: str,
) -> RateLimitDecision:
    """Run the limiter and log the outcome."""

    decision = limiter.check_policy(identifier, policy)
    log_extra = {
        "policy": policy.name,
        "key_hash": hash_identifier(identifier),
        "path": path,
        "limit": decision.limit,
        "remaining": decision.remaining,
        "window_ms": policy.window_ms,
    }

    if decision.allowed:
        logger.info("rate_limit.allowed", extra=log_extra)
    else:
        logger.warning(
            "rate_limit.exceeded",
            extra={**log_extra, "retry_after_s": decision.retry_after_seconds(limiter.now_ms())},
        )
    return decision


async def rate_limit_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """HTTP middleware applying the per-route policy to API requests.

    Rejected requests never reach the application and get a 429 with a JSON
    body ``{"error": ..., "retryAfter": <seconds>}`` plus ``X-RateLimit-*``
    and ``Retry-After`` headers. Allowed requests get the ``X-RateLimit-*``
    headers added to whatever the handler returns.

    Usage:
        app.middleware("http")(rate_limit_middleware)
    """

    if not settings.app.rate_limit_enabled:
        return await call_next(request)

    policy = resolve_policy(
        request.url.path,
        request.method,
        get_policies(request),
        api_prefix=settings.app.api_prefix,
    )
    if policy is None:
        return await call_next(request)

    limiter = get_rate_limiter(request)
    identifier = get_client_identifier(request)
    decision = _check(limiter, identifier, policy, path=request.url.path)

    if not decision.allowed:
        body, headers = _rejection(decision, limiter.now_ms())
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content=body,
            headers=headers,
        )

    response = await call_next(request)
    response.headers.update(rate_limit_headers(decision))
    return response


def enforce_rate_limit(
    scope: str,
    *,
    max_requests: int | None = None,
    window_ms: int | None = None,
) -> Callable[[Request, Response], Awaitable[None]]:
    """Build a FastAPI dependency enforcing a route-level quota.

    Each scope counts separately from the middleware policies and from other
    scopes. Quotas default to ``rate_limit_route_requests`` per
    ``rate_limit_window_ms``.

    Usage:
        @router.post("/projects/{id}/messages",
                     dependencies=[Depends(enforce_rate_limit("messages"))])

    Args:
        scope: Name of the protected operation (e.g., "messages").
        max_requests: Optional quota override.
        window_ms: Optional window override in milliseconds.

    Returns:
        Dependency callable raising HTTP 429 when the quota is exhausted.

    Raises:
        ValueError: If scope is empty or an override is not positive.
    """

    if not scope:
        raise ValueError("scope must be a non-empty string")
    if max_requests is not None and max_requests < 1:
        raise ValueError("max_requests must be >= 1")
    if window_ms is not None and window_ms < 1:
        raise ValueError("window_ms must be >= 1")

    policy_name = f"route:{scope}"
    fixed_policy = (
        RateLimitPolicy(policy_name, max_requests, window_ms)
        if max_requests is not None and window_ms is not None
        else None
    )

    async def _dependency(request: Request, response: Response) -> None:
        if not settings.app.rate_limit_enabled:
            return

        policy = fixed_policy or RateLimitPolicy(
            policy_name,
            settings.app.rate_limit_route_requests if max_requests is None else max_requests,
            settings.app.rate_limit_window_ms if window_ms is None else window_ms,
        )
        limiter = get_rate_limiter(request)
        identifier = get_client_identifier(request)
        decision = _check(limiter, identifier, policy, path=request.url.path)

        if decision.allowed:
            response.headers.update(rate_limit_headers(decision))
            return

        body, headers = _rejection(decision, limiter.now_ms())
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=body,
            headers=headers,
        )

    return _dependency
