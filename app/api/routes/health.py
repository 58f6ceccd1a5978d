from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check used by load balancers and monitors.

    Lives outside the /api/ prefix, so it is never rate limited.
    """

    return {"status": "ok"}
