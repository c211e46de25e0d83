"""Health, readiness and Prometheus scrape endpoints.

  /health (liveness): is the process alive?  Always 200; the body says
    whether a dependency is degraded.  A 503 here would make the
    orchestrator restart a container that only has a flaky dependency.

  /ready (readiness): can this instance serve traffic?  503 while the
    database does not answer, so the load balancer routes around it.
    Redis is optional (rate limits fall back to in-memory buckets), so it
    does not affect readiness.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from lms.db.engine import Database

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _database_ok(request: Request) -> bool:
    db: Database | None = getattr(request.app.state, "db", None)
    if db is None:
        return False
    return await db.ping()


@router.get("/health")
async def health(request: Request) -> dict:
    """Liveness probe + dependency status.

    Returns 200 even when degraded; the status field carries the health.
    """
    checks: dict[str, str] = {}
    overall = "ok"

    if await _database_ok(request):
        checks["database"] = "ok"
    else:
        checks["database"] = "degraded"
        overall = "degraded"

    redis_client = getattr(request.app.state, "redis", None)
    if redis_client is not None:
        try:
            await redis_client.ping()  # type: ignore[misc]
            checks["redis"] = "ok"
        except Exception:
            logger.warning("Redis ping failed", exc_info=True)
            checks["redis"] = "degraded"
            overall = "degraded"
    else:
        checks["redis"] = "not_configured"

    return {
        "status": overall,
        "checks": checks,
    }


@router.get("/ready")
async def ready(request: Request) -> Response:
    """Readiness probe: 200 when the database answers, else 503."""
    if not await _database_ok(request):
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    # Restrict to the scraper in production; labels reveal route names.
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
