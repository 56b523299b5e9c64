"""Health, readiness and Prometheus scrape endpoints.

  /health (liveness):
    "Is this process alive?"  Always 200 while the process can answer;
    the body reports each backing dependency so a degraded instance is
    visible without being restarted.

  /ready (readiness):
    "Can this instance serve traffic?"  503 when a configured backing
    service is unreachable.  The ledger counts: approvals and Skill Pass
    anchoring cannot work without it, while reads of stored credentials
    can, so an unreachable ledger is reported but only fails readiness
    when a real RPC endpoint is configured.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from vcanchor.db.engine import engine, ping_database
from vcanchor.db.redis import ping_redis, redis_pool
from vcanchor.services.ledger_client import InMemoryLedgerClient, ledger_client

router = APIRouter(tags=["observability"])


async def _checks() -> dict[str, str]:
    checks: dict[str, str] = {}

    if engine is None:
        checks["database"] = "not_configured"
    else:
        checks["database"] = "ok" if await ping_database() else "degraded"

    if redis_pool is None:
        checks["redis"] = "not_configured"
    else:
        checks["redis"] = "ok" if await ping_redis() else "degraded"

    if isinstance(ledger_client, InMemoryLedgerClient):
        checks["ledger"] = "in_memory"
    else:
        connected = await asyncio.to_thread(ledger_client.is_connected)
        checks["ledger"] = "ok" if connected else "degraded"

    return checks


@router.get("/health")
async def health() -> dict:
    """Liveness probe plus dependency status.

    Returns 200 even when degraded; the status field carries the verdict.
    """
    checks = await _checks()
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    checks = await _checks()
    if "degraded" in checks.values():
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Prometheus text exposition.  Keep it behind the ingress in production."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
