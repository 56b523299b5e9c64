"""vcanchor API.

Run with: uvicorn vcanchor.main:app --port 8000
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vcanchor.api.admin import router as admin_router
from vcanchor.api.assessments import router as assessments_router
from vcanchor.api.credentials import router as credentials_router
from vcanchor.api.health import router as health_router
from vcanchor.api.issuer import router as issuer_router
from vcanchor.api.ledger import router as ledger_router
from vcanchor.core.config import SETTINGS
from vcanchor.core.logging import setup_logging
from vcanchor.db.engine import lifespan_db
from vcanchor.db.redis import lifespan_redis
from vcanchor.middleware.metrics import MetricsMiddleware
from vcanchor.middleware.request_context import RequestContextMiddleware
from vcanchor.services.errors import AnchorServiceError

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order even if one fails.
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="vcanchor",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware execution order: last-added runs first (outermost layer).
# RequestContext (outermost) -> Metrics -> CORS -> route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)


@app.exception_handler(AnchorServiceError)
async def anchor_service_error_handler(
    _request: Request, exc: AnchorServiceError
) -> JSONResponse:
    """Every service failure becomes one error string: {"detail": message}."""
    tx_hash = getattr(exc, "tx_hash", None)
    body: dict[str, str] = {"detail": exc.message}
    if tx_hash:
        body["tx_hash"] = tx_hash
    return JSONResponse(status_code=exc.status_code, content=body)


app.include_router(health_router)
app.include_router(credentials_router)
app.include_router(issuer_router)
app.include_router(admin_router)
app.include_router(assessments_router)
app.include_router(ledger_router)

logger.info(
    "vcanchor started  env=%s log_level=%s port=%d ledger=%s docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    SETTINGS.ledger_rpc_url or "in-memory",
    "on" if SETTINGS.is_dev else "off",
)
