"""
PIX Gateway - multi-provider PIX charge and withdrawal API.

Routes each owner's charges and withdrawals through its configured
sub-acquirer, and reconciles their final status from the provider's
webhooks (or simulated ones in sandbox mode).

Start the server:
    uvicorn pix_gateway.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pix_gateway.api.charges import router as charges_router
from pix_gateway.api.health import router as health_router
from pix_gateway.api.webhooks import router as webhooks_router
from pix_gateway.api.withdrawals import router as withdrawals_router
from pix_gateway.config import settings
from pix_gateway.database import init_db
from pix_gateway.engine import jobs
from pix_gateway.errors import GatewayError

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger("pix_gateway.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup; cancel background jobs on shutdown."""
    await init_db()
    yield
    await jobs.shutdown()


app = FastAPI(
    title="PIX Gateway",
    description=(
        "Multi-tenant PIX charge and withdrawal gateway. Resolves each owner's "
        "sub-acquirer at runtime, translates requests into the provider's dialect, "
        "and reconciles transaction status from normalized provider webhooks."
    ),
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    log = logger.error if exc.http_status >= 500 else logger.warning
    log("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


app.include_router(health_router)
app.include_router(charges_router, prefix="/api")
app.include_router(withdrawals_router, prefix="/api")
app.include_router(webhooks_router, prefix="/api")
