"""
FastAPI application entry point for the Kreasi commerce ledger service.
"""
import logging
import time
from uuid import uuid4
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import settings
from app.database import get_db
from app.exceptions import LedgerError
from app.logging_config import setup_logging
from app.rate_limit import limiter
from app.routers import admin, balance, orders, payouts
from app.services.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the cache refresh scheduler for the lifetime of the app."""
    logger.info(f"Starting Kreasi Commerce API ({settings.ENVIRONMENT})...")
    start_scheduler()
    yield
    logger.info("Shutting down Kreasi Commerce API...")
    stop_scheduler()


app = FastAPI(
    title="Kreasi Commerce API",
    description="Ledger, checkout and payout backend for Kreasi creator storefronts",
    version="0.1.0",
    lifespan=lifespan
)

# Rate limiting for checkout and payout requests
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


async def ledger_error_handler(request: Request, exc: LedgerError):
    """Render domain errors with their HTTP status and machine-readable code."""
    if exc.http_status >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


app.add_exception_handler(LedgerError, ledger_error_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Idempotency-Key", "X-User-Id", "X-Request-ID"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Tag each request with an id, log it with its duration and set security headers."""
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    started = time.perf_counter()

    response = await call_next(request)

    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"({elapsed_ms:.1f} ms) request_id={request_id}"
    )
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


app.include_router(balance.router, tags=["balance"])
app.include_router(payouts.router, tags=["payouts"])
app.include_router(orders.router, tags=["orders"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Liveness plus a round trip to the database."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database ping failed: {e}")
        return JSONResponse(status_code=503, content={"status": "degraded", "database": "unreachable"})
    return {"status": "ok", "database": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
