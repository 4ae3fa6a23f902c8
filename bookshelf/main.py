"""
FastAPI application — the entrypoint for the bookshelf API.

Features:
- CORS restrictions
- Redis rate limiting middleware
- Prometheus metrics endpoint
- Structured JSON logging
- Health / readiness / liveness probes
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Histogram, generate_latest
from sqlalchemy import text
from starlette.responses import Response

from bookshelf.config import get_settings
from bookshelf.logging_config import setup_logging
from bookshelf.middleware.rate_limiter import RateLimiterMiddleware
from bookshelf.routers import auth, books, library

settings = get_settings()
setup_logging(settings.log_level, settings.log_format)
logger = structlog.get_logger()

# ── Prometheus metrics ──
REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and graceful shutdown."""
    logger.info("bookshelf_api_starting", environment=settings.environment)

    # Create tables on first start (dev convenience); deployed databases use Alembic
    if settings.environment == "development":
        import bookshelf.models  # noqa: F401  registers every table
        from bookshelf.database import Base, engine

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database_tables_created")

    yield

    logger.info("bookshelf_api_shutting_down")
    from bookshelf.database import engine

    await engine.dispose()


app = FastAPI(
    title="Bookshelf",
    description="Book catalog with personal libraries and reading lists",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ── CORS ──
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Rate Limiting ──
app.add_middleware(RateLimiterMiddleware)


# ── Request metrics middleware ──
@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = time.time() - start

    # Label by route template so /books/1 and /books/2 share a series
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=endpoint,
        status=response.status_code,
    ).inc()
    REQUEST_LATENCY.labels(
        method=request.method,
        endpoint=endpoint,
    ).observe(duration)

    return response


# ── Routers ──
app.include_router(auth.router)
app.include_router(books.router)
app.include_router(library.router)


# ── Health / Readiness / Liveness ──
@app.get("/health", tags=["Health"])
async def health():
    return {"status": "healthy", "service": "bookshelf"}


@app.get("/ready", tags=["Health"])
async def readiness():
    """Readiness probe — checks DB and Redis connectivity."""
    checks = {}
    try:
        from bookshelf.database import engine

        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as exc:
        logger.warning("readiness_database_error", error=str(exc))
        checks["database"] = "error"

    if settings.rate_limit_enabled:
        try:
            import redis.asyncio as redis

            r = redis.from_url(settings.redis_dsn)
            await r.ping()
            await r.aclose()
            checks["redis"] = "ok"
        except Exception as exc:
            logger.warning("readiness_redis_error", error=str(exc))
            checks["redis"] = "error"

    all_ok = all(v == "ok" for v in checks.values())
    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={"status": "ready" if all_ok else "not_ready", "checks": checks},
    )


@app.get("/live", tags=["Health"])
async def liveness():
    return {"status": "alive"}


# ── Prometheus metrics endpoint ──
@app.get("/metrics", tags=["Monitoring"])
async def metrics():
    return Response(content=generate_latest(), media_type="text/plain")
