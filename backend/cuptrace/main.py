from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cuptrace.config import settings
from cuptrace.logging_config import configure_logging
from cuptrace.middleware.exceptions import register_exception_handlers
from cuptrace.middleware.rate_limit import RateLimitMiddleware
from cuptrace.middleware.security import HTTPSRedirectMiddleware, SecurityHeadersMiddleware
from cuptrace.routers import (
    auth,
    batches,
    certificates,
    cooperatives,
    events,
    exports,
    health,
    payments,
    processing,
    stage,
    stats,
    supply_chain,
    trace,
    users,
)
from cuptrace.utils.cache import close_redis

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_redis()


app = FastAPI(
    title="CupTrace",
    description="Farm-to-cup traceability for Rwandan coffee and tea",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware (last added runs first) ───────────────────────
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(HTTPSRedirectMiddleware, force_https=False)
app.add_middleware(
    RateLimitMiddleware,
    default_limit=100,
    default_window=60,
    exempt_paths=["/health", "/docs", "/openapi.json"],
    enabled=settings.rate_limit_enabled,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
# Public
app.include_router(health.router)
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(trace.router, prefix="/api/trace", tags=["trace"])

# Authenticated
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(cooperatives.router, prefix="/api/cooperatives", tags=["cooperatives"])
app.include_router(batches.router, prefix="/api/batches", tags=["batches"])
app.include_router(stage.router, prefix="/api/stage", tags=["stage"])
app.include_router(supply_chain.router, prefix="/api/supplychain", tags=["supply-chain"])
app.include_router(events.router, prefix="/api/events", tags=["events"])
app.include_router(processing.router, prefix="/api/processing", tags=["processing"])
app.include_router(certificates.router, prefix="/api/certificates", tags=["certificates"])
app.include_router(exports.router, prefix="/api/exports", tags=["exports"])
app.include_router(payments.router, prefix="/api/payments", tags=["payments"])
app.include_router(stats.router, prefix="/api/stats", tags=["stats"])
