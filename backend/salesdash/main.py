"""
Sol de Maria Sales Dashboard - Main FastAPI Application
"""
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from contextlib import asynccontextmanager
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

import logging

from salesdash.config import settings
from salesdash.database import get_db
from salesdash.errors import FunctionsError, functions_error_handler
from salesdash.limiter import limiter
from salesdash.services.settings_service import settings_feed

logger = logging.getLogger(__name__)
from salesdash.api import chat
from salesdash.api.v1 import access, ai, costs, data, reports, settings as app_settings, users


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Startup
    logger.info("Starting up %s...", settings.APP_NAME)
    try:
        settings_feed.start(get_db())
    except Exception:
        # access checks fall back to one-shot reads of the settings document
        logger.exception("Live settings watch could not be started")
    yield
    # Shutdown
    logger.info("Shutting down...")
    settings_feed.stop()


app = FastAPI(
    title="Sol de Maria Sales Dashboard API",
    description="Sales analytics over the Firestore sales, logistics and cost collections",
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan
)

# Attach limiter to app state (required by slowapi)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(FunctionsError, functions_error_handler)

# Trusted Host Middleware: reject requests with spoofed Host headers
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept"],
)


# Security headers middleware
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response: Response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


# Include routers
app.include_router(data.router, prefix="/api/v1/data", tags=["Data"])
app.include_router(reports.router, prefix="/api/v1/reports", tags=["Reports"])
app.include_router(access.router, prefix="/api/v1/access", tags=["Access"])
app.include_router(app_settings.router, prefix="/api/v1/settings", tags=["Settings"])
app.include_router(users.router, prefix="/api/v1/users", tags=["Users"])
app.include_router(costs.router, prefix="/api/v1/costs", tags=["Costs"])
app.include_router(ai.router, prefix="/api/v1", tags=["AI"])
app.include_router(chat.router, prefix="/api/chat", tags=["Chat"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "version": settings.APP_VERSION}
