"""
FastAPI application initialization and configuration.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from core.events import build_notifier
from database.engine import init_db, close_db
from api.routes import health
from api.routes.v1 import (
    auth,
    users,
    events,
    pairing,
    schedule,
    feedback,
    learning,
)

from core.middleware import (
    ErrorHandlingMiddleware,
    setup_error_handlers,
    StructuredLoggingMiddleware,
    setup_logging,
)

# Setup structured logging (do this first, before anything else)
setup_logging(
    log_level=settings.log_level,
    json_logs=settings.json_logs,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    logger.info(f"Starting {settings.app_name} in {settings.app_env} environment")
    await init_db()
    app.state.notifier = build_notifier()

    yield

    logger.info(f"Shutting down {settings.app_name}")
    close = getattr(app.state.notifier, "close", None)
    if close is not None:
        await close()
    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Peer mock-interview scheduling and learning platform",
    version="0.1.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Setup error handlers (before middleware)
setup_error_handlers(app)

# Add middleware (order matters - they execute in reverse order)
# 1. Error handling middleware (outermost - catches all errors)
app.add_middleware(
    ErrorHandlingMiddleware,
    debug=settings.debug,
)

# 2. Structured logging middleware (logs all requests/responses)
app.add_middleware(
    StructuredLoggingMiddleware,
    log_request_body=settings.log_request_body,
    max_body_size=settings.log_max_body_size,
)

# 3. CORS middleware; credentials are needed for the auth cookie
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(dict.fromkeys([*settings.allowed_origins, settings.frontend_origin])),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Health check routes
app.include_router(health.router, tags=["Health"])

# API v1 routes
app.include_router(
    auth.router,
    prefix=f"{settings.api_v1_prefix}/auth",
    tags=["Authentication"],
)
app.include_router(
    users.router,
    prefix=f"{settings.api_v1_prefix}/users",
    tags=["Users"],
)
app.include_router(
    events.router,
    prefix=f"{settings.api_v1_prefix}/events",
    tags=["Events"],
)
app.include_router(
    pairing.router,
    prefix=f"{settings.api_v1_prefix}/events",
    tags=["Pairing"],
)
app.include_router(
    schedule.router,
    prefix=f"{settings.api_v1_prefix}/pairs",
    tags=["Scheduling"],
)
app.include_router(
    feedback.router,
    prefix=f"{settings.api_v1_prefix}/feedback",
    tags=["Feedback"],
)
app.include_router(
    learning.router,
    prefix=f"{settings.api_v1_prefix}/learning",
    tags=["Learning"],
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
