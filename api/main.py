"""
FastAPI application initialization and configuration.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from core.config import settings
from database.engine import init_db, close_db
from api.routes import health, pages
from api.routes.v1 import applications, auth, jobs, resumes
from api.schemas.common import ERROR_RESPONSES

from core.middleware import (
    AuthGateMiddleware,
    AuthenticationMiddleware,
    ErrorHandlingMiddleware,
    StructuredLoggingMiddleware,
    setup_error_handlers,
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
    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    await init_db()

    yield

    logger.info(f"Shutting down {settings.app_name}")
    await close_db()


app = FastAPI(
    title=settings.app_name,
    description="Job board for job seekers and employers",
    version=health.VERSION,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Setup error handlers (before middleware)
setup_error_handlers(app)

# Middleware is added innermost first; the last one added runs first.
# Request flow: error handling -> logging -> CORS -> authentication -> AuthGate

# 5. AuthGate (page redirects; needs the session set by authentication)
app.add_middleware(AuthGateMiddleware)

# 4. Authentication (reads the session cookie / bearer token)
app.add_middleware(
    AuthenticationMiddleware,
    jwt_secret=settings.jwt_secret_key,
    jwt_algorithm=settings.jwt_algorithm,
    cookie_name=settings.session_cookie_name,
)

# 3. CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 2. Structured logging (logs all requests/responses)
app.add_middleware(
    StructuredLoggingMiddleware,
    log_request_body=settings.log_request_body,
    max_body_size=settings.log_max_body_size,
)

# 1. Error handling (outermost - catches everything the handlers did not)
app.add_middleware(
    ErrorHandlingMiddleware,
    debug=settings.debug,
)

# Health check routes
app.include_router(health.router, tags=["Health"])

# Pages
app.include_router(pages.router)

# API v1 routes
app.include_router(auth.router, prefix=settings.api_v1_prefix, responses=ERROR_RESPONSES)
app.include_router(jobs.router, prefix=settings.api_v1_prefix, responses=ERROR_RESPONSES)
app.include_router(applications.router, prefix=settings.api_v1_prefix, responses=ERROR_RESPONSES)
app.include_router(resumes.router, prefix=settings.api_v1_prefix, responses=ERROR_RESPONSES)

# Uploaded resume files
app.mount(
    settings.upload_url_prefix,
    StaticFiles(directory=settings.upload_dir, check_dir=False),
    name="uploads",
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
