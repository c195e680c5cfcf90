from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from learnhub.api.admin_certificates import router as admin_certificates_router
from learnhub.api.certificates import router as certificates_router
from learnhub.api.courses import router as courses_router
from learnhub.api.enrollments import admin_router as admin_enrollments_router
from learnhub.api.enrollments import router as enrollments_router
from learnhub.api.health import router as health_router
from learnhub.api.metrics_endpoint import router as metrics_router
from learnhub.api.notifications import router as notifications_router
from learnhub.api.payments import router as payments_router
from learnhub.api.progress import router as progress_router
from learnhub.api.users import router as users_router
from learnhub.core.config import SETTINGS
from learnhub.core.errors import HTTP_STATUS_BY_KIND, LearnHubError
from learnhub.core.logging import setup_logging
from learnhub.core.metrics import DOMAIN_ERRORS
from learnhub.db.engine import lifespan_db
from learnhub.db.redis import lifespan_redis
from learnhub.middleware.metrics import MetricsMiddleware
from learnhub.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order.
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="learnhub-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)


@app.exception_handler(LearnHubError)
async def learnhub_error_handler(_request: Request, exc: LearnHubError) -> JSONResponse:
    DOMAIN_ERRORS.labels(code=exc.code).inc()
    return JSONResponse(
        status_code=HTTP_STATUS_BY_KIND[exc.kind],
        content={"detail": exc.message, "code": exc.code},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last-added runs first: RequestContext -> Metrics -> CORS -> route handler,
# so every request has an id before metrics are recorded.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(courses_router)
app.include_router(enrollments_router)
app.include_router(admin_enrollments_router)
app.include_router(progress_router)
app.include_router(certificates_router)
app.include_router(admin_certificates_router)
app.include_router(notifications_router)
app.include_router(payments_router)
app.include_router(users_router)

logger.info(
    "learnhub-service started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
