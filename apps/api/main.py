"""
FastAPI application entrypoint.
"""

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from apps.api.config import get_settings
from apps.api.ratelimit import get_rate_limit_headers, rate_limit_default
from apps.api.routers import (
    auth,
    catalogs,
    excel,
    health,
    shipment_acknowledgments,
    studies,
    workflow,
)
from packages.shared.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)

settings = get_settings()

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-origin",
    "X-Permitted-Cross-Domain-Policies": "none",
}


def configure_logging(level: str) -> None:
    """Root logger setup shared by the API process."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    """Attach security and rate-limit headers to every response."""
    response = await call_next(request)
    response.headers.update(SECURITY_HEADERS)
    if settings.environment == "production":
        response.headers["Strict-Transport-Security"] = "max-age=15552000; includeSubDomains"
    result = getattr(request.state, "rate_limit_result", None)
    if result is not None:
        response.headers.update(get_rate_limit_headers(result))
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# Include routers
api_dependencies = [Depends(rate_limit_default)]
for router in (
    health.router,
    auth.router,
    studies.router,
    catalogs.study_designs_router,
    catalogs.study_types_router,
    catalogs.study_phases_router,
    excel.router,
    shipment_acknowledgments.router,
    workflow.stages_router,
    workflow.form_submissions_router,
    workflow.page_migration_logs_router,
):
    app.include_router(router, prefix=settings.api_prefix, dependencies=api_dependencies)

logger.info("%s %s configured (%s)", settings.app_name, settings.app_version, settings.environment)
