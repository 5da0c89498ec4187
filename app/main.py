"""
Main application entry point - FastAPI app instance and configuration.
Run with: uvicorn app.main:app --reload
"""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.errors import ApiError, error_body
from app.core.logging import configure_logging
from app.routers import assets, auth, gmail, governance, platforms, reports
from app.services.errors import ServiceError

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger("shenv.app")

# ---------------------------------------------------------------------------
# CREATE FASTAPI APPLICATION
# ---------------------------------------------------------------------------
app = FastAPI(
    title=settings.APP_NAME,
    docs_url="/docs",
    redoc_url="/redoc",
    debug=settings.DEBUG,
)

# ---------------------------------------------------------------------------
# CORS MIDDLEWARE
# ---------------------------------------------------------------------------
# The React frontend is the only browser origin that calls the API
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# ERROR HANDLERS
# ---------------------------------------------------------------------------
# Every error leaves the API as {"error": true, "message": ..., "code": ...}

@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return exc.to_response()


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.code),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    code = "NOT_FOUND" if exc.status_code == 404 else None
    message = "Not Found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, code),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(part) for part in err["loc"][1:]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=error_body("Validation failed", "VALIDATION_ERROR", details=details),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=error_body("Internal Server Error", "INTERNAL_SERVER_ERROR"),
    )


# ---------------------------------------------------------------------------
# REGISTER ROUTERS
# ---------------------------------------------------------------------------
# auth.router:       /auth/signup, /auth/signin, /auth/me
# platforms.router:  /api/platforms (credentials, Drive OAuth)
# assets.router:     /api/assets (discovery, risk, browsing)
# governance.router: /governance/findings
# reports.router:    /reports/summary
# gmail.router:      /api/gmail (Gmail OAuth, senders)
app.include_router(auth.router)
app.include_router(platforms.router)
app.include_router(assets.router)
app.include_router(governance.router)
app.include_router(reports.router)
app.include_router(gmail.router)


# ---------------------------------------------------------------------------
# HEALTH CHECK ENDPOINT
# ---------------------------------------------------------------------------
@app.get("/health", tags=["health"])
def health_check():
    """
    Liveness probe. Does NOT check database connectivity.

    Returns:
        {"ok": true, "timestamp": "2025-12-02T10:30:00+00:00", "service": "shenv-backend"}
    """
    return {
        "ok": True,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": settings.SERVICE_NAME,
    }
