"""
HydroWatch - FastAPI Application Entry Point

A municipal water-service reporting application: citizens view water
infrastructure on a map and report issues, administrators track and
resolve them, and payments go through a hosted gateway.

Run locally with:
    python -m hydrowatch.main
"""

import logging
import os

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from hydrowatch.config.firebase import initialize_firestore
from hydrowatch.core.errors import AppError, errors_from_pydantic
from hydrowatch.core.logging_config import configure_logging
from hydrowatch.core.settings import settings
from hydrowatch.routes import auth, health, issues, map, payments, water_services
from hydrowatch.services.auth_service import get_auth_service
from hydrowatch.utils.concurrency import run_sync

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

CLIENT_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "client")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Report and track issues with municipal water services",
    debug=settings.is_development,
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Request validation failures answer 400 with one entry per bad field."""
    errors = errors_from_pydantic(exc.errors())
    logger.info(f"Validation failed on {request.method} {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Validation failed", "errors": errors},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions; error text is only exposed in development."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    content = {"message": "Something went wrong!"}
    if settings.is_development:
        content["error"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials="*" not in settings.cors_origin_list,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    """
    Initialize services on application startup:
    Firestore connection, then the bootstrap administrator.
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.ENVIRONMENT})")

    try:
        await run_sync(initialize_firestore)
    except Exception as e:
        logger.error(f"Firestore initialization failed: {e}")
        logger.warning("The app will start but database operations may fail.")
        return

    if settings.ADMIN_EMAIL and settings.ADMIN_PASSWORD:
        try:
            await run_sync(
                get_auth_service().ensure_admin,
                settings.ADMIN_EMAIL,
                settings.ADMIN_PASSWORD,
                settings.ADMIN_NAME,
            )
        except Exception as e:
            logger.error(f"Failed to provision administrator {settings.ADMIN_EMAIL}: {e}", exc_info=True)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Shutting down {settings.APP_NAME}")


app.include_router(health.router)
app.include_router(auth.router)
app.include_router(water_services.router)
app.include_router(issues.router)
app.include_router(payments.router)
app.include_router(map.router)

os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

# Mounted last so API routes take precedence over the static client
app.mount("/", StaticFiles(directory=CLIENT_DIR, html=True), name="client")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("hydrowatch.main:app", host="0.0.0.0", port=settings.PORT, reload=settings.is_development)
