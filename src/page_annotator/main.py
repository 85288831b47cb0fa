from __future__ import annotations

import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from page_annotator.core.errors import APIError
from page_annotator.core.request_context import get_request_id
from page_annotator.routers.health import router as health_router
from page_annotator.routers.pages import router as pages_router
from page_annotator.schemas.api import ErrorResponse
from page_annotator.settings import get_settings


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
logging.basicConfig(level=get_settings().LOG_LEVEL.upper())
logger = logging.getLogger("page_annotator")


# -----------------------------------------------------------------------------
# CORS
# -----------------------------------------------------------------------------
def _cors_origins() -> list[str]:
    settings = get_settings()
    if settings.WEB_ORIGIN:
        return [origin.strip() for origin in settings.WEB_ORIGIN.split(",") if origin.strip()]
    if settings.ANNOTATOR_ENV.lower() == "production":
        return []
    return [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]


# -----------------------------------------------------------------------------
# Startup logging (confirms env + storage config)
# -----------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(_: FastAPI):
    settings = get_settings()
    logger.info("Page annotator service starting")
    logger.info("ANNOTATOR_ENV=%s", settings.ANNOTATOR_ENV)
    logger.info("STORAGE_DRIVER=%s", settings.ANNOTATOR_STORAGE_DRIVER)
    logger.info("ANALYZER_ENGINE=%s", settings.ANNOTATOR_ANALYZER_ENGINE)
    logger.info("API_PREFIX=%s", settings.api_prefix or "/")
    yield


# -----------------------------------------------------------------------------
# App
# -----------------------------------------------------------------------------
app = FastAPI(title="Page Annotator API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def attach_request_id(request: Request, call_next):
    request_id = get_request_id(request)
    response = await call_next(request)
    response.headers["x-request-id"] = request_id
    return response


# -----------------------------------------------------------------------------
# Exception handlers
# -----------------------------------------------------------------------------
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = get_request_id(request)
    logger.error(
        "Unhandled exception on %s %s request_id=%s\n%s",
        request.method,
        request.url.path,
        request_id,
        traceback.format_exc(),
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "path": request.url.path,
            "request_id": request_id,
        },
    )


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    request_id = get_request_id(request)
    logger.warning(
        "Handled API error on %s %s request_id=%s code=%s",
        request.method,
        request.url.path,
        request_id,
        exc.code,
    )
    body = ErrorResponse(
        error=exc.code,
        message=exc.message,
        details=exc.details,
        request_id=request_id,
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = get_request_id(request)
    logger.info(
        "Validation error on %s %s request_id=%s",
        request.method,
        request.url.path,
        request_id,
    )
    return JSONResponse(
        status_code=422,
        content={
            "error": "validation_error",
            "message": "Invalid request payload",
            "details": exc.errors(),
            "request_id": request_id,
        },
    )


# -----------------------------------------------------------------------------
# Routers
# -----------------------------------------------------------------------------
app.include_router(health_router)
app.include_router(pages_router)
