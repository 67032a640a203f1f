"""FastAPI application for relsync."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from relsync.api.v1.api import api_router
from relsync.core.config import settings
from relsync.core.exceptions import (
    InvalidInputException,
    InvalidStateException,
    NotFoundException,
    RelsyncException,
    UnauthorizedException,
)
from relsync.core.logging import logger

STATUS_CODES = {
    NotFoundException: 404,
    InvalidInputException: 400,
    InvalidStateException: 409,
    UnauthorizedException: 401,
}

app = FastAPI(title=settings.PROJECT_NAME)


@app.exception_handler(RelsyncException)
async def relsync_exception_handler(request: Request, exc: RelsyncException) -> JSONResponse:
    """Translate service exceptions into HTTP errors."""
    status_code = STATUS_CODES.get(type(exc), 500)
    if status_code >= 500:
        logger.error(f"Unhandled service error on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


@app.get("/health")
async def health() -> dict:
    """Liveness probe."""
    return {"status": "healthy"}


app.include_router(api_router)
