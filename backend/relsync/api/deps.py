"""Dependencies that are used in the API endpoints."""

import hmac
import uuid
from typing import Optional

from fastapi import Header, Request

from relsync.core.exceptions import UnauthorizedException
from relsync.core.logging import ContextualLogger, LoggerConfigurator


async def get_logger(request: Request) -> ContextualLogger:
    """Logger carrying the request's ID and route."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    return LoggerConfigurator.configure_logger(
        "relsync.api",
        dimensions={"request_id": request_id, "path": request.url.path},
    )


async def get_bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Token of an `Authorization: Bearer <token>` header, if present."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def verify_secret(provided: Optional[str], expected: Optional[str]) -> None:
    """Compare a presented secret with the stored one in constant time.

    Raises:
        UnauthorizedException: Missing or mismatched secret
    """
    if not provided or not expected:
        raise UnauthorizedException("Invalid or missing webhook secret")
    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise UnauthorizedException("Invalid or missing webhook secret")
