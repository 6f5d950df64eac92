from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.logging import get_logger
from app.domain.exceptions import (
    ConflictError,
    DomainError,
    ForbiddenError,
    InfrastructureError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)

logger = get_logger("api")


def _status_for(exc: DomainError) -> int:
    if isinstance(exc, UnauthorizedError):
        return 401
    if isinstance(exc, ForbiddenError):
        return 403
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, (ConflictError, ValidationError)):
        return 400
    return 500


def configure_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def domain_error_handler(
            request: Request, exc: DomainError
    ) -> JSONResponse:
        status_code = _status_for(exc)
        if isinstance(exc, InfrastructureError) or status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
            return JSONResponse(status_code=500, content={"detail": "Internal server error"})
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message},
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(
            request: Request, exc: NotFoundError
    ) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": f"{exc.entity} not found"})
