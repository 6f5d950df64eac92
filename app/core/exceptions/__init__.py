from app.core.exceptions.handlers import configure_exception_handlers
from app.domain.exceptions import (
    ConflictError,
    DomainError,
    ForbiddenError,
    InfrastructureError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)

__all__ = [
    "ConflictError",
    "DomainError",
    "ForbiddenError",
    "InfrastructureError",
    "NotFoundError",
    "UnauthorizedError",
    "ValidationError",
    "configure_exception_handlers",
]
