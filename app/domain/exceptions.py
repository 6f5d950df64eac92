class DomainError(Exception):
    """Base for all domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(DomainError):
    """Entity not found (maps to 404)."""

    def __init__(self, entity: str, identifier: str) -> None:
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} '{identifier}' not found")


class ValidationError(DomainError):
    """Business validation failed (maps to 400)."""

    pass


class ConflictError(DomainError):
    """Duplicate or already existing entity (maps to 400, as the public API always did)."""

    pass


class UnauthorizedError(DomainError):
    """Authentication required (maps to 401)."""

    pass


class ForbiddenError(DomainError):
    """Authenticated but not permitted (maps to 403)."""

    pass


class InfrastructureError(DomainError):
    """Database or broker failure (maps to 500)."""

    pass
