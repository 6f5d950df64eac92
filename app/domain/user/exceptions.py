from app.domain.exceptions import ConflictError, ForbiddenError, NotFoundError, UnauthorizedError


class AuthenticationRequiredError(UnauthorizedError):
    """Raised when no bearer token accompanies a protected request."""

    def __init__(self, message: str = "Access token required") -> None:
        super().__init__(message)


class InvalidCredentialsError(UnauthorizedError):
    """Raised when username/password do not match."""

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class InvalidTokenError(ForbiddenError):
    """Raised when a token fails verification or was revoked by logout."""

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(message)


class UserAlreadyExistsError(ConflictError):
    def __init__(self) -> None:
        super().__init__("Username or email already exists")


class UserNotFoundError(NotFoundError):
    """Raised when a user is not found."""

    def __init__(self, identifier: str) -> None:
        super().__init__("User", identifier)
