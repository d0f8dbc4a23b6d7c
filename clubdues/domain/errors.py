class DomainError(Exception):
    """Base exception for business rule violations."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    status_code = 400


class AuthenticationError(DomainError):
    """Raised when a token or login credentials are missing or invalid."""

    status_code = 401


class AuthorizationError(DomainError):
    """Raised when a known user lacks permission, or the account is blocked."""

    status_code = 403


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    """Raised when a username or email is already taken."""

    status_code = 409


class StorageError(DomainError):
    """Raised when the upload backend fails to store a file."""

    status_code = 500
