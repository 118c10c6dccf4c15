"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class AccessDenied(AppError):
    """Raised when the caller may not perform an action."""

    def __init__(self, message="You are not allowed to do that."):
        """Initialize the error."""
        super().__init__(message, 403)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class UserNotFoundError(NotFoundError):
    """Raised when a user reference does not resolve to a user document."""

    def __init__(self, message="User not found."):
        """Initialize the error."""
        super().__init__(message)


class UserNotInRotationError(AppError):
    """Raised when a user is not part of a group's turn order."""

    def __init__(self, message="User is not in the turn order."):
        """Initialize the error."""
        super().__init__(message, 400)


class InvalidStateError(AppError):
    """Raised when the rotation cannot support the requested operation."""

    def __init__(self, message="The rotation is unavailable."):
        """Initialize the error."""
        super().__init__(message, 409)


class PersistenceConflictError(AppError):
    """Raised when a concurrent update wins over ours."""

    def __init__(self, message="The group was updated concurrently. Try again."):
        """Initialize the error."""
        super().__init__(message, 409)
