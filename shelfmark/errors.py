"""
Error taxonomy for Shelfmark.

Raised by repositories and the access gate; translated into JSON
responses by ``shelfmark.api.middleware.error_handler``.
"""


class ShelfmarkException(Exception):
    """Base exception for Shelfmark errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        detail: str = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class ValidationError(ShelfmarkException):
    """Missing or invalid input."""

    def __init__(self, message: str, detail: str = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
            detail=detail,
        )


class NotFoundError(ShelfmarkException):
    """Referenced entity does not exist."""

    def __init__(self, resource: str, identifier=None):
        super().__init__(
            message=f"{resource} not found",
            code="NOT_FOUND",
            status_code=404,
            detail=f"No {resource.lower()} with identifier '{identifier}' exists" if identifier is not None else None,
        )


class ConflictError(ShelfmarkException):
    """Request collides with existing state."""

    def __init__(self, message: str, detail: str = None):
        super().__init__(
            message=message,
            code="CONFLICT",
            status_code=409,
            detail=detail,
        )


class AuthError(ShelfmarkException):
    """Missing, invalid or expired credential."""

    def __init__(self, message: str = "Invalid token", status_code: int = 401):
        super().__init__(
            message=message,
            code="AUTH_ERROR",
            status_code=status_code,
        )


class AuthorizationError(ShelfmarkException):
    """Authenticated principal lacks the required role."""

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(
            message=message,
            code="FORBIDDEN",
            status_code=403,
        )


class ServiceError(ShelfmarkException):
    """Underlying persistence failure."""

    def __init__(self, message: str = "Internal server error", detail: str = None):
        super().__init__(
            message=message,
            code="INTERNAL_ERROR",
            status_code=500,
            detail=detail,
        )
