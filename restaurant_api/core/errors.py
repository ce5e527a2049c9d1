"""
Error Taxonomy

Business-rule failures raised by the services. The HTTP layer translates
each one into its status code and the standard error envelope; anything
not listed here is reported as a generic 500.
"""


class RestaurantError(Exception):
    """
    Base class for expected, client-facing failures.

    Attributes:
        status_code: HTTP status the error maps to
        error: Machine-readable error kind
        message: Human-readable description, safe to return to clients
    """

    status_code: int = 500
    error: str = "Internal"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        """Convert to the JSON error envelope."""
        return {
            "success": False,
            "error": self.error,
            "detail": self.message,
        }


class InvalidInputError(RestaurantError):
    """Malformed identifier, non-numeric quantity, bad request body."""
    status_code = 400
    error = "InvalidInput"


class UnauthorizedError(RestaurantError):
    """Missing or invalid bearer token."""
    status_code = 401
    error = "Unauthorized"


class ForbiddenError(RestaurantError):
    """Authenticated caller is not the owner or buyer of the record."""
    status_code = 403
    error = "Forbidden"


class NotFoundError(RestaurantError):
    status_code = 404
    error = "NotFound"


class InsufficientStockError(RestaurantError):
    """Requested quantity exceeds stock, or an adjustment would go negative."""
    status_code = 400
    error = "InsufficientStock"
