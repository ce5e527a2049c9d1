"""
Shared business rules.

The identity predicate here is the only place ownership and buyer checks
are decided; every mutation goes through it.
"""

import math
from typing import Any

from restaurant_api.core.errors import ForbiddenError, InvalidInputError
from restaurant_api.services.auth.base import VerifiedIdentity


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def is_same_identity(expected_email: str, identity: VerifiedIdentity) -> bool:
    """Emails match case-insensitively, ignoring surrounding whitespace."""
    return _normalize_email(expected_email) == _normalize_email(identity.email)


def ensure_same_identity(
    expected_email: str,
    identity: VerifiedIdentity,
    resource: str,
) -> None:
    """
    Require the caller to be the identity a record belongs to.

    Args:
        expected_email: The record's owner or buyer
        identity: The authenticated caller
        resource: Description used in the error message

    Raises:
        ForbiddenError: If the caller is someone else
    """
    if not is_same_identity(expected_email, identity):
        raise ForbiddenError(f"You are not allowed to access this {resource}")


def require_int(value: Any, field: str) -> int:
    """
    Accept a finite integer; integral floats (4.0) are converted.

    Raises:
        InvalidInputError: For bools, strings, fractions, NaN and infinity
    """
    if isinstance(value, bool):
        raise InvalidInputError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    raise InvalidInputError(f"{field} must be an integer")


def require_positive_int(value: Any, field: str) -> int:
    number = require_int(value, field)
    if number <= 0:
        raise InvalidInputError(f"{field} must be a positive integer")
    return number


def require_price(value: Any) -> float:
    """A price is a finite, non-negative number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError("price must be a number")
    if not math.isfinite(value) or value < 0:
        raise InvalidInputError("price must be a finite, non-negative number")
    return float(value)


def require_name(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError("name must be a non-empty string")
    return value.strip()
