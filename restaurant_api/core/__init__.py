"""
Core module initialization.
Exports configuration, logging utilities and the error taxonomy.
"""

from restaurant_api.core.config import get_settings, Settings, EnvironmentMode
from restaurant_api.core.errors import (
    RestaurantError,
    InvalidInputError,
    UnauthorizedError,
    ForbiddenError,
    NotFoundError,
    InsufficientStockError,
)

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "RestaurantError",
    "InvalidInputError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "InsufficientStockError",
]
