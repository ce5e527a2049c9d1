"""
Storage Factory

Provides a single entry point for building the storage backend.
The factory keeps the rest of the application agnostic about which
implementation is being used; the application factory calls it once and
passes the result down explicitly.

Usage:
    from restaurant_api.storage import build_storage

    # Returns MemoryStorage or SqlStorage based on ENV_MODE
    storage = build_storage(settings)

    async with storage.unit_of_work() as uow:
        food = await uow.foods.get_food(food_id)

Environment Switching:
    - ENV_MODE=development → MemoryStorage (no database)
    - ENV_MODE=staging → SqlStorage
    - ENV_MODE=production → SqlStorage
"""

import logging

from restaurant_api.core.config import Settings
from restaurant_api.storage.base import (
    BaseFoodStore,
    BaseOrderStore,
    BaseStorage,
    BaseUnitOfWork,
    FoodItem,
    Order,
    new_identifier,
    parse_identifier,
)
from restaurant_api.storage.memory import MemoryStorage
from restaurant_api.storage.sql import SqlStorage

logger = logging.getLogger(__name__)


def build_storage(settings: Settings) -> BaseStorage:
    """
    Build the configured storage backend.

    Args:
        settings: Application settings

    Returns:
        BaseStorage: MemoryStorage in development, SqlStorage otherwise
    """
    if settings.is_development:
        logger.info("Storage: Using MemoryStorage (development mode)")
        return MemoryStorage()

    logger.info(f"Storage: Using SqlStorage ({settings.env_mode.value} mode)")
    return SqlStorage.from_url(settings.database_url, echo=settings.database_echo)


__all__ = [
    "build_storage",
    "BaseStorage",
    "BaseUnitOfWork",
    "BaseFoodStore",
    "BaseOrderStore",
    "FoodItem",
    "Order",
    "MemoryStorage",
    "SqlStorage",
    "new_identifier",
    "parse_identifier",
]
