"""
Storage Abstract Base Classes

Defines the interface contract for the food catalog and the order ledger.
Both MemoryStorage and SqlStorage implement these methods, so the
catalog and order services behave identically on either backend.

Every mutation that enforces a precondition (enough stock, record still
present) does so in a single atomic operation and reports failure by
returning ``None``; the services decide which error that means.

Design Pattern: Unit of Work
    - A unit of work groups the catalog and ledger mutations of one
      request into a single commit or rollback
    - SQL backends map it onto a database transaction
    - Backends without transactions undo applied steps with
      compensating actions
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


def new_identifier() -> str:
    """Generate a server-assigned record identifier."""
    return uuid.uuid4().hex


def parse_identifier(value: Any) -> Optional[str]:
    """
    Normalize a client-supplied identifier.

    Returns:
        The canonical 32-char hex form, or None if the value is malformed
    """
    if not isinstance(value, str):
        return None
    try:
        return uuid.UUID(value.strip()).hex
    except ValueError:
        return None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class FoodItem:
    """
    A purchasable menu item with tracked stock.

    Attributes:
        id: Server-assigned identifier
        name: Display name
        price: Unit price, never negative
        quantity: Units on hand, never negative
        owner_email: Creator; the only identity allowed to mutate the item
        purchase_count: Units ever sold; not rolled back on cancellation
        attributes: Extra descriptive fields kept verbatim
        created_at: Server timestamp at creation
    """
    id: str
    name: str
    price: float
    quantity: int
    owner_email: str
    purchase_count: int = 0
    attributes: dict = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        """Convert to the camelCase JSON shape used by the API."""
        return {
            **self.attributes,
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "purchaseCount": self.purchase_count,
            "ownerEmail": self.owner_email,
            "createdAt": self.created_at,
        }


@dataclass
class Order:
    """
    One purchase against a FoodItem. Immutable once created.

    ``price`` and ``food_name`` are snapshots of the food at order time.
    """
    id: str
    food_id: str
    food_name: str
    quantity: int
    buyer_email: str
    price: float
    date: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        """Convert to the camelCase JSON shape used by the API."""
        return {
            "id": self.id,
            "foodId": self.food_id,
            "foodName": self.food_name,
            "quantity": self.quantity,
            "buyerEmail": self.buyer_email,
            "price": self.price,
            "date": self.date,
        }


class BaseFoodStore(ABC):
    """Catalog of FoodItems keyed by identifier."""

    @abstractmethod
    async def list_foods(self, owner_email: Optional[str] = None) -> list[FoodItem]:
        """
        List foods in storage order, optionally only those of one owner.

        The owner filter matches emails case-insensitively, ignoring
        surrounding whitespace.
        """
        pass

    @abstractmethod
    async def get_food(self, food_id: str) -> Optional[FoodItem]:
        pass

    @abstractmethod
    async def insert_food(self, food: FoodItem) -> FoodItem:
        pass

    @abstractmethod
    async def update_food(self, food_id: str, changes: dict[str, Any]) -> Optional[FoodItem]:
        """
        Merge changes into a food.

        Args:
            food_id: Target food
            changes: ``name`` and ``price`` update the columns of the same
                name; every other key is merged into ``attributes``

        Returns:
            The updated food, or None if it does not exist
        """
        pass

    @abstractmethod
    async def delete_food(self, food_id: str) -> Optional[FoodItem]:
        """Delete a food, returning the removed record or None."""
        pass

    @abstractmethod
    async def adjust_stock(
        self,
        food_id: str,
        delta: int,
        purchased: int = 0,
    ) -> Optional[FoodItem]:
        """
        Atomically apply ``delta`` to quantity and ``purchased`` to
        purchase_count, iff the food exists and quantity + delta >= 0.

        Check and write happen as one operation, never as a
        read-then-write pair.

        Returns:
            The updated food, or None if the precondition failed
        """
        pass

    @abstractmethod
    async def top_sellers(self, limit: int) -> list[FoodItem]:
        """Foods by purchase_count descending, ties in storage order."""
        pass


class BaseOrderStore(ABC):
    """Ledger of Orders keyed by identifier."""

    @abstractmethod
    async def list_orders(self, buyer_email: str) -> list[Order]:
        """List a buyer's orders, newest first."""
        pass

    @abstractmethod
    async def get_order(self, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def insert_order(self, order: Order) -> Order:
        pass

    @abstractmethod
    async def delete_order(self, order_id: str) -> Optional[Order]:
        """Delete an order, returning the removed record or None."""
        pass


class BaseUnitOfWork(ABC):
    """
    Transactional scope over both stores.

    Use as an async context manager: leaving the block normally commits,
    leaving it with an exception rolls back and re-raises.

    Example:
        >>> async with storage.unit_of_work() as uow:
        ...     food = await uow.foods.adjust_stock(food_id, -2, purchased=2)
        ...     await uow.orders.insert_order(order)
    """

    foods: BaseFoodStore
    orders: BaseOrderStore

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def rollback(self) -> None:
        pass

    async def close(self) -> None:
        """Release backend resources held by this unit of work."""

    async def __aenter__(self) -> "BaseUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                await self.commit()
            else:
                await self.rollback()
        finally:
            await self.close()


class BaseStorage(ABC):
    """
    Abstract base class for storage backends.

    All backends (memory, SQL) must inherit from this class and
    implement all abstract methods.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the storage backend.

        Returns:
            str: Backend name (e.g., "memory", "sql")
        """
        pass

    @abstractmethod
    def unit_of_work(self) -> BaseUnitOfWork:
        """Open a new unit of work over both stores."""
        pass

    async def init(self) -> None:
        """Prepare the backend (create tables, warm pools). Called at startup."""

    async def dispose(self) -> None:
        """Release backend resources. Called at shutdown."""

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify the backend is reachable.

        Returns:
            bool: True if storage is operational
        """
        pass
