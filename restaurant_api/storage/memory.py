"""
In-Memory Storage Implementation

Keeps foods and orders in process dictionaries. Used in development mode
(ENV_MODE=development) and by the test suite to:
    - Run the API locally without a database
    - Exercise the order/stock rules in isolation

Behavior:
    - Each mutation checks its precondition and writes without an await
      in between, so on a single event loop it is atomic
    - There are no transactions: every applied mutation records a
      compensating action, and a rolled-back unit of work replays them
      in reverse order
    - Records are copied on the way in and out; callers never hold a
      reference into the store
"""

import copy
import logging
from typing import Any, Callable, Optional

from restaurant_api.storage.base import (
    BaseFoodStore,
    BaseOrderStore,
    BaseStorage,
    BaseUnitOfWork,
    FoodItem,
    Order,
)

logger = logging.getLogger(__name__)

Compensation = Callable[[], None]


class MemoryFoodStore(BaseFoodStore):

    def __init__(self, foods: dict[str, FoodItem], journal: list[Compensation]):
        self._foods = foods
        self._journal = journal

    def _restore(self, food_id: str, previous: Optional[FoodItem]) -> Compensation:
        def undo() -> None:
            if previous is None:
                self._foods.pop(food_id, None)
            else:
                self._foods[food_id] = previous
        return undo

    async def list_foods(self, owner_email: Optional[str] = None) -> list[FoodItem]:
        wanted = owner_email.strip().lower() if owner_email is not None else None
        return [
            copy.deepcopy(food)
            for food in self._foods.values()
            if wanted is None or food.owner_email.strip().lower() == wanted
        ]

    async def get_food(self, food_id: str) -> Optional[FoodItem]:
        food = self._foods.get(food_id)
        return copy.deepcopy(food) if food else None

    async def insert_food(self, food: FoodItem) -> FoodItem:
        self._foods[food.id] = copy.deepcopy(food)
        self._journal.append(self._restore(food.id, None))
        return copy.deepcopy(food)

    async def update_food(self, food_id: str, changes: dict[str, Any]) -> Optional[FoodItem]:
        current = self._foods.get(food_id)
        if current is None:
            return None

        updated = copy.deepcopy(current)
        for key, value in changes.items():
            if key in ("name", "price"):
                setattr(updated, key, value)
            else:
                updated.attributes[key] = value

        self._foods[food_id] = updated
        self._journal.append(self._restore(food_id, current))
        return copy.deepcopy(updated)

    async def delete_food(self, food_id: str) -> Optional[FoodItem]:
        removed = self._foods.pop(food_id, None)
        if removed is None:
            return None
        self._journal.append(self._restore(food_id, removed))
        return copy.deepcopy(removed)

    async def adjust_stock(
        self,
        food_id: str,
        delta: int,
        purchased: int = 0,
    ) -> Optional[FoodItem]:
        current = self._foods.get(food_id)
        if current is None or current.quantity + delta < 0:
            return None

        updated = copy.deepcopy(current)
        updated.quantity += delta
        updated.purchase_count += purchased

        self._foods[food_id] = updated
        self._journal.append(self._restore(food_id, current))
        return copy.deepcopy(updated)

    async def top_sellers(self, limit: int) -> list[FoodItem]:
        # sorted() is stable, so ties keep insertion order
        ranked = sorted(
            self._foods.values(),
            key=lambda food: food.purchase_count,
            reverse=True,
        )
        return [copy.deepcopy(food) for food in ranked[:limit]]


class MemoryOrderStore(BaseOrderStore):

    def __init__(self, orders: dict[str, Order], journal: list[Compensation]):
        self._orders = orders
        self._journal = journal

    async def list_orders(self, buyer_email: str) -> list[Order]:
        mine = [o for o in self._orders.values() if o.buyer_email == buyer_email]
        mine.sort(key=lambda o: o.date, reverse=True)
        return [copy.deepcopy(o) for o in mine]

    async def get_order(self, order_id: str) -> Optional[Order]:
        order = self._orders.get(order_id)
        return copy.deepcopy(order) if order else None

    async def insert_order(self, order: Order) -> Order:
        self._orders[order.id] = copy.deepcopy(order)
        self._journal.append(lambda: self._orders.pop(order.id, None))
        return copy.deepcopy(order)

    async def delete_order(self, order_id: str) -> Optional[Order]:
        removed = self._orders.pop(order_id, None)
        if removed is None:
            return None

        def undo() -> None:
            self._orders[order_id] = removed

        self._journal.append(undo)
        return copy.deepcopy(removed)


class MemoryUnitOfWork(BaseUnitOfWork):
    """
    Unit of work with compensating rollback.

    Mutations are visible immediately; ``rollback`` undoes the ones applied
    through this unit of work, newest first.
    """

    def __init__(self, storage: "MemoryStorage"):
        self._journal: list[Compensation] = []
        self.foods = MemoryFoodStore(storage._foods, self._journal)
        self.orders = MemoryOrderStore(storage._orders, self._journal)

    async def commit(self) -> None:
        self._journal.clear()

    async def rollback(self) -> None:
        if self._journal:
            logger.warning(f"Rolling back {len(self._journal)} in-memory mutation(s)")
        while self._journal:
            undo = self._journal.pop()
            undo()


class MemoryStorage(BaseStorage):
    """
    Process-local storage backend.

    Example:
        >>> storage = MemoryStorage()
        >>> async with storage.unit_of_work() as uow:
        ...     await uow.foods.insert_food(food)
    """

    def __init__(self):
        self._foods: dict[str, FoodItem] = {}
        self._orders: dict[str, Order] = {}
        logger.info("MemoryStorage initialized")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "memory"

    def unit_of_work(self) -> MemoryUnitOfWork:
        return MemoryUnitOfWork(self)

    async def health_check(self) -> bool:
        """In-memory storage is always available."""
        return True
