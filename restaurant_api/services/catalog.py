"""
Catalog Service

Food catalog operations: creation, reads, owner-only mutation, manual
stock adjustment and the top-sellers query.
"""

import logging
from typing import Any, Optional

from restaurant_api.core.errors import (
    InsufficientStockError,
    InvalidInputError,
    NotFoundError,
)
from restaurant_api.services.auth.base import VerifiedIdentity
from restaurant_api.services.rules import (
    ensure_same_identity,
    require_int,
    require_name,
    require_price,
)
from restaurant_api.storage.base import (
    BaseStorage,
    FoodItem,
    new_identifier,
    parse_identifier,
)

logger = logging.getLogger(__name__)

# Bookkeeping fields that only the server writes. Stock moves through
# adjust_stock and orders, never through a field merge.
PROTECTED_FOOD_FIELDS = frozenset(
    {
        "id", "_id", "quantity",
        "ownerEmail", "owner_email",
        "purchaseCount", "purchase_count",
        "createdAt", "created_at",
    }
)


class CatalogService:
    """
    Business rules for the food catalog.

    Attributes:
        storage: Backend the catalog lives in
        top_sellers_limit: Default size of the top-sellers list
    """

    def __init__(self, storage: BaseStorage, top_sellers_limit: int = 6):
        self.storage = storage
        self.top_sellers_limit = top_sellers_limit

    def _not_found(self, food_id: Any) -> NotFoundError:
        return NotFoundError(f"Food {food_id} not found")

    async def list_foods(self, owner_email: Optional[str] = None) -> list[FoodItem]:
        async with self.storage.unit_of_work() as uow:
            return await uow.foods.list_foods(owner_email=owner_email)

    async def get_food(self, food_id: str) -> FoodItem:
        """
        Fetch one food.

        A malformed identifier cannot name a food, so it is reported as
        NotFound rather than InvalidInput.
        """
        key = parse_identifier(food_id)
        if key is None:
            raise self._not_found(food_id)

        async with self.storage.unit_of_work() as uow:
            food = await uow.foods.get_food(key)
        if food is None:
            raise self._not_found(food_id)
        return food

    async def add_food(
        self,
        name: Any,
        price: Any,
        quantity: Any,
        identity: VerifiedIdentity,
        attributes: Optional[dict[str, Any]] = None,
    ) -> FoodItem:
        """
        Create a food owned by the caller.

        Client-supplied bookkeeping fields in ``attributes`` are dropped;
        the owner always comes from the verified identity.
        """
        stock = require_int(quantity, "quantity")
        if stock < 0:
            raise InvalidInputError("quantity must not be negative")

        extras = {
            key: value
            for key, value in (attributes or {}).items()
            if key not in PROTECTED_FOOD_FIELDS
        }

        food = FoodItem(
            id=new_identifier(),
            name=require_name(name),
            price=require_price(price),
            quantity=stock,
            owner_email=identity.email,
            purchase_count=0,
            attributes=extras,
        )

        async with self.storage.unit_of_work() as uow:
            created = await uow.foods.insert_food(food)

        logger.info(f"Food {created.id} '{created.name}' added by {identity.email}")
        return created

    async def update_food(
        self,
        food_id: str,
        changes: dict[str, Any],
        identity: VerifiedIdentity,
    ) -> FoodItem:
        """
        Merge ``changes`` into a food the caller owns (partial update).

        Raises:
            NotFoundError: Food does not exist
            ForbiddenError: Caller is not the owner
            InvalidInputError: A protected field or an invalid value was sent
        """
        protected = sorted(PROTECTED_FOOD_FIELDS.intersection(changes))
        if protected:
            raise InvalidInputError(f"Fields cannot be updated: {', '.join(protected)}")

        cleaned = dict(changes)
        if "name" in cleaned:
            cleaned["name"] = require_name(cleaned["name"])
        if "price" in cleaned:
            cleaned["price"] = require_price(cleaned["price"])

        key = parse_identifier(food_id)
        if key is None:
            raise self._not_found(food_id)

        async with self.storage.unit_of_work() as uow:
            food = await uow.foods.get_food(key)
            if food is None:
                raise self._not_found(food_id)
            ensure_same_identity(food.owner_email, identity, "food")

            if not cleaned:
                return food

            updated = await uow.foods.update_food(key, cleaned)
            if updated is None:
                raise self._not_found(food_id)

        logger.info(f"Food {key} updated by {identity.email}: {sorted(cleaned)}")
        return updated

    async def delete_food(self, food_id: str, identity: VerifiedIdentity) -> FoodItem:
        """Delete a food the caller owns. Orders against it are kept."""
        key = parse_identifier(food_id)
        if key is None:
            raise self._not_found(food_id)

        async with self.storage.unit_of_work() as uow:
            food = await uow.foods.get_food(key)
            if food is None:
                raise self._not_found(food_id)
            ensure_same_identity(food.owner_email, identity, "food")

            removed = await uow.foods.delete_food(key)
            if removed is None:
                raise self._not_found(food_id)

        logger.info(f"Food {key} deleted by {identity.email}")
        return removed

    async def adjust_stock(
        self,
        food_id: str,
        delta: Any,
        identity: VerifiedIdentity,
    ) -> FoodItem:
        """
        Restock (positive delta) or correct (negative delta) a food.

        purchase_count is not touched.

        Raises:
            NotFoundError: Food does not exist
            ForbiddenError: Caller is not the owner
            InvalidInputError: Delta is not a finite integer
            InsufficientStockError: Stock would go negative
        """
        key = parse_identifier(food_id)
        if key is None:
            raise self._not_found(food_id)

        async with self.storage.unit_of_work() as uow:
            food = await uow.foods.get_food(key)
            if food is None:
                raise self._not_found(food_id)
            ensure_same_identity(food.owner_email, identity, "food")

            amount = require_int(delta, "delta")
            if food.quantity + amount < 0:
                raise InsufficientStockError(
                    f"Only {food.quantity} left in stock; cannot remove {-amount}"
                )

            updated = await uow.foods.adjust_stock(key, amount)
            if updated is None:
                # Lost a race with an order or another adjustment
                if await uow.foods.get_food(key) is None:
                    raise self._not_found(food_id)
                raise InsufficientStockError("Stock changed; adjustment would go negative")

        logger.info(
            f"Stock of food {key} adjusted by {amount:+d} to {updated.quantity} "
            f"by {identity.email}"
        )
        return updated

    async def top_sellers(self, limit: Optional[int] = None) -> list[FoodItem]:
        """Best-selling foods, purchase_count descending, ties in storage order."""
        limit = self.top_sellers_limit if limit is None else limit
        async with self.storage.unit_of_work() as uow:
            return await uow.foods.top_sellers(limit)
