"""
Order Service

Places and cancels orders, keeping the catalog's stock in step with the
ledger. Each operation runs in one unit of work: the stock mutation and
the ledger mutation commit together or not at all.

Placement:
    conditional decrement (quantity >= requested) + purchase_count
    increment, then insert the order

Cancellation:
    delete the order, then restock; a food that no longer exists is
    skipped and the cancellation still succeeds

purchase_count is a historical sales counter and is never decremented.
"""

import logging
from typing import Any, Optional

from restaurant_api.core.errors import (
    InsufficientStockError,
    InvalidInputError,
    NotFoundError,
)
from restaurant_api.services.auth.base import VerifiedIdentity
from restaurant_api.services.rules import ensure_same_identity, require_positive_int
from restaurant_api.storage.base import (
    BaseStorage,
    Order,
    new_identifier,
    parse_identifier,
)

logger = logging.getLogger(__name__)


class OrderService:
    """
    Business rules for the order ledger.

    Example:
        >>> service = OrderService(storage)
        >>> order = await service.place_order(food_id, 2, identity)
        >>> await service.cancel_order(order.id, identity)
    """

    def __init__(self, storage: BaseStorage):
        self.storage = storage

    async def place_order(
        self,
        food_id: Any,
        quantity: Any,
        identity: VerifiedIdentity,
    ) -> Order:
        """
        Buy ``quantity`` units of a food.

        Price and buyer are taken from the stored food and the verified
        identity, never from the request.

        Raises:
            NotFoundError: Food does not exist
            InvalidInputError: Quantity is not a positive integer
            InsufficientStockError: Not enough stock, including when a
                concurrent order took it between the check and the decrement
        """
        key = parse_identifier(food_id)

        async with self.storage.unit_of_work() as uow:
            food = await uow.foods.get_food(key) if key else None
            if food is None:
                raise NotFoundError(f"Food {food_id} not found")

            amount = require_positive_int(quantity, "quantity")
            if amount > food.quantity:
                raise InsufficientStockError(
                    f"Only {food.quantity} of '{food.name}' left in stock"
                )

            updated = await uow.foods.adjust_stock(key, -amount, purchased=amount)
            if updated is None:
                raise InsufficientStockError(
                    f"'{food.name}' sold out while the order was being placed"
                )

            order = await uow.orders.insert_order(
                Order(
                    id=new_identifier(),
                    food_id=updated.id,
                    food_name=updated.name,
                    quantity=amount,
                    buyer_email=identity.email,
                    price=updated.price,
                )
            )

        logger.info(
            f"Order {order.id} placed by {identity.email}: "
            f"{amount} x {order.food_name} @ {order.price:.2f} "
            f"(stock left {updated.quantity})"
        )
        return order

    async def cancel_order(self, order_id: Any, identity: VerifiedIdentity) -> Order:
        """
        Delete one of the caller's orders and put its units back in stock.

        Raises:
            InvalidInputError: Malformed order id
            NotFoundError: Order does not exist
            ForbiddenError: Caller is not the buyer
        """
        key = parse_identifier(order_id)
        if key is None:
            raise InvalidInputError(f"Invalid order id: {order_id!r}")

        async with self.storage.unit_of_work() as uow:
            order = await uow.orders.get_order(key)
            if order is None:
                raise NotFoundError(f"Order {order_id} not found")
            ensure_same_identity(order.buyer_email, identity, "order")

            removed = await uow.orders.delete_order(key)
            if removed is None:
                raise NotFoundError(f"Order {order_id} not found")

            restocked = await uow.foods.adjust_stock(removed.food_id, removed.quantity)

        if restocked is None:
            logger.info(
                f"Order {key} cancelled by {identity.email}; "
                f"food {removed.food_id} no longer exists, restock skipped"
            )
        else:
            logger.info(
                f"Order {key} cancelled by {identity.email}; "
                f"{removed.quantity} unit(s) returned to food {removed.food_id}"
            )
        return removed

    async def list_orders(
        self,
        identity: VerifiedIdentity,
        email: Optional[str] = None,
    ) -> list[Order]:
        """
        List the caller's orders, newest first.

        Raises:
            ForbiddenError: ``email`` names someone other than the caller
        """
        if email:
            ensure_same_identity(email, identity, "order list")

        async with self.storage.unit_of_work() as uow:
            return await uow.orders.list_orders(identity.email)
