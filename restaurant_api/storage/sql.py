"""
SQL Storage Implementation

Production backend on a SQLAlchemy async engine. Used when
ENV_MODE=production or ENV_MODE=staging (PostgreSQL via psycopg), and by
the tests against SQLite via aiosqlite.

Behavior:
    - One unit of work is one database transaction
    - Stock changes are a single conditional UPDATE ... RETURNING, so two
      concurrent orders against the same food cannot both pass the stock
      check (the row lock serializes them and the WHERE clause is
      re-evaluated against the committed quantity)
    - Statements run against the tables directly and rows are mapped to
      FoodItem / Order dataclasses; ORM instances never leave this module
"""

import logging
from typing import Any, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from restaurant_api.database import create_engine, create_session_maker, init_db
from restaurant_api.models import FoodModel, OrderModel
from restaurant_api.storage.base import (
    BaseFoodStore,
    BaseOrderStore,
    BaseStorage,
    BaseUnitOfWork,
    FoodItem,
    Order,
)

logger = logging.getLogger(__name__)

foods_table = FoodModel.__table__
orders_table = OrderModel.__table__


def _food_from_row(row: RowMapping) -> FoodItem:
    return FoodItem(
        id=row["id"],
        name=row["name"],
        price=row["price"],
        quantity=row["quantity"],
        owner_email=row["owner_email"],
        purchase_count=row["purchase_count"],
        attributes=dict(row["attributes"] or {}),
        created_at=row["created_at"],
    )


def _order_from_row(row: RowMapping) -> Order:
    return Order(
        id=row["id"],
        food_id=row["food_id"],
        food_name=row["food_name"],
        quantity=row["quantity"],
        buyer_email=row["buyer_email"],
        price=row["price"],
        date=row["date"],
    )


class SqlFoodStore(BaseFoodStore):

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_foods(self, owner_email: Optional[str] = None) -> list[FoodItem]:
        query = select(foods_table).order_by(foods_table.c.created_at, foods_table.c.id)
        if owner_email is not None:
            query = query.where(
                func.lower(func.trim(foods_table.c.owner_email)) == owner_email.strip().lower()
            )
        result = await self._session.execute(query)
        return [_food_from_row(row) for row in result.mappings()]

    async def get_food(self, food_id: str) -> Optional[FoodItem]:
        result = await self._session.execute(
            select(foods_table).where(foods_table.c.id == food_id)
        )
        row = result.mappings().first()
        return _food_from_row(row) if row else None

    async def insert_food(self, food: FoodItem) -> FoodItem:
        result = await self._session.execute(
            insert(foods_table)
            .values(
                id=food.id,
                name=food.name,
                price=food.price,
                quantity=food.quantity,
                purchase_count=food.purchase_count,
                owner_email=food.owner_email,
                attributes=food.attributes,
                created_at=food.created_at,
            )
            .returning(*foods_table.c)
        )
        return _food_from_row(result.mappings().one())

    async def update_food(self, food_id: str, changes: dict[str, Any]) -> Optional[FoodItem]:
        # Lock the row so concurrent merges of the JSON attributes don't race
        result = await self._session.execute(
            select(foods_table).where(foods_table.c.id == food_id).with_for_update()
        )
        row = result.mappings().first()
        if row is None:
            return None

        values: dict[str, Any] = {}
        attributes = dict(row["attributes"] or {})
        for key, value in changes.items():
            if key in ("name", "price"):
                values[key] = value
            else:
                attributes[key] = value
        values["attributes"] = attributes

        result = await self._session.execute(
            update(foods_table)
            .where(foods_table.c.id == food_id)
            .values(**values)
            .returning(*foods_table.c)
        )
        return _food_from_row(result.mappings().one())

    async def delete_food(self, food_id: str) -> Optional[FoodItem]:
        result = await self._session.execute(
            delete(foods_table)
            .where(foods_table.c.id == food_id)
            .returning(*foods_table.c)
        )
        row = result.mappings().first()
        return _food_from_row(row) if row else None

    async def adjust_stock(
        self,
        food_id: str,
        delta: int,
        purchased: int = 0,
    ) -> Optional[FoodItem]:
        result = await self._session.execute(
            update(foods_table)
            .where(
                foods_table.c.id == food_id,
                foods_table.c.quantity + delta >= 0,
            )
            .values(
                quantity=foods_table.c.quantity + delta,
                purchase_count=foods_table.c.purchase_count + purchased,
            )
            .returning(*foods_table.c)
        )
        row = result.mappings().first()
        return _food_from_row(row) if row else None

    async def top_sellers(self, limit: int) -> list[FoodItem]:
        result = await self._session.execute(
            select(foods_table)
            .order_by(
                foods_table.c.purchase_count.desc(),
                foods_table.c.created_at,
                foods_table.c.id,
            )
            .limit(limit)
        )
        return [_food_from_row(row) for row in result.mappings()]


class SqlOrderStore(BaseOrderStore):

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_orders(self, buyer_email: str) -> list[Order]:
        result = await self._session.execute(
            select(orders_table)
            .where(orders_table.c.buyer_email == buyer_email)
            .order_by(orders_table.c.date.desc(), orders_table.c.id)
        )
        return [_order_from_row(row) for row in result.mappings()]

    async def get_order(self, order_id: str) -> Optional[Order]:
        result = await self._session.execute(
            select(orders_table).where(orders_table.c.id == order_id)
        )
        row = result.mappings().first()
        return _order_from_row(row) if row else None

    async def insert_order(self, order: Order) -> Order:
        result = await self._session.execute(
            insert(orders_table)
            .values(
                id=order.id,
                food_id=order.food_id,
                food_name=order.food_name,
                quantity=order.quantity,
                buyer_email=order.buyer_email,
                price=order.price,
                date=order.date,
            )
            .returning(*orders_table.c)
        )
        return _order_from_row(result.mappings().one())

    async def delete_order(self, order_id: str) -> Optional[Order]:
        result = await self._session.execute(
            delete(orders_table)
            .where(orders_table.c.id == order_id)
            .returning(*orders_table.c)
        )
        row = result.mappings().first()
        return _order_from_row(row) if row else None


class SqlUnitOfWork(BaseUnitOfWork):
    """One AsyncSession, one transaction, both stores bound to it."""

    def __init__(self, session: AsyncSession):
        self._session = session
        self.foods = SqlFoodStore(session)
        self.orders = SqlOrderStore(session)

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()

    async def close(self) -> None:
        await self._session.close()


class SqlStorage(BaseStorage):
    """
    SQLAlchemy-backed storage.

    Example:
        >>> storage = SqlStorage.from_url("sqlite+aiosqlite:///restaurant.db")
        >>> await storage.init()
        >>> async with storage.unit_of_work() as uow:
        ...     foods = await uow.foods.list_foods()
    """

    def __init__(self, engine: AsyncEngine):
        self._engine = engine
        self._session_maker = create_session_maker(engine)
        logger.info(f"SqlStorage initialized ({engine.dialect.name})")

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> "SqlStorage":
        return cls(create_engine(database_url, echo=echo))

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "sql"

    def unit_of_work(self) -> SqlUnitOfWork:
        return SqlUnitOfWork(self._session_maker())

    async def init(self) -> None:
        await init_db(self._engine)
        logger.info("Database tables ready")

    async def dispose(self) -> None:
        await self._engine.dispose()

    async def health_check(self) -> bool:
        try:
            async with self._engine.connect() as conn:
                await conn.execute(select(1))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False
