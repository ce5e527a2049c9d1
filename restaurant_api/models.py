"""
SQLAlchemy Database Models

Two tables back the API:
- foods: the catalog, with stock and sales counters
- orders: the ledger of purchases against foods

Orders reference foods by value (no foreign key): a food may be deleted
while orders placed against it remain in the ledger.
"""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Float, Integer, JSON, String

from restaurant_api.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FoodModel(Base):
    """
    Catalog table - one row per purchasable menu item.
    """
    __tablename__ = "foods"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_foods_quantity_non_negative"),
        CheckConstraint("price >= 0", name="ck_foods_price_non_negative"),
    )

    # Primary Key
    id = Column(String(32), primary_key=True)

    # =========================================================================
    # CATALOG DETAILS
    # =========================================================================
    name = Column(String(200), nullable=False)
    price = Column(Float, nullable=False)
    attributes = Column(JSON, nullable=False, default=dict)  # Extra descriptive fields

    # =========================================================================
    # STOCK & SALES
    # =========================================================================
    quantity = Column(Integer, nullable=False, default=0)
    purchase_count = Column(Integer, nullable=False, default=0, index=True)

    # =========================================================================
    # OWNERSHIP
    # =========================================================================
    owner_email = Column(String(255), nullable=False, index=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<Food {self.id} - {self.name} - qty={self.quantity}>"


class OrderModel(Base):
    """
    Ledger table - one row per active order. Rows are never updated,
    only inserted and deleted.
    """
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_orders_quantity_positive"),
    )

    id = Column(String(32), primary_key=True)
    food_id = Column(String(32), nullable=False, index=True)
    food_name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    buyer_email = Column(String(255), nullable=False, index=True)
    price = Column(Float, nullable=False)  # Unit price snapshot
    date = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<Order {self.id} - {self.food_id} x{self.quantity} - {self.buyer_email}>"
