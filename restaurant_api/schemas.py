"""
Pydantic Schemas for Request/Response Validation

JSON keys are camelCase on the wire (foodId, purchaseCount, ...) and
snake_case in Python. Food payloads allow extra keys: descriptive
attributes such as image or category are passed through verbatim.

Counts (quantity, delta) are left untyped here and checked by the services,
so JSON booleans and numeric strings are refused instead of coerced.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class FoodCreate(CamelModel):
    """Request schema for adding a food. Extra keys are kept as attributes."""
    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1, max_length=200, examples=["Chicken Biryani"])
    price: float = Field(..., ge=0, allow_inf_nan=False, strict=True, examples=[12.5])
    quantity: Any = Field(default=0, examples=[20])

    @property
    def attributes(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class FoodUpdate(CamelModel):
    """Partial update: only the keys present in the body change."""
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False, strict=True)

    def changes(self) -> dict[str, Any]:
        """The supplied fields, declared and extra, as one dict."""
        supplied = {name: getattr(self, name) for name in self.model_fields_set}
        supplied.update(self.model_extra or {})
        return supplied


class StockAdjustment(CamelModel):
    """Signed change to a food's stock."""
    delta: Any = Field(..., examples=[10, -2])


class OrderCreate(CamelModel):
    """
    Request schema for placing an order.

    Only the food and the quantity are read; price and buyer come from
    the server side, so any such keys in the body are ignored.
    """
    model_config = ConfigDict(extra="ignore")

    food_id: str = Field(..., examples=["0f8fad5bd9cb469fa16570867728950e"])
    quantity: Any = Field(..., examples=[2])


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class FoodResponse(CamelModel):
    """A food, including its pass-through attributes."""
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    price: float
    quantity: int
    purchase_count: int
    owner_email: str
    created_at: datetime


class OrderResponse(CamelModel):
    """Response schema for a single order."""
    id: str
    food_id: str
    food_name: str
    quantity: int
    buyer_email: str
    price: float
    date: datetime


class DeleteResponse(BaseModel):
    """Response after deleting a food or cancelling an order."""
    success: bool = True
    message: str
    id: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    storage: str
    auth: str
    timestamp: datetime


FoodList = List[FoodResponse]
OrderList = List[OrderResponse]
