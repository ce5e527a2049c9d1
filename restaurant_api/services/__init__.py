"""
                        Services Module

Business logic and external collaborators.

Services:
    - catalog: food catalog rules (ownership, stock adjustment, top sellers)
    - orders: order placement and cancellation with stock bookkeeping
    - auth: bearer-token verification (mock and Firebase)
"""

from restaurant_api.services.catalog import CatalogService
from restaurant_api.services.orders import OrderService

__all__ = ["CatalogService", "OrderService"]
