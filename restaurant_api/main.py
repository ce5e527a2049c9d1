"""
FastAPI Application Entry Point

Restaurant Ordering API - food catalog and order ledger.
Supports in-memory storage and dev tokens (development) and a SQL
database with Firebase ID tokens (staging/production).

Endpoints:
    - GET /foods, GET /foods/{id}: Browse the catalog
    - POST /foods: Add a food (authenticated)
    - PUT|PATCH /foods/{id}, DELETE /foods/{id}: Owner-only mutation
    - PATCH /foods/{id}/stock: Owner-only restock / correction
    - GET /orders, POST /orders, DELETE /orders/{id}: The caller's orders
    - GET /topFoods: Best sellers
    - GET /health: System health check
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from restaurant_api.core.config import Settings, get_settings, setup_logging
from restaurant_api.core.errors import RestaurantError, UnauthorizedError
from restaurant_api.schemas import (
    DeleteResponse,
    ErrorResponse,
    FoodCreate,
    FoodList,
    FoodResponse,
    FoodUpdate,
    HealthResponse,
    OrderCreate,
    OrderList,
    OrderResponse,
    StockAdjustment,
)
from restaurant_api.services import CatalogService, OrderService
from restaurant_api.services.auth import (
    BaseTokenVerifier,
    VerifiedIdentity,
    build_token_verifier,
)
from restaurant_api.storage import BaseStorage, build_storage

logger = logging.getLogger(__name__)

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}

router = APIRouter()


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_catalog_service(request: Request) -> CatalogService:
    return request.app.state.catalog_service


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


async def get_current_identity(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> VerifiedIdentity:
    """
    Resolve the bearer token to a verified identity.

    Raises:
        UnauthorizedError: Missing header, wrong scheme or rejected token
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Missing bearer token")

    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise UnauthorizedError("Missing bearer token")

    verifier: BaseTokenVerifier = request.app.state.token_verifier
    result = await verifier.verify_token(token)
    if not result.success:
        raise UnauthorizedError(result.error_message or "Invalid token")
    return result.identity


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@router.get("/", tags=["Root"])
async def root(request: Request) -> dict[str, str]:
    """API root with navigation links."""
    settings: Settings = request.app.state.settings
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(request: Request) -> HealthResponse:
    """Verify storage and token verification are operational."""
    storage: BaseStorage = request.app.state.storage
    verifier: BaseTokenVerifier = request.app.state.token_verifier

    storage_status = "healthy" if await storage.health_check() else "unhealthy"
    auth_status = "healthy" if await verifier.health_check() else "unhealthy"

    overall = "operational" if storage_status == auth_status == "healthy" else "degraded"

    return HealthResponse(
        status=overall,
        storage=f"{storage.provider_name}: {storage_status}",
        auth=f"{verifier.provider_name}: {auth_status}",
        timestamp=datetime.now(timezone.utc),
    )


# =============================================================================
# FOOD ENDPOINTS
# =============================================================================

@router.get("/foods", response_model=FoodList, tags=["Foods"])
async def list_foods(
    email: Optional[str] = Query(None, description="Only foods added by this owner"),
    catalog: CatalogService = Depends(get_catalog_service),
) -> list[dict]:
    """List the catalog, optionally filtered by owner."""
    foods = await catalog.list_foods(owner_email=email)
    return [food.to_dict() for food in foods]


@router.get(
    "/foods/{food_id}",
    response_model=FoodResponse,
    responses=ERROR_RESPONSES,
    tags=["Foods"],
)
async def get_food(
    food_id: str,
    catalog: CatalogService = Depends(get_catalog_service),
) -> dict:
    food = await catalog.get_food(food_id)
    return food.to_dict()


@router.post(
    "/foods",
    status_code=201,
    response_model=FoodResponse,
    responses=ERROR_RESPONSES,
    tags=["Foods"],
    summary="Add Food",
)
async def add_food(
    payload: FoodCreate,
    identity: VerifiedIdentity = Depends(get_current_identity),
    catalog: CatalogService = Depends(get_catalog_service),
) -> dict:
    """
    Add a food owned by the caller.

    Any keys beyond name, price and quantity are stored as descriptive
    attributes. The owner is always the authenticated caller.
    """
    food = await catalog.add_food(
        name=payload.name,
        price=payload.price,
        quantity=payload.quantity,
        identity=identity,
        attributes=payload.attributes,
    )
    return food.to_dict()


@router.api_route(
    "/foods/{food_id}",
    methods=["PUT", "PATCH"],
    response_model=FoodResponse,
    responses=ERROR_RESPONSES,
    tags=["Foods"],
    summary="Update Food (owner only)",
)
async def update_food(
    food_id: str,
    payload: FoodUpdate,
    identity: VerifiedIdentity = Depends(get_current_identity),
    catalog: CatalogService = Depends(get_catalog_service),
) -> dict:
    """Merge the supplied fields into the food. Stock moves via /stock."""
    food = await catalog.update_food(food_id, payload.changes(), identity)
    return food.to_dict()


@router.patch(
    "/foods/{food_id}/stock",
    response_model=FoodResponse,
    responses=ERROR_RESPONSES,
    tags=["Foods"],
    summary="Adjust Stock (owner only)",
)
async def adjust_stock(
    food_id: str,
    payload: StockAdjustment,
    identity: VerifiedIdentity = Depends(get_current_identity),
    catalog: CatalogService = Depends(get_catalog_service),
) -> dict:
    """Restock with a positive delta, correct with a negative one."""
    food = await catalog.adjust_stock(food_id, payload.delta, identity)
    return food.to_dict()


@router.delete(
    "/foods/{food_id}",
    response_model=DeleteResponse,
    responses=ERROR_RESPONSES,
    tags=["Foods"],
    summary="Delete Food (owner only)",
)
async def delete_food(
    food_id: str,
    identity: VerifiedIdentity = Depends(get_current_identity),
    catalog: CatalogService = Depends(get_catalog_service),
) -> DeleteResponse:
    food = await catalog.delete_food(food_id, identity)
    return DeleteResponse(message=f"Food '{food.name}' deleted", id=food.id)


@router.get("/topFoods", response_model=FoodList, tags=["Foods"])
async def top_foods(catalog: CatalogService = Depends(get_catalog_service)) -> list[dict]:
    """Best sellers by purchase count."""
    foods = await catalog.top_sellers()
    return [food.to_dict() for food in foods]


# =============================================================================
# ORDER ENDPOINTS
# =============================================================================

@router.get(
    "/orders",
    response_model=OrderList,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="List My Orders",
)
async def list_orders(
    email: Optional[str] = Query(None, description="Must be the caller's own email"),
    identity: VerifiedIdentity = Depends(get_current_identity),
    orders: OrderService = Depends(get_order_service),
) -> list[dict]:
    placed = await orders.list_orders(identity, email=email)
    return [order.to_dict() for order in placed]


@router.post(
    "/orders",
    status_code=201,
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Place Order",
)
async def place_order(
    payload: OrderCreate,
    identity: VerifiedIdentity = Depends(get_current_identity),
    orders: OrderService = Depends(get_order_service),
) -> dict:
    """
    Buy units of a food.

    Stock is decremented and the purchase count incremented in the same
    unit of work that records the order. Not retried automatically.
    """
    order = await orders.place_order(payload.food_id, payload.quantity, identity)
    return order.to_dict()


@router.delete(
    "/orders/{order_id}",
    response_model=DeleteResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Cancel Order (buyer only)",
)
async def cancel_order(
    order_id: str,
    identity: VerifiedIdentity = Depends(get_current_identity),
    orders: OrderService = Depends(get_order_service),
) -> DeleteResponse:
    order = await orders.cancel_order(order_id, identity)
    return DeleteResponse(message="Order cancelled", id=order.id)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(RestaurantError)
    async def restaurant_error_handler(request: Request, exc: RestaurantError) -> JSONResponse:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.error}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            problems.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="InvalidInput", detail="; ".join(problems)).model_dump(),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all exception handler."""
        logger.exception(f"Unhandled exception: {exc}")
        settings: Settings = request.app.state.settings

        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="Internal",
                detail=str(exc) if settings.debug else "An unexpected error occurred",
            ).model_dump(),
        )


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[BaseStorage] = None,
    token_verifier: Optional[BaseTokenVerifier] = None,
) -> FastAPI:
    """
    Build the application with its collaborators.

    Anything not passed in is built from the settings; tests pass an
    in-memory storage and a mock verifier.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    storage = storage or build_storage(settings)
    token_verifier = token_verifier or build_token_verifier(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application startup and shutdown events.
        """
        # Startup
        logger.info("=" * 60)
        logger.info(f"🚀 Starting {settings.app_name}")
        logger.info(f"   Version: {settings.app_version}")
        logger.info(f"   Environment: {settings.env_mode.value}")
        logger.info(f"   Debug: {settings.debug}")
        logger.info("=" * 60)

        await storage.init()
        logger.info(f"✅ Storage: {storage.provider_name}")
        logger.info(f"✅ Auth: {token_verifier.provider_name}")
        logger.info("✅ Application ready!")

        yield  # Application runs

        # Shutdown
        logger.info("Shutting down...")
        await token_verifier.close()
        await storage.dispose()
        logger.info("✅ Cleanup complete")

    app = FastAPI(
        title=settings.app_name,
        description="Food catalog and order ledger for a restaurant ordering app.",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.settings = settings
    app.state.storage = storage
    app.state.token_verifier = token_verifier
    app.state.catalog_service = CatalogService(storage, settings.top_sellers_limit)
    app.state.order_service = OrderService(storage)

    # Bearer tokens travel in a header, not cookies, so credentials stay off
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    register_exception_handlers(app)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
