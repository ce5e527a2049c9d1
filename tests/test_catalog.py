"""Catalog rules: ownership, stock adjustment and top sellers."""
import pytest

from restaurant_api.core.errors import (
    ForbiddenError,
    InsufficientStockError,
    InvalidInputError,
    NotFoundError,
)
from restaurant_api.storage import new_identifier

pytestmark = pytest.mark.anyio


async def test_add_food_keeps_attributes_and_owner(catalog, owner):
    food = await catalog.add_food(
        "Tom Yum",
        9.5,
        12,
        owner,
        attributes={
            "image": "https://img.example.com/tomyum.png",
            "category": "soup",
            "ownerEmail": "mallory@example.com",
            "purchaseCount": 999,
            "owner_email": "mallory@example.com",
            "purchase_count": 999,
            "created_at": "garbage",
        },
    )

    assert food.owner_email == owner.email
    assert food.purchase_count == 0
    assert food.attributes == {
        "image": "https://img.example.com/tomyum.png",
        "category": "soup",
    }
    assert await catalog.get_food(food.id) == food


@pytest.mark.parametrize(
    "name, price, quantity",
    [
        ("", 1.0, 1),
        ("Soup", -1.0, 1),
        ("Soup", float("inf"), 1),
        ("Soup", 1.0, -1),
        ("Soup", 1.0, 1.5),
    ],
)
async def test_add_food_rejects_invalid_values(catalog, owner, name, price, quantity):
    with pytest.raises(InvalidInputError):
        await catalog.add_food(name, price, quantity, owner)


async def test_list_foods_filters_by_owner(catalog, owner, alice):
    mine = await catalog.add_food("Curry", 6.0, 3, owner)
    await catalog.add_food("Salad", 4.0, 3, alice)

    assert [f.id for f in await catalog.list_foods(owner_email=owner.email)] == [mine.id]
    assert [f.id for f in await catalog.list_foods(owner_email=f" {owner.email.upper()} ")] == [mine.id]
    assert len(await catalog.list_foods()) == 2


async def test_get_food_malformed_id(catalog):
    with pytest.raises(NotFoundError):
        await catalog.get_food("../etc/passwd")


async def test_update_food_merges_supplied_fields(catalog, owner):
    food = await catalog.add_food("Curry", 6.0, 3, owner, attributes={"spicy": False, "image": "a.png"})

    updated = await catalog.update_food(food.id, {"price": 6.5, "spicy": True}, owner)

    assert updated.name == "Curry"
    assert updated.price == 6.5
    assert updated.quantity == 3
    assert updated.attributes == {"spicy": True, "image": "a.png"}
    assert await catalog.get_food(food.id) == updated


async def test_update_food_by_non_owner_is_forbidden(catalog, owner, alice):
    food = await catalog.add_food("Curry", 6.0, 3, owner)

    with pytest.raises(ForbiddenError):
        await catalog.update_food(food.id, {"price": 0.0}, alice)

    assert (await catalog.get_food(food.id)).price == 6.0


@pytest.mark.parametrize(
    "field", ["quantity", "purchaseCount", "ownerEmail", "id", "purchase_count", "owner_email", "created_at"]
)
async def test_update_food_rejects_bookkeeping_fields(catalog, owner, field):
    food = await catalog.add_food("Curry", 6.0, 3, owner)

    with pytest.raises(InvalidInputError):
        await catalog.update_food(food.id, {field: 100}, owner)

    assert await catalog.get_food(food.id) == food


async def test_update_missing_food(catalog, owner):
    with pytest.raises(NotFoundError):
        await catalog.update_food(new_identifier(), {"name": "Ghost"}, owner)


async def test_empty_update_returns_food_unchanged(catalog, owner):
    food = await catalog.add_food("Curry", 6.0, 3, owner)
    assert await catalog.update_food(food.id, {}, owner) == food


async def test_delete_food_by_owner(catalog, owner):
    food = await catalog.add_food("Curry", 6.0, 3, owner)

    removed = await catalog.delete_food(food.id, owner)

    assert removed.id == food.id
    with pytest.raises(NotFoundError):
        await catalog.get_food(food.id)


async def test_delete_food_by_non_owner_is_forbidden(catalog, owner, alice):
    food = await catalog.add_food("Curry", 6.0, 3, owner)

    with pytest.raises(ForbiddenError):
        await catalog.delete_food(food.id, alice)

    assert await catalog.get_food(food.id) == food


async def test_adjust_stock_restock_and_correction(catalog, orders, owner, alice):
    food = await catalog.add_food("Curry", 6.0, 3, owner)
    await orders.place_order(food.id, 2, alice)

    restocked = await catalog.adjust_stock(food.id, 10, owner)
    assert restocked.quantity == 11
    assert restocked.purchase_count == 2

    corrected = await catalog.adjust_stock(food.id, -11, owner)
    assert corrected.quantity == 0
    assert corrected.purchase_count == 2


async def test_adjust_stock_below_zero(catalog, owner):
    food = await catalog.add_food("Curry", 6.0, 3, owner)

    with pytest.raises(InsufficientStockError):
        await catalog.adjust_stock(food.id, -4, owner)

    assert (await catalog.get_food(food.id)).quantity == 3


@pytest.mark.parametrize("delta", [1.5, "5", None, float("nan")])
async def test_adjust_stock_rejects_non_integer(catalog, owner, delta):
    food = await catalog.add_food("Curry", 6.0, 3, owner)

    with pytest.raises(InvalidInputError):
        await catalog.adjust_stock(food.id, delta, owner)


async def test_adjust_stock_missing_food(catalog, owner):
    with pytest.raises(NotFoundError):
        await catalog.adjust_stock(new_identifier(), 1, owner)


async def test_adjust_stock_by_non_owner_is_forbidden(catalog, owner, alice):
    food = await catalog.add_food("Curry", 6.0, 3, owner)

    with pytest.raises(ForbiddenError):
        await catalog.adjust_stock(food.id, 100, alice)


async def test_top_sellers_sorted_and_capped(catalog, orders, owner, alice):
    sales = [0, 5, 2, 9, 1, 7, 3, 4]
    foods = []
    for i, sold in enumerate(sales):
        food = await catalog.add_food(f"Dish {i}", 1.0, 20, owner)
        if sold:
            await orders.place_order(food.id, sold, alice)
        foods.append(food)

    top = await catalog.top_sellers()

    assert len(top) == 6
    assert [f.purchase_count for f in top] == [9, 7, 5, 4, 3, 2]


async def test_top_sellers_ties_keep_insertion_order(catalog, orders, owner, alice):
    first = await catalog.add_food("First", 1.0, 5, owner)
    second = await catalog.add_food("Second", 1.0, 5, owner)
    third = await catalog.add_food("Third", 1.0, 5, owner)
    await orders.place_order(third.id, 2, alice)

    top = await catalog.top_sellers()

    assert [f.id for f in top] == [third.id, first.id, second.id]


async def test_top_sellers_fewer_than_limit(catalog, owner):
    await catalog.add_food("Only", 1.0, 5, owner)
    assert len(await catalog.top_sellers()) == 1
