"""HTTP surface: routes, status codes and the error envelope."""
import pytest
from fastapi.testclient import TestClient

from restaurant_api.main import create_app
from restaurant_api.services.auth import MockTokenVerifier
from restaurant_api.storage import MemoryStorage, new_identifier

from tests.conftest import ALICE, BOB, OWNER, auth


def test_root_and_health(client):
    assert client.get("/").json()["environment"] == "development"

    health = client.get("/health").json()
    assert health["status"] == "operational"
    assert health["storage"] == "memory: healthy"
    assert health["auth"] == "mock: healthy"


def test_order_then_cancel_walkthrough(client, add_food):
    food = add_food(name="F1", price=5, quantity=10, image="f1.png")
    assert food["purchaseCount"] == 0
    assert food["ownerEmail"] == OWNER
    assert food["image"] == "f1.png"

    response = client.post(
        "/orders",
        json={"foodId": food["id"], "quantity": 4, "price": 0.01, "buyerEmail": "mallory@example.com"},
        headers=auth(BOB),
    )
    assert response.status_code == 201
    order = response.json()
    assert order["price"] == 5
    assert order["quantity"] == 4
    assert order["buyerEmail"] == BOB
    assert order["foodId"] == food["id"]

    after = client.get(f"/foods/{food['id']}").json()
    assert after["quantity"] == 6
    assert after["purchaseCount"] == 4

    response = client.delete(f"/orders/{order['id']}", headers=auth(BOB))
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Order cancelled", "id": order["id"]}

    after = client.get(f"/foods/{food['id']}").json()
    assert after["quantity"] == 10
    assert after["purchaseCount"] == 4

    listed = client.get("/orders", params={"email": BOB}, headers=auth(BOB))
    assert listed.status_code == 200
    assert listed.json() == []


def test_list_foods_by_owner(client, add_food):
    add_food(name="Mine")
    client.post("/foods", json={"name": "Theirs", "price": 1, "quantity": 1}, headers=auth(ALICE))

    assert [f["name"] for f in client.get("/foods", params={"email": OWNER}).json()] == ["Mine"]
    shouted = client.get("/foods", params={"email": f" {OWNER.upper()} "}).json()
    assert [f["name"] for f in shouted] == ["Mine"]
    assert len(client.get("/foods").json()) == 2


def test_get_unknown_food(client):
    for food_id in (new_identifier(), "not-an-id"):
        response = client.get(f"/foods/{food_id}")
        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"


@pytest.mark.parametrize(
    "headers",
    [{}, {"Authorization": "dev:chef@example.com"}, {"Authorization": "Bearer "}, {"Authorization": "Bearer nope"}],
)
def test_authenticated_routes_require_valid_token(client, headers):
    response = client.post("/foods", json={"name": "X", "price": 1, "quantity": 1}, headers=headers)

    assert response.status_code == 401
    assert response.json()["success"] is False
    assert response.json()["error"] == "Unauthorized"


def test_orders_require_token(client):
    assert client.get("/orders").status_code == 401
    assert client.post("/orders", json={"foodId": new_identifier(), "quantity": 1}).status_code == 401
    assert client.delete(f"/orders/{new_identifier()}").status_code == 401


def test_create_food_validation_is_400(client):
    response = client.post("/foods", json={"name": "X", "price": -3}, headers=auth(OWNER))

    assert response.status_code == 400
    assert response.json()["error"] == "InvalidInput"
    assert "price" in response.json()["detail"]


def test_update_food_owner_only(client, add_food):
    food = add_food(price=5)

    response = client.patch(f"/foods/{food['id']}", json={"price": 1}, headers=auth(ALICE))
    assert response.status_code == 403
    assert client.get(f"/foods/{food['id']}").json()["price"] == 5

    response = client.put(f"/foods/{food['id']}", json={"price": 6, "description": "Now spicier"}, headers=auth(OWNER))
    assert response.status_code == 200
    assert response.json()["price"] == 6
    assert response.json()["description"] == "Now spicier"
    assert response.json()["quantity"] == 10


def test_update_food_cannot_set_stock(client, add_food):
    food = add_food()

    response = client.patch(f"/foods/{food['id']}", json={"quantity": 999}, headers=auth(OWNER))

    assert response.status_code == 400
    assert client.get(f"/foods/{food['id']}").json()["quantity"] == 10


def test_update_unknown_food(client):
    response = client.put(f"/foods/{new_identifier()}", json={"name": "Ghost"}, headers=auth(OWNER))
    assert response.status_code == 404


def test_delete_food_owner_only(client, add_food):
    food = add_food()

    assert client.delete(f"/foods/{food['id']}", headers=auth(ALICE)).status_code == 403
    assert client.get(f"/foods/{food['id']}").status_code == 200

    response = client.delete(f"/foods/{food['id']}", headers=auth(OWNER))
    assert response.status_code == 200
    assert response.json()["id"] == food["id"]
    assert client.get(f"/foods/{food['id']}").status_code == 404


def test_stock_adjustment(client, add_food):
    food = add_food(quantity=3)
    url = f"/foods/{food['id']}/stock"

    response = client.patch(url, json={"delta": 7}, headers=auth(OWNER))
    assert response.status_code == 200
    assert response.json()["quantity"] == 10

    response = client.patch(url, json={"delta": -11}, headers=auth(OWNER))
    assert response.status_code == 400
    assert response.json()["error"] == "InsufficientStock"

    assert client.patch(url, json={"delta": 1.5}, headers=auth(OWNER)).status_code == 400
    assert client.patch(url, json={"delta": 1}, headers=auth(ALICE)).status_code == 403
    assert client.get(f"/foods/{food['id']}").json()["quantity"] == 10


def test_place_order_errors(client, add_food):
    food = add_food(quantity=2)

    response = client.post("/orders", json={"foodId": new_identifier(), "quantity": 1}, headers=auth(BOB))
    assert response.status_code == 404

    response = client.post("/orders", json={"foodId": food["id"], "quantity": 3}, headers=auth(BOB))
    assert response.status_code == 400
    assert response.json()["error"] == "InsufficientStock"

    response = client.post("/orders", json={"foodId": food["id"], "quantity": 0}, headers=auth(BOB))
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidInput"

    response = client.post("/orders", json={"foodId": food["id"], "quantity": "lots"}, headers=auth(BOB))
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidInput"

    after = client.get(f"/foods/{food['id']}").json()
    assert after["quantity"] == 2
    assert after["purchaseCount"] == 0


@pytest.mark.parametrize("value", [True, False, "2", None])
def test_counts_are_not_coerced(client, add_food, value):
    food = add_food(quantity=5)

    response = client.post("/orders", json={"foodId": food["id"], "quantity": value}, headers=auth(BOB))
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidInput"

    response = client.patch(f"/foods/{food['id']}/stock", json={"delta": value}, headers=auth(OWNER))
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidInput"

    response = client.post("/foods", json={"name": "Laab", "price": 4, "quantity": value}, headers=auth(OWNER))
    assert response.status_code == 400

    after = client.get(f"/foods/{food['id']}").json()
    assert after["quantity"] == 5
    assert after["purchaseCount"] == 0
    assert client.get("/orders", headers=auth(BOB)).json() == []


@pytest.mark.parametrize("price", [True, "12.5"])
def test_price_is_not_coerced(client, add_food, price):
    food = add_food()

    response = client.post("/foods", json={"name": "Laab", "price": price}, headers=auth(OWNER))
    assert response.status_code == 400

    response = client.patch(f"/foods/{food['id']}", json={"price": price}, headers=auth(OWNER))
    assert response.status_code == 400
    assert client.get(f"/foods/{food['id']}").json()["price"] == 5.0


def test_snake_case_bookkeeping_keys_are_dropped(client):
    response = client.post(
        "/foods",
        json={
            "name": "Khao Soi",
            "price": 8,
            "quantity": 3,
            "purchase_count": 999,
            "owner_email": "mallory@example.com",
            "created_at": "garbage",
            "spicy": True,
        },
        headers=auth(OWNER),
    )
    assert response.status_code == 201

    food = response.json()
    assert food["purchaseCount"] == 0
    assert food["ownerEmail"] == OWNER
    assert food["spicy"] is True
    for key in ("purchase_count", "owner_email", "created_at"):
        assert key not in food
        assert key not in client.get("/topFoods").json()[0]


def test_cancel_order_errors(client, add_food):
    food = add_food()
    order = client.post("/orders", json={"foodId": food["id"], "quantity": 1}, headers=auth(BOB)).json()

    assert client.delete("/orders/not-an-id", headers=auth(BOB)).status_code == 400
    assert client.delete(f"/orders/{new_identifier()}", headers=auth(BOB)).status_code == 404

    response = client.delete(f"/orders/{order['id']}", headers=auth(ALICE))
    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden"
    assert len(client.get("/orders", headers=auth(BOB)).json()) == 1


def test_orders_are_self_only(client, add_food):
    food = add_food()
    client.post("/orders", json={"foodId": food["id"], "quantity": 1}, headers=auth(BOB))

    assert client.get("/orders", params={"email": BOB}, headers=auth(ALICE)).status_code == 403
    assert client.get("/orders", headers=auth(ALICE)).json() == []
    assert len(client.get("/orders", headers=auth(BOB)).json()) == 1


def test_top_foods(client, add_food):
    for i in range(8):
        food = add_food(name=f"Dish {i}", quantity=20)
        if i:
            client.post("/orders", json={"foodId": food["id"], "quantity": i}, headers=auth(BOB))

    top = client.get("/topFoods").json()

    assert len(top) == 6
    counts = [f["purchaseCount"] for f in top]
    assert counts == sorted(counts, reverse=True)
    assert counts[0] == 7


def test_unexpected_errors_are_generic_500(settings):
    class BrokenStorage(MemoryStorage):
        def unit_of_work(self):
            raise RuntimeError("connection refused to db-primary:5432")

    app = create_app(settings=settings, storage=BrokenStorage(), token_verifier=MockTokenVerifier())
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/foods")

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Internal",
        "detail": "An unexpected error occurred",
    }
