import pytest
from fastapi.testclient import TestClient

from restaurant_api.core.config import Settings
from restaurant_api.main import create_app
from restaurant_api.services import CatalogService, OrderService
from restaurant_api.services.auth import MockTokenVerifier, VerifiedIdentity
from restaurant_api.storage import MemoryStorage

OWNER = "chef@example.com"
ALICE = "alice@example.com"
BOB = "bob@example.com"


def auth(email: str) -> dict[str, str]:
    return {"Authorization": f"Bearer dev:{email}"}


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings():
    return Settings(_env_file=None, env_mode="development", debug=False)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def catalog(storage):
    return CatalogService(storage, top_sellers_limit=6)


@pytest.fixture
def orders(storage):
    return OrderService(storage)


@pytest.fixture
def owner():
    return VerifiedIdentity(email=OWNER)


@pytest.fixture
def alice():
    return VerifiedIdentity(email=ALICE)


@pytest.fixture
def bob():
    return VerifiedIdentity(email=BOB)


@pytest.fixture
def app(settings, storage):
    return create_app(settings=settings, storage=storage, token_verifier=MockTokenVerifier())


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def add_food(client):
    """Create a food over HTTP as OWNER and return its JSON."""
    def _add(name="Pad Thai", price=5.0, quantity=10, **extra):
        response = client.post(
            "/foods",
            json={"name": name, "price": price, "quantity": quantity, **extra},
            headers=auth(OWNER),
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _add
