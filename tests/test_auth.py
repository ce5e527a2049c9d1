"""Token verifiers and the collaborator factories."""
import json

import httpx
import pytest

from restaurant_api.core.config import EnvironmentMode, Settings
from restaurant_api.services.auth import (
    FirebaseTokenVerifier,
    MockTokenVerifier,
    build_token_verifier,
)
from restaurant_api.storage import MemoryStorage, SqlStorage, build_storage

LOOKUP_URL = "https://identitytoolkit.test/v1/accounts:lookup"


def lookup_handler(request: httpx.Request) -> httpx.Response:
    assert request.url.params["key"] == "test-key"
    token = json.loads(request.content)["idToken"]
    if token == "good":
        return httpx.Response(200, json={"users": [{"localId": "u-1", "email": "alice@example.com"}]})
    if token == "phone-only":
        return httpx.Response(200, json={"users": [{"localId": "u-2", "phoneNumber": "+15550100"}]})
    if token == "slow":
        raise httpx.ConnectTimeout("timed out", request=request)
    return httpx.Response(400, json={"error": {"code": 400, "message": "INVALID_ID_TOKEN"}})


@pytest.fixture
def firebase():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lookup_handler))
    return FirebaseTokenVerifier(api_key="test-key", lookup_url=LOOKUP_URL, client=client)


@pytest.mark.anyio
async def test_mock_verifier():
    verifier = MockTokenVerifier()

    accepted = await verifier.verify_token("dev:alice@example.com")
    assert accepted.success
    assert accepted.identity.email == "alice@example.com"

    assert not (await verifier.verify_token("alice@example.com")).success
    assert not (await verifier.verify_token("dev:not-an-email")).success


@pytest.mark.anyio
async def test_firebase_accepts_known_token(firebase):
    result = await firebase.verify_token("good")

    assert result.success
    assert result.identity.email == "alice@example.com"
    assert result.identity.uid == "u-1"
    await firebase.close()


@pytest.mark.anyio
@pytest.mark.parametrize(
    "token, code",
    [("expired", "invalid_token"), ("phone-only", "invalid_token"), ("slow", "provider_timeout")],
)
async def test_firebase_rejections(firebase, token, code):
    result = await firebase.verify_token(token)

    assert not result.success
    assert result.identity is None
    assert result.error_code == code
    await firebase.close()


def test_firebase_requires_api_key():
    with pytest.raises(ValueError):
        FirebaseTokenVerifier(api_key=None)


def test_env_mode_is_case_insensitive():
    settings = Settings(_env_file=None, env_mode="PRODUCTION")
    assert settings.env_mode is EnvironmentMode.PRODUCTION
    assert settings.use_real_services
    assert settings.validate_production_config() == ["FIREBASE_API_KEY"]


def test_invalid_env_mode():
    with pytest.raises(ValueError):
        Settings(_env_file=None, env_mode="qa")


def test_development_collaborators():
    settings = Settings(_env_file=None, env_mode="development", dev_token_prefix="local:")

    assert isinstance(build_storage(settings), MemoryStorage)
    verifier = build_token_verifier(settings)
    assert isinstance(verifier, MockTokenVerifier)
    assert verifier.prefix == "local:"
    assert settings.validate_production_config() == []


def test_production_without_firebase_key_fails_fast():
    settings = Settings(_env_file=None, env_mode="production", firebase_api_key=None)

    with pytest.raises(ValueError, match="FIREBASE_API_KEY"):
        build_token_verifier(settings)


def test_production_collaborators(tmp_path):
    settings = Settings(
        _env_file=None,
        env_mode="staging",
        firebase_api_key="test-key",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'staging.db'}",
    )

    assert isinstance(build_storage(settings), SqlStorage)
    assert isinstance(build_token_verifier(settings), FirebaseTokenVerifier)
    assert settings.validate_production_config() == []
