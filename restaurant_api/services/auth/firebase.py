"""
Firebase Token Verifier Implementation

Production implementation that verifies Firebase ID tokens through the
Identity Toolkit REST API. Used when ENV_MODE=production or
ENV_MODE=staging.

Requirements:
    - FIREBASE_API_KEY must be set in environment (the project's Web API key)

API Documentation:
    https://cloud.google.com/identity-platform/docs/reference/rest/v1/accounts/lookup
"""

import logging
from typing import Optional

import httpx

from restaurant_api.services.auth.base import (
    BaseTokenVerifier,
    TokenVerificationResult,
    VerifiedIdentity,
)

logger = logging.getLogger(__name__)


class FirebaseTokenVerifier(BaseTokenVerifier):
    """
    Verifies ID tokens with the accounts:lookup endpoint.

    A token is accepted when the endpoint resolves it to an account that
    has an email address; the email becomes the caller's identity.

    Example:
        >>> verifier = FirebaseTokenVerifier(api_key="AIza...")
        >>> result = await verifier.verify_token(id_token)
        >>> print(result.identity.email)
    """

    def __init__(
        self,
        api_key: Optional[str],
        lookup_url: str = "https://identitytoolkit.googleapis.com/v1/accounts:lookup",
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the verifier.

        Args:
            api_key: Firebase Web API key
            lookup_url: accounts:lookup endpoint
            timeout: Per-request timeout in seconds
            client: Pre-built HTTP client (tests inject a MockTransport)

        Raises:
            ValueError: If the API key is not configured
        """
        if not api_key:
            raise ValueError(
                "FIREBASE_API_KEY is required for production mode. "
                "Set it in your .env file or environment variables."
            )

        self._api_key = api_key
        self._lookup_url = lookup_url
        self._client = client or httpx.AsyncClient(timeout=timeout)

        logger.info("FirebaseTokenVerifier initialized")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "firebase"

    async def verify_token(self, token: str) -> TokenVerificationResult:
        try:
            response = await self._client.post(
                self._lookup_url,
                params={"key": self._api_key},
                json={"idToken": token},
            )
        except httpx.TimeoutException:
            logger.warning("Firebase: Token lookup timed out")
            return TokenVerificationResult.rejected(
                "provider_timeout", "Token verification timed out"
            )
        except httpx.HTTPError as e:
            logger.error(f"Firebase: Token lookup failed - {e}")
            return TokenVerificationResult.rejected(
                "provider_unavailable", "Token verification unavailable"
            )

        if response.status_code != 200:
            reason = _error_reason(response)
            logger.info(f"Firebase: Token rejected ({response.status_code} {reason})")
            return TokenVerificationResult.rejected("invalid_token", "Invalid or expired token")

        users = response.json().get("users") or []
        if not users or not users[0].get("email"):
            return TokenVerificationResult.rejected("invalid_token", "Token has no email identity")

        user = users[0]
        return TokenVerificationResult(
            success=True,
            identity=VerifiedIdentity(email=user["email"], uid=user.get("localId")),
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def health_check(self) -> bool:
        """The verifier is usable once configured; no request is made."""
        return bool(self._api_key)


def _error_reason(response: httpx.Response) -> str:
    """Extract Google's error message (e.g. INVALID_ID_TOKEN)."""
    try:
        return response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return "unknown"
