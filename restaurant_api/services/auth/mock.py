"""
Mock Token Verifier Implementation

Accepts development tokens without contacting an identity provider.
Used in development mode (ENV_MODE=development) and in tests.

Behavior:
    - A token of the form "<prefix><email>" (default prefix "dev:")
      authenticates as that email, e.g. "dev:alice@example.com"
    - Anything else is rejected
"""

import logging

from restaurant_api.services.auth.base import (
    BaseTokenVerifier,
    TokenVerificationResult,
    VerifiedIdentity,
)

logger = logging.getLogger(__name__)


class MockTokenVerifier(BaseTokenVerifier):
    """
    Mock implementation of the token verifier.

    Example:
        >>> verifier = MockTokenVerifier()
        >>> result = await verifier.verify_token("dev:alice@example.com")
        >>> print(result.identity.email)
        'alice@example.com'
    """

    def __init__(self, prefix: str = "dev:"):
        self.prefix = prefix
        logger.info(f"MockTokenVerifier initialized (prefix={prefix!r})")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "mock"

    async def verify_token(self, token: str) -> TokenVerificationResult:
        if not token.startswith(self.prefix):
            return TokenVerificationResult.rejected("invalid_token", "Invalid token")

        email = token[len(self.prefix):].strip()
        if "@" not in email:
            return TokenVerificationResult.rejected("invalid_token", "Token carries no email")

        logger.debug(f"Mock: Token accepted for {email}")
        return TokenVerificationResult(
            success=True,
            identity=VerifiedIdentity(email=email, uid=f"mock_{email}"),
        )

    async def health_check(self) -> bool:
        return True
