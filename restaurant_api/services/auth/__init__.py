"""
Token Verifier Factory

Provides a single entry point for building the bearer-token verifier.

Usage:
    from restaurant_api.services.auth import build_token_verifier

    # Returns MockTokenVerifier or FirebaseTokenVerifier based on ENV_MODE
    verifier = build_token_verifier(settings)

    result = await verifier.verify_token(token)

Environment Switching:
    - ENV_MODE=development → MockTokenVerifier ("dev:<email>" tokens)
    - ENV_MODE=staging → FirebaseTokenVerifier
    - ENV_MODE=production → FirebaseTokenVerifier
"""

import logging

from restaurant_api.core.config import Settings
from restaurant_api.services.auth.base import (
    BaseTokenVerifier,
    TokenVerificationResult,
    VerifiedIdentity,
)
from restaurant_api.services.auth.mock import MockTokenVerifier
from restaurant_api.services.auth.firebase import FirebaseTokenVerifier

logger = logging.getLogger(__name__)


def build_token_verifier(settings: Settings) -> BaseTokenVerifier:
    """
    Build the configured token verifier.

    Raises:
        ValueError: If production mode but the Firebase key is not configured
    """
    if settings.is_development:
        logger.info("Auth: Using MockTokenVerifier (development mode)")
        return MockTokenVerifier(prefix=settings.dev_token_prefix)

    missing = settings.validate_production_config()
    if missing:
        logger.error(f"❌ Missing production config: {missing}")
        raise ValueError(f"Missing production config: {', '.join(missing)}")

    logger.info(f"Auth: Using FirebaseTokenVerifier ({settings.env_mode.value} mode)")
    return FirebaseTokenVerifier(
        api_key=settings.firebase_api_key,
        lookup_url=settings.firebase_lookup_url,
        timeout=settings.auth_timeout_seconds,
    )


__all__ = [
    "build_token_verifier",
    "BaseTokenVerifier",
    "TokenVerificationResult",
    "VerifiedIdentity",
    "MockTokenVerifier",
    "FirebaseTokenVerifier",
]
