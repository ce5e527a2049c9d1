"""
Token Verifier Abstract Base Class

Defines the interface contract for bearer-token verification.
Both MockTokenVerifier and FirebaseTokenVerifier must implement these
methods, so routes depend only on the verified identity and never on
which provider produced it.

Design Pattern: Strategy Pattern
    - Allows runtime switching between identity providers
    - Facilitates testing with the mock implementation
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class VerifiedIdentity:
    """
    The authenticated caller.

    Attributes:
        email: Verified email address; the key for ownership checks
        uid: Provider-side user id, if the provider has one
    """
    email: str
    uid: Optional[str] = None


@dataclass
class TokenVerificationResult:
    """
    Standardized result from token verification.

    Attributes:
        success: Whether the token was accepted
        identity: The verified identity when successful
        error_message: Why the token was rejected
        error_code: Machine-readable error code
    """
    success: bool
    identity: Optional[VerifiedIdentity] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def rejected(cls, error_code: str, error_message: str) -> "TokenVerificationResult":
        return cls(success=False, error_code=error_code, error_message=error_message)


class BaseTokenVerifier(ABC):
    """
    Abstract base class for token verifiers.

    Example:
        >>> verifier = build_token_verifier(settings)
        >>> result = await verifier.verify_token(token)
        >>> if result.success:
        ...     print(result.identity.email)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the identity provider.

        Returns:
            str: Provider name (e.g., "mock", "firebase")
        """
        pass

    @abstractmethod
    async def verify_token(self, token: str) -> TokenVerificationResult:
        """
        Verify a bearer token.

        Args:
            token: The raw token from the Authorization header

        Returns:
            TokenVerificationResult: Never raises for a bad token
        """
        pass

    async def close(self) -> None:
        """Release network resources. Called at shutdown."""

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify the provider is usable.

        Returns:
            bool: True if tokens can currently be verified
        """
        pass
