"""
Identity Provider Interface

The hosted auth provider owns sessions. The core only needs one question
answered: who is calling? A missing or invalid token yields None, never
an exception, so handlers can answer 401 uniformly.
"""

from abc import ABC, abstractmethod
from typing import Optional

from grocery_tracker.models.household import User


BEARER_PREFIX = "bearer "


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token of a "Bearer <token>" header, or None."""
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


class IdentityProviderInterface(ABC):
    """Resolves the caller of a request to a User record."""

    @abstractmethod
    async def get_current_user(self, token: str) -> Optional[User]:
        """
        Look up the user a bearer token belongs to.

        Returns:
            The user, or None if the token is unknown or expired
        """
        pass
