"""
Identity Service - resolves bearer tokens through Supabase Auth.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional, Dict, Any

import httpx

from app.config import settings

logger = logging.getLogger(__name__)


def short_user_id(user_id: uuid.UUID) -> str:
    """First 8 characters of a user id, used in receipts and invoice numbers."""
    return str(user_id)[:8]


@dataclass
class AuthenticatedUser:
    """Request-scoped identity of the caller."""

    id: uuid.UUID
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def short_id(self) -> str:
        return short_user_id(self.id)


class IdentityService:
    """Client for the identity provider's user endpoint."""

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None):
        self.base_url = (base_url or settings.supabase_url).rstrip("/")
        self.api_key = api_key or settings.supabase_anon_key

    async def get_user(self, token: str) -> Optional[AuthenticatedUser]:
        """
        Validate an access token.

        Returns the user on success, None when the token is rejected.
        Transport errors propagate.
        """
        if not token:
            return None

        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(
                f"{self.base_url}/auth/v1/user",
                headers={
                    "apikey": self.api_key,
                    "Authorization": f"Bearer {token}",
                },
            )

        if response.status_code != 200:
            logger.info(f"Token rejected by identity provider: {response.status_code}")
            return None

        data = response.json()
        try:
            user_id = uuid.UUID(data["id"])
        except (KeyError, TypeError, ValueError):
            logger.error("Identity provider returned a user without a valid id")
            return None

        return AuthenticatedUser(
            id=user_id,
            email=data.get("email"),
            user_metadata=data.get("user_metadata") or {},
        )
