from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from app.config import settings
from app.services.errors import AuthenticationError
from app.services.identity_service import IdentityService, AuthenticatedUser


def get_identity_service() -> IdentityService:
    return IdentityService()


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token from an `Authorization: Bearer <token>` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def authenticate(
    authorization: Optional[str],
    identity: IdentityService,
) -> AuthenticatedUser:
    """
    Resolve the caller from the Authorization header.
    Raises AuthenticationError (401) when missing or rejected.
    """
    token = extract_bearer_token(authorization)
    if not token:
        raise AuthenticationError("Unauthorized - No token provided")

    user = await identity.get_user(token)
    if not user:
        raise AuthenticationError("Invalid or expired token")

    return user


async def get_current_user(
    authorization: Optional[str] = Header(None),
    identity: IdentityService = Depends(get_identity_service),
) -> AuthenticatedUser:
    """Dependency: the authenticated caller."""
    return await authenticate(authorization, identity)


async def get_admin_user(
    x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key"),
) -> str:
    """
    Validate the Admin Key header.
    Returns the key if valid, raises 401 otherwise.
    """
    valid_key = settings.admin_api_key

    if not x_admin_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing admin key",
        )

    if not valid_key or x_admin_key != valid_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin key",
        )

    return x_admin_key
