"""
Tests for IdentityService and bearer token handling.
"""

import uuid
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app.api.deps import authenticate, extract_bearer_token
from app.services.errors import AuthenticationError
from app.services.identity_service import IdentityService

USER_ID = "3f2b6a0c-1d4e-4c8a-9b7f-5e6d7c8b9a01"


def identity_response(status_code: int, payload: dict) -> httpx.Response:
    request = httpx.Request("GET", "https://identity.test/auth/v1/user")
    return httpx.Response(status_code, json=payload, request=request)


@pytest.mark.asyncio
async def test_get_user_valid_token():
    service = IdentityService(base_url="https://identity.test/", api_key="anon")
    response = identity_response(200, {
        "id": USER_ID,
        "email": "student@example.com",
        "user_metadata": {"full_name": "Test Student"},
    })

    with patch.object(httpx.AsyncClient, "get", AsyncMock(return_value=response)) as mock_get:
        user = await service.get_user("token-123")

    assert user.id == uuid.UUID(USER_ID)
    assert user.email == "student@example.com"
    assert user.short_id == USER_ID[:8]

    url = mock_get.call_args.args[0]
    headers = mock_get.call_args.kwargs["headers"]
    assert url == "https://identity.test/auth/v1/user"
    assert headers["apikey"] == "anon"
    assert headers["Authorization"] == "Bearer token-123"


@pytest.mark.asyncio
async def test_get_user_rejected_token():
    service = IdentityService(base_url="https://identity.test", api_key="anon")
    response = identity_response(401, {"msg": "invalid JWT"})

    with patch.object(httpx.AsyncClient, "get", AsyncMock(return_value=response)):
        assert await service.get_user("expired") is None


@pytest.mark.asyncio
async def test_get_user_without_id():
    service = IdentityService(base_url="https://identity.test", api_key="anon")
    response = identity_response(200, {"email": "ghost@example.com"})

    with patch.object(httpx.AsyncClient, "get", AsyncMock(return_value=response)):
        assert await service.get_user("token") is None


@pytest.mark.asyncio
async def test_empty_token_skips_network():
    service = IdentityService(base_url="https://identity.test", api_key="anon")

    with patch.object(httpx.AsyncClient, "get", AsyncMock()) as mock_get:
        assert await service.get_user("") is None

    mock_get.assert_not_called()


@pytest.mark.parametrize("header,expected", [
    ("Bearer abc", "abc"),
    ("bearer abc", "abc"),
    ("Bearer   abc  ", "abc"),
    ("Basic abc", None),
    ("Bearer", None),
    ("", None),
    (None, None),
])
def test_extract_bearer_token(header, expected):
    assert extract_bearer_token(header) == expected


@pytest.mark.asyncio
async def test_authenticate_missing_header():
    identity = AsyncMock()

    with pytest.raises(AuthenticationError) as exc_info:
        await authenticate(None, identity)

    assert exc_info.value.message == "Unauthorized - No token provided"
    identity.get_user.assert_not_called()


@pytest.mark.asyncio
async def test_authenticate_rejected_token():
    identity = AsyncMock()
    identity.get_user.return_value = None

    with pytest.raises(AuthenticationError) as exc_info:
        await authenticate("Bearer stale", identity)

    assert exc_info.value.message == "Invalid or expired token"
    assert exc_info.value.status_code == 401
