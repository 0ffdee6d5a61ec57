"""Tests for the optional current user dependency."""

from unittest.mock import Mock
from uuid import uuid4

import pytest

from comment_moderation.auth.dependencies import (
    get_current_user_optional,
    get_token_from_header,
)
from comment_moderation.auth.security import create_access_token
from comment_moderation.core.context import clear_context, get_user_id


def request_with(headers: dict[str, str]) -> Mock:
    request = Mock()
    request.headers = headers
    return request


class TestGetTokenFromHeader:
    """Tests for get_token_from_header."""

    @pytest.mark.parametrize(
        ("headers", "expected"),
        [
            ({"Authorization": "Bearer abc"}, "abc"),
            ({"Authorization": "bearer abc"}, "abc"),
            ({"Authorization": "Basic abc"}, None),
            ({"Authorization": "Bearer"}, None),
            ({}, None),
        ],
    )
    def test_extract(self, headers, expected) -> None:
        assert get_token_from_header(request_with(headers)) == expected


class TestGetCurrentUserOptional:
    """Tests for get_current_user_optional."""

    @pytest.fixture(autouse=True)
    def reset_context(self):
        clear_context()
        yield
        clear_context()

    @pytest.mark.asyncio
    async def test_no_token_is_anonymous(self) -> None:
        assert await get_current_user_optional(None) is None

    @pytest.mark.asyncio
    async def test_invalid_token_is_anonymous(self) -> None:
        assert await get_current_user_optional("garbage") is None

    @pytest.mark.asyncio
    async def test_token_without_email_is_anonymous(self) -> None:
        token = create_access_token({"sub": str(uuid4())})

        assert await get_current_user_optional(token) is None

    @pytest.mark.asyncio
    async def test_valid_token(self) -> None:
        user_id = uuid4()
        token = create_access_token({"sub": str(user_id), "email": "bob@example.com"})

        user = await get_current_user_optional(token)

        assert user is not None
        assert user.id == user_id
        assert user.display_name == "bob"
        assert get_user_id() == str(user_id)
