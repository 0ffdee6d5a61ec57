"""FastAPI dependencies for authentication.

Comment routes work for both authenticated and anonymous visitors, so the
current user is optional: a missing or invalid bearer token means anonymous.
"""

from typing import Annotated

from fastapi import Depends, Request
from jose import JWTError
from pydantic import ValidationError

from comment_moderation.auth.schemas import AuthenticatedUser
from comment_moderation.auth.security import decode_access_token
from comment_moderation.core.context import set_user_id
from comment_moderation.core.logging import get_logger


logger = get_logger(__name__)


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_current_user_optional(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> AuthenticatedUser | None:
    """Get current user if authenticated, None otherwise."""
    if not token:
        return None

    try:
        payload = decode_access_token(token)
        user = AuthenticatedUser(
            id=payload["sub"],
            email=payload["email"],
            name=payload.get("name") or "",
        )
    except (JWTError, KeyError, ValidationError) as e:
        logger.info("access_token_ignored", error=str(e))
        return None

    # Set user_id in context for logging
    set_user_id(user.id)
    return user


OptionalUser = Annotated[AuthenticatedUser | None, Depends(get_current_user_optional)]
