"""FastAPI dependencies for the comment API.

Provides dependency injection for:
- Comment store and moderation workflow (from app state)
- Locale resolver
- The visitor's comment session key (cookie, issued on first visit)
- Error handlers
"""

import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Response, status

from comment_moderation.config.settings import get_settings
from comment_moderation.core.context import set_comment_session

from .locale import LocaleResolver
from .moderation import ModerationWorkflow
from .store import CommentError, CommentStore


def _app_service(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Comment service not available",
        )
    return service


async def get_comment_store(request: Request) -> CommentStore:
    """Get comment store from app state."""
    return _app_service(request, "comment_store")


async def get_moderation_workflow(request: Request) -> ModerationWorkflow:
    """Get moderation workflow from app state."""
    return _app_service(request, "moderation_workflow")


async def get_locale_resolver(request: Request) -> LocaleResolver:
    """Get locale resolver from app state."""
    return _app_service(request, "locale_resolver")


async def get_comment_session_key(request: Request, response: Response) -> str:
    """Return the visitor's comment session key, issuing one when absent."""
    settings = get_settings()
    cookie_name = settings.comment_session_cookie_name

    session_key = request.cookies.get(cookie_name)
    if not session_key:
        session_key = secrets.token_urlsafe(32)
        response.set_cookie(
            cookie_name,
            session_key,
            httponly=True,
            samesite="lax",
            secure=settings.is_production,
        )

    set_comment_session(session_key)
    return session_key


CommentStoreDep = Annotated[CommentStore, Depends(get_comment_store)]
ModerationWorkflowDep = Annotated[ModerationWorkflow, Depends(get_moderation_workflow)]
LocaleResolverDep = Annotated[LocaleResolver, Depends(get_locale_resolver)]
CommentSessionDep = Annotated[str, Depends(get_comment_session_key)]


def handle_comment_error(error: CommentError) -> HTTPException:
    """Convert comment errors to HTTP exceptions."""
    status_map = {
        "anonymous_access_denied": status.HTTP_403_FORBIDDEN,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(status_code=status_code, detail=error.message)
