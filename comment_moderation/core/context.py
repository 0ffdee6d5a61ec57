"""Request context management using contextvars.

Each request gets a unique ID and, once the submitter is known, a user id and
the comment session key. Log processors read them from here so handlers do not
have to pass them around.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
comment_session_var: ContextVar[str | None] = ContextVar(
    "comment_session", default=None
)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID. If not provided, generates a new one.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_user_id() -> str | None:
    """Get the current user ID."""
    return user_id_var.get()


def set_user_id(user_id: str | UUID | None) -> None:
    """Set the user ID for the current context."""
    user_id_var.set(str(user_id) if user_id is not None else None)


def get_comment_session() -> str | None:
    """Get the comment session key of the current visitor."""
    return comment_session_var.get()


def set_comment_session(session_key: str | None) -> None:
    """Set the comment session key of the current visitor."""
    comment_session_var.set(session_key)


def get_context() -> dict[str, Any]:
    """Get the non-empty context variables as a dictionary."""
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    user_id = get_user_id()
    if user_id:
        context["user_id"] = user_id

    # The session key authorizes moderation links; only a prefix is logged.
    session_key = get_comment_session()
    if session_key:
        context["comment_session"] = session_key[:8]

    return context


def clear_context() -> None:
    """Clear all context variables at the end of a request."""
    request_id_var.set("")
    user_id_var.set(None)
    comment_session_var.set(None)
