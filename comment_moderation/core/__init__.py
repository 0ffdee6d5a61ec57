# Core infrastructure
from comment_moderation.core.context import (
    clear_context,
    get_comment_session,
    get_context,
    get_request_id,
    get_user_id,
    set_comment_session,
    set_request_id,
    set_user_id,
)
from comment_moderation.core.logging import configure_structlog, get_logger
from comment_moderation.core.middleware import RequestContextMiddleware, get_client_ip


__all__ = [
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_client_ip",
    "get_comment_session",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_user_id",
    "set_comment_session",
    "set_request_id",
    "set_user_id",
]
