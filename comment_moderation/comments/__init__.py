"""Moderated comment module.

Provides:
- Comment storage with status projections (CommentStore)
- Signed moderation links (ModerationTokenCodec)
- Submission and moderation workflow (ModerationWorkflow)

Note: Router is not exported here to avoid circular imports.
Import directly from comment_moderation.comments.router when needed.
"""

from .locale import LocaleResolver
from .models import (
    ANONYMOUS_USER_ID,
    COMMENTS_TABLES_CQL,
    Comment,
    CommentAuthor,
    CommentStatus,
    ListOptions,
    ModerationAction,
    NewComment,
)
from .moderation import (
    AnonymousAccessDeniedError,
    ModerationConfig,
    ModerationLinkBuilder,
    ModerationWorkflow,
)
from .store import CommentError, CommentStore, InvalidConnectionError
from .tokens import ModerationTokenCodec


__all__ = [
    "ANONYMOUS_USER_ID",
    "COMMENTS_TABLES_CQL",
    "AnonymousAccessDeniedError",
    "Comment",
    "CommentAuthor",
    "CommentError",
    "CommentStatus",
    "CommentStore",
    "InvalidConnectionError",
    "ListOptions",
    "LocaleResolver",
    "ModerationAction",
    "ModerationConfig",
    "ModerationLinkBuilder",
    "ModerationTokenCodec",
    "ModerationWorkflow",
    "NewComment",
]
