"""Database models for moderated comments.

Cassandra table definitions for:
- comments_by_id: authoritative row, status guarded by lightweight transactions
- comments_by_content / comments_by_status / comments_by_user: listing
  projections partitioned by status so that listings and counts never filter
- content_languages: locale code to language id lookup

Architecture: one comment row per projection, denormalised author fields.
A projection row lives in the partition of the comment's current status and
moves partitions when a moderator resolves the comment.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum, StrEnum
from typing import Any
from uuid import UUID


class CommentStatus(IntEnum):
    """Moderation state of a comment."""

    WAITING = 0
    ACCEPT = 1
    REJECTED = 2


class ModerationAction(StrEnum):
    """Action tag carried by a moderation link."""

    APPROVE = "approve"
    REJECT = "reject"

    @property
    def target_status(self) -> CommentStatus:
        """Status a waiting comment takes when this action applies."""
        if self is ModerationAction.APPROVE:
            return CommentStatus.ACCEPT
        return CommentStatus.REJECTED


class SortColumn(StrEnum):
    """Listing sort keys exposed to visitors."""

    CREATED = "created"
    AUTHOR = "author"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


# Reserved user id of comments posted without an account
ANONYMOUS_USER_ID = UUID(int=10)

# Unresolved locale
UNKNOWN_LANGUAGE_ID = 0


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COMMENTS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_id (
    comment_id UUID PRIMARY KEY,
    content_id BIGINT,
    language_id INT,
    created TIMESTAMP,
    modified TIMESTAMP,
    user_id UUID,
    session_key TEXT,
    ip TEXT,
    parent_comment_id UUID,
    name TEXT,
    email TEXT,
    url TEXT,
    title TEXT,
    text TEXT,
    status INT
)
"""

# Per-content listing; (content_id, status) keeps count and list single-partition
COMMENTS_BY_CONTENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_content (
    content_id BIGINT,
    status INT,
    created TIMESTAMP,
    comment_id UUID,
    language_id INT,
    user_id UUID,
    name TEXT,
    email TEXT,
    url TEXT,
    title TEXT,
    text TEXT,
    PRIMARY KEY ((content_id, status), created, comment_id)
) WITH CLUSTERING ORDER BY (created DESC, comment_id ASC)
"""

# Latest comments across all content
COMMENTS_BY_STATUS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_status (
    status INT,
    created TIMESTAMP,
    comment_id UUID,
    content_id BIGINT,
    language_id INT,
    user_id UUID,
    name TEXT,
    email TEXT,
    url TEXT,
    title TEXT,
    text TEXT,
    PRIMARY KEY ((status), created, comment_id)
) WITH CLUSTERING ORDER BY (created DESC, comment_id ASC)
"""

# Latest comments of one author
COMMENTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_user (
    user_id UUID,
    status INT,
    created TIMESTAMP,
    comment_id UUID,
    content_id BIGINT,
    language_id INT,
    name TEXT,
    email TEXT,
    url TEXT,
    title TEXT,
    text TEXT,
    PRIMARY KEY ((user_id, status), created, comment_id)
) WITH CLUSTERING ORDER BY (created DESC, comment_id ASC)
"""

CONTENT_LANGUAGES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.content_languages (
    locale TEXT PRIMARY KEY,
    language_id INT
)
"""

COMMENTS_TABLES_CQL = [
    COMMENTS_BY_ID_TABLE_CQL,
    COMMENTS_BY_CONTENT_TABLE_CQL,
    COMMENTS_BY_STATUS_TABLE_CQL,
    COMMENTS_BY_USER_TABLE_CQL,
    CONTENT_LANGUAGES_TABLE_CQL,
]


# ==============================================================================
# Data Classes
# ==============================================================================


@dataclass
class NewComment:
    """Everything the caller supplies for an insert."""

    content_id: int
    language_id: int
    user_id: UUID
    session_key: str
    ip: str
    name: str
    email: str
    text: str
    status: CommentStatus
    url: str = ""
    title: str = ""
    parent_comment_id: UUID | None = None


@dataclass
class Comment:
    """Comment as read back from any comment table.

    Projection rows carry no session key, ip or modification time; those
    fields are None when the row did not come from comments_by_id.
    """

    comment_id: UUID
    content_id: int
    language_id: int
    created: datetime
    user_id: UUID
    name: str
    email: str
    url: str
    title: str
    text: str
    status: CommentStatus
    modified: datetime | None = None
    session_key: str | None = None
    ip: str | None = None
    parent_comment_id: UUID | None = None

    @property
    def is_anonymous(self) -> bool:
        return self.user_id == ANONYMOUS_USER_ID

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        """Create Comment from a Cassandra row of any comment table."""
        return cls(
            comment_id=row.comment_id,
            content_id=row.content_id,
            language_id=row.language_id or UNKNOWN_LANGUAGE_ID,
            created=row.created,
            user_id=row.user_id,
            name=row.name or "",
            email=row.email or "",
            url=row.url or "",
            title=row.title or "",
            text=row.text or "",
            status=CommentStatus(row.status),
            modified=getattr(row, "modified", None),
            session_key=getattr(row, "session_key", None),
            ip=getattr(row, "ip", None),
            parent_comment_id=getattr(row, "parent_comment_id", None),
        )

    def to_dict(self) -> dict[str, Any]:
        """Public representation (no session key, no ip)."""
        return {
            "comment_id": str(self.comment_id),
            "content_id": self.content_id,
            "language_id": self.language_id,
            "user_id": str(self.user_id),
            "name": self.name,
            "email": self.email,
            "url": self.url,
            "title": self.title,
            "text": self.text,
            "status": int(self.status),
            "created": self.created.isoformat(),
        }


@dataclass
class CommentAuthor:
    """Identity attached to a submission."""

    user_id: UUID
    name: str
    email: str


@dataclass
class ListOptions:
    """Visitor supplied sort options for a content listing."""

    sort: SortColumn = SortColumn.CREATED
    order: SortOrder = SortOrder.DESC

    @classmethod
    def from_query(cls, sort: str | None, order: str | None) -> "ListOptions":
        """Lenient parsing: unknown values fall back to created / desc."""
        return cls(
            sort=SortColumn.AUTHOR if sort == SortColumn.AUTHOR else SortColumn.CREATED,
            order=SortOrder.ASC if order == SortOrder.ASC else SortOrder.DESC,
        )
