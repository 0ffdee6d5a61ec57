"""Comment store backed by Cassandra.

All reads and writes of the comment tables go through `CommentStore`.
Every predicate is a bound parameter of a prepared statement.

The only mutation after insert is the status change, done with a
lightweight transaction on comments_by_id (`IF status = WAITING`) so that
two racing moderation clicks resolve to exactly one applied update.
Projection writes that belong together go in one logged batch.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from uuid import UUID, uuid4

from cassandra.cluster import Session
from cassandra.query import BatchStatement, BatchType

from comment_moderation.core.logging import get_logger

from .models import (
    UNKNOWN_LANGUAGE_ID,
    Comment,
    CommentStatus,
    ListOptions,
    NewComment,
    SortColumn,
    SortOrder,
)


logger = get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CommentError(Exception):
    """Base comment error."""

    def __init__(self, message: str, code: str = "comment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidConnectionError(CommentError):
    """The store was handed something that is not a Cassandra session."""

    def __init__(self, message: str = "Connection is not a valid Cassandra session"):
        super().__init__(message, "invalid_connection")


def utc_now() -> datetime:
    return datetime.now(UTC)


DEFAULT_RECENT_LIMIT = 5

_PROJECTION_COLUMNS = (
    "comment_id, content_id, status, language_id, created, user_id, "
    "name, email, url, title, text"
)


class CommentStore:
    """Queries against the comment tables."""

    def __init__(
        self,
        session: Session,
        keyspace: str,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize with a Cassandra session.

        Raises:
            InvalidConnectionError: If session is not a cassandra Session
        """
        if not isinstance(session, Session):
            raise InvalidConnectionError(
                f"Connection is not a valid {Session.__module__}.{Session.__name__}"
            )
        self.session = session
        self.keyspace = keyspace
        self.clock = clock
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        ks = self.keyspace

        # Inserts
        self._insert_by_id = self.session.prepare(f"""
            INSERT INTO {ks}.comments_by_id
            (comment_id, content_id, language_id, created, modified, user_id,
             session_key, ip, parent_comment_id, name, email, url, title, text, status)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_by_content = self.session.prepare(f"""
            INSERT INTO {ks}.comments_by_content
            (content_id, status, created, comment_id, language_id, user_id,
             name, email, url, title, text)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_by_status = self.session.prepare(f"""
            INSERT INTO {ks}.comments_by_status
            (status, created, comment_id, content_id, language_id, user_id,
             name, email, url, title, text)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_by_user = self.session.prepare(f"""
            INSERT INTO {ks}.comments_by_user
            (user_id, status, created, comment_id, content_id, language_id,
             name, email, url, title, text)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        # Projection moves
        self._delete_by_content = self.session.prepare(f"""
            DELETE FROM {ks}.comments_by_content
            WHERE content_id = ? AND status = ? AND created = ? AND comment_id = ?
        """)

        self._delete_by_status = self.session.prepare(f"""
            DELETE FROM {ks}.comments_by_status
            WHERE status = ? AND created = ? AND comment_id = ?
        """)

        self._delete_by_user = self.session.prepare(f"""
            DELETE FROM {ks}.comments_by_user
            WHERE user_id = ? AND status = ? AND created = ? AND comment_id = ?
        """)

        # Status change guarded by a lightweight transaction
        self._update_status_if_waiting = self.session.prepare(f"""
            UPDATE {ks}.comments_by_id
            SET status = ?
            WHERE comment_id = ?
            IF status = ?
        """)

        # Reads
        self._get_comment = self.session.prepare(f"""
            SELECT * FROM {ks}.comments_by_id
            WHERE comment_id = ?
        """)

        self._get_comments_by_content = self.session.prepare(f"""
            SELECT {_PROJECTION_COLUMNS} FROM {ks}.comments_by_content
            WHERE content_id = ? AND status = ?
        """)

        self._get_comments_by_content_asc = self.session.prepare(f"""
            SELECT {_PROJECTION_COLUMNS} FROM {ks}.comments_by_content
            WHERE content_id = ? AND status = ?
            ORDER BY created ASC
        """)

        self._count_comments_by_content = self.session.prepare(f"""
            SELECT COUNT(*) FROM {ks}.comments_by_content
            WHERE content_id = ? AND status = ?
        """)

        self._get_recent_comments = self.session.prepare(f"""
            SELECT {_PROJECTION_COLUMNS} FROM {ks}.comments_by_status
            WHERE status = ?
            LIMIT ?
        """)

        self._get_recent_comments_by_user = self.session.prepare(f"""
            SELECT {_PROJECTION_COLUMNS} FROM {ks}.comments_by_user
            WHERE user_id = ? AND status = ?
            LIMIT ?
        """)

        self._get_language_id = self.session.prepare(f"""
            SELECT language_id FROM {ks}.content_languages
            WHERE locale = ?
        """)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def list_comments(
        self,
        content_id: int,
        options: ListOptions | None = None,
        status: CommentStatus = CommentStatus.ACCEPT,
    ) -> list[Comment]:
        """List comments of a content item in one status.

        Sorted by creation date (newest first) unless options say otherwise.
        Author sorting orders by the denormalised `name` column.
        """
        options = options or ListOptions()
        ascending = options.order == SortOrder.ASC

        statement = (
            self._get_comments_by_content_asc
            if ascending and options.sort == SortColumn.CREATED
            else self._get_comments_by_content
        )
        rows = await self.session.aexecute(statement, [content_id, int(status)])
        comments = [Comment.from_row(row) for row in rows]

        if options.sort == SortColumn.AUTHOR:
            # Stable sort: equal names keep newest-first order
            comments.sort(key=lambda c: c.name, reverse=not ascending)

        return comments

    async def count_accepted(self, content_id: int) -> int:
        """Count accepted comments of a content item."""
        result = await self.session.aexecute(
            self._count_comments_by_content, [content_id, int(CommentStatus.ACCEPT)]
        )
        row = result.one()
        return row.count if row else 0

    async def list_recent_comments(
        self, limit: int = DEFAULT_RECENT_LIMIT
    ) -> list[Comment]:
        """Newest accepted comments across all content."""
        rows = await self.session.aexecute(
            self._get_recent_comments, [int(CommentStatus.ACCEPT), limit]
        )
        return [Comment.from_row(row) for row in rows]

    async def list_recent_comments_by_user(
        self, user_id: UUID, limit: int = DEFAULT_RECENT_LIMIT
    ) -> list[Comment]:
        """Newest accepted comments of one user."""
        rows = await self.session.aexecute(
            self._get_recent_comments_by_user,
            [user_id, int(CommentStatus.ACCEPT), limit],
        )
        return [Comment.from_row(row) for row in rows]

    async def get_comment(self, comment_id: UUID) -> Comment | None:
        """Fetch the authoritative row of a comment."""
        result = await self.session.aexecute(self._get_comment, [comment_id])
        row = result.one()
        return Comment.from_row(row) if row else None

    async def lookup_language_id(self, locale_code: str) -> int:
        """Resolve a content locale code to its language id.

        Returns UNKNOWN_LANGUAGE_ID (0) when the locale is not registered;
        that is a valid value to store, not an error.
        """
        result = await self.session.aexecute(self._get_language_id, [locale_code])
        row = result.one()
        if row is None or row.language_id is None:
            return UNKNOWN_LANGUAGE_ID
        return row.language_id

    async def exists_waiting_comment(
        self, content_id: int, session_key: str, comment_id: UUID
    ) -> bool:
        """Check a comment matches content, session and is still waiting."""
        comment = await self.get_comment(comment_id)
        if comment is None:
            return False
        return (
            comment.content_id == content_id
            and comment.session_key == session_key
            and comment.status == CommentStatus.WAITING
        )

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def insert_comment(self, new_comment: NewComment) -> UUID:
        """Insert a comment and its projections in one logged batch.

        Returns:
            The generated comment id
        """
        comment_id = uuid4()
        created = modified = self.clock()

        comment = Comment(
            comment_id=comment_id,
            content_id=new_comment.content_id,
            language_id=new_comment.language_id,
            created=created,
            user_id=new_comment.user_id,
            name=new_comment.name,
            email=new_comment.email,
            url=new_comment.url,
            title=new_comment.title,
            text=new_comment.text,
            status=new_comment.status,
        )

        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(
            self._insert_by_id,
            [
                comment_id,
                new_comment.content_id,
                new_comment.language_id,
                created,
                modified,
                new_comment.user_id,
                new_comment.session_key,
                new_comment.ip,
                new_comment.parent_comment_id,
                new_comment.name,
                new_comment.email,
                new_comment.url,
                new_comment.title,
                new_comment.text,
                int(new_comment.status),
            ],
        )
        self._add_projection_inserts(batch, comment, new_comment.status)
        await self.session.aexecute(batch)

        logger.debug(
            "comment_inserted",
            comment_id=str(comment_id),
            content_id=new_comment.content_id,
            status=new_comment.status.name,
        )
        return comment_id

    async def update_status_if_waiting(
        self, comment_id: UUID, new_status: CommentStatus
    ) -> bool:
        """Move a waiting comment to new_status.

        A call that finds the comment already resolved rewrites its
        projections for the resolved status, so a move interrupted after
        the conditional update is completed by the next click.

        Returns:
            True if this call changed the status, False if the comment does
            not exist or was already resolved.
        """
        if new_status == CommentStatus.WAITING:
            raise ValueError("A comment cannot be moved back to WAITING")

        result = await self.session.aexecute(
            self._update_status_if_waiting,
            [int(new_status), comment_id, int(CommentStatus.WAITING)],
        )
        if not result.was_applied:
            # Not applied: the row carries the current status (None if absent)
            current = result.one()
            current_status = getattr(current, "status", None) if current else None
            if current_status is not None and current_status != CommentStatus.WAITING:
                await self._move_projections(comment_id, CommentStatus(current_status))
                logger.info(
                    "comment_projections_repaired",
                    comment_id=str(comment_id),
                    status=CommentStatus(current_status).name,
                )
            return False

        await self._move_projections(comment_id, new_status)

        logger.info(
            "comment_status_updated",
            comment_id=str(comment_id),
            status=new_status.name,
        )
        return True

    async def _move_projections(self, comment_id: UUID, status: CommentStatus) -> None:
        """Move projection rows out of WAITING, atomically (logged batch)."""
        comment = await self.get_comment(comment_id)
        if comment is None:
            return

        batch = BatchStatement(batch_type=BatchType.LOGGED)
        self._add_projection_deletes(batch, comment, CommentStatus.WAITING)
        self._add_projection_inserts(batch, comment, status)
        await self.session.aexecute(batch)

    def _add_projection_inserts(
        self, batch: BatchStatement, comment: Comment, status: CommentStatus
    ) -> None:
        fields = [
            comment.name,
            comment.email,
            comment.url,
            comment.title,
            comment.text,
        ]
        batch.add(
            self._insert_by_content,
            [
                comment.content_id,
                int(status),
                comment.created,
                comment.comment_id,
                comment.language_id,
                comment.user_id,
                *fields,
            ],
        )
        batch.add(
            self._insert_by_status,
            [
                int(status),
                comment.created,
                comment.comment_id,
                comment.content_id,
                comment.language_id,
                comment.user_id,
                *fields,
            ],
        )
        batch.add(
            self._insert_by_user,
            [
                comment.user_id,
                int(status),
                comment.created,
                comment.comment_id,
                comment.content_id,
                comment.language_id,
                *fields,
            ],
        )

    def _add_projection_deletes(
        self, batch: BatchStatement, comment: Comment, status: CommentStatus
    ) -> None:
        batch.add(
            self._delete_by_content,
            [comment.content_id, int(status), comment.created, comment.comment_id],
        )
        batch.add(
            self._delete_by_status,
            [int(status), comment.created, comment.comment_id],
        )
        batch.add(
            self._delete_by_user,
            [comment.user_id, int(status), comment.created, comment.comment_id],
        )
