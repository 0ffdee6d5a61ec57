"""Pydantic response schemas for the comment API."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import Comment, CommentStatus


NOT_PROCESSED_MESSAGE = "This comment cannot be processed"


class CommentResponse(BaseModel):
    """Public view of a comment (no session key, no ip)."""

    model_config = ConfigDict(from_attributes=True)

    comment_id: UUID
    content_id: int
    user_id: UUID
    name: str
    url: str
    title: str
    text: str
    status: CommentStatus
    created: datetime
    is_anonymous: bool

    @classmethod
    def from_comment(cls, comment: Comment) -> "CommentResponse":
        return cls(
            comment_id=comment.comment_id,
            content_id=comment.content_id,
            user_id=comment.user_id,
            name=comment.name,
            url=comment.url,
            title=comment.title,
            text=comment.text,
            status=comment.status,
            created=comment.created,
            is_anonymous=comment.is_anonymous,
        )


class CommentListResponse(BaseModel):
    """Comments of one content item."""

    content_id: int
    comments: list[CommentResponse]
    count: int = Field(..., description="Number of accepted comments")


class RecentCommentsResponse(BaseModel):
    comments: list[CommentResponse]


class CommentCountResponse(BaseModel):
    content_id: int
    count: int


class SubmitCommentResponse(BaseModel):
    """Result of a successful submission."""

    comment_id: UUID
    status: CommentStatus
    waiting_for_moderation: bool


class ModerationResultResponse(BaseModel):
    """Outcome of a moderation link click."""

    processed: bool
    status: CommentStatus | None = None
    message: str | None = None
    comment: CommentResponse | None = None
