"""Fixtures for comment tests."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest

from comment_moderation.comments.models import (
    UNKNOWN_LANGUAGE_ID,
    Comment,
    CommentStatus,
    NewComment,
)
from comment_moderation.comments.moderation import (
    ModerationConfig,
    ModerationLinkBuilder,
    ModerationWorkflow,
)
from comment_moderation.comments.tokens import ModerationTokenCodec
from comment_moderation.email.schemas import SendEmailResponse


MODERATION_PATH = "/v1/comments/moderation/{content_id}/{session_hash}/{action}/{comment_id}"


class FakeCommentStore:
    """In-memory stand-in for CommentStore with the same async API."""

    def __init__(self, languages: dict[str, int] | None = None):
        self.comments: dict[UUID, Comment] = {}
        self.languages = languages or {}

    async def lookup_language_id(self, locale_code: str) -> int:
        return self.languages.get(locale_code, UNKNOWN_LANGUAGE_ID)

    async def insert_comment(self, new_comment: NewComment) -> UUID:
        comment_id = uuid4()
        now = datetime.now(UTC)
        self.comments[comment_id] = Comment(
            comment_id=comment_id,
            content_id=new_comment.content_id,
            language_id=new_comment.language_id,
            created=now,
            modified=now,
            user_id=new_comment.user_id,
            name=new_comment.name,
            email=new_comment.email,
            url=new_comment.url,
            title=new_comment.title,
            text=new_comment.text,
            status=new_comment.status,
            session_key=new_comment.session_key,
            ip=new_comment.ip,
        )
        return comment_id

    async def get_comment(self, comment_id: UUID) -> Comment | None:
        return self.comments.get(comment_id)

    async def exists_waiting_comment(
        self, content_id: int, session_key: str, comment_id: UUID
    ) -> bool:
        comment = self.comments.get(comment_id)
        return (
            comment is not None
            and comment.content_id == content_id
            and comment.session_key == session_key
            and comment.status == CommentStatus.WAITING
        )

    async def update_status_if_waiting(
        self, comment_id: UUID, new_status: CommentStatus
    ) -> bool:
        comment = self.comments.get(comment_id)
        if comment is None or comment.status != CommentStatus.WAITING:
            return False
        comment.status = new_status
        return True


def moderation_path_for(name: str, **params: str) -> str:
    """Plays app.url_path_for for the moderation route."""
    assert name == "moderate_comment"
    return MODERATION_PATH.format(**params)


@pytest.fixture
def fake_store() -> FakeCommentStore:
    return FakeCommentStore(languages={"eng-GB": 1, "por-BR": 2})


@pytest.fixture
def codec() -> ModerationTokenCodec:
    return ModerationTokenCodec("test-moderation-secret")


@pytest.fixture
def links() -> ModerationLinkBuilder:
    return ModerationLinkBuilder("https://comments.example.com/", moderation_path_for)


@pytest.fixture
def email_service() -> AsyncMock:
    """Email service whose send_template always succeeds."""
    service = AsyncMock()
    service.send_template = AsyncMock(
        return_value=SendEmailResponse(success=True, message_id="msg-1")
    )
    return service


@pytest.fixture
def moderated_config() -> ModerationConfig:
    return ModerationConfig(
        anonymous_access=True,
        moderation=True,
        email_subject="New comment",
        email_from="noreply@example.com",
        email_to=["mod1@example.com", "mod2@example.com"],
    )


@pytest.fixture
def moderated_workflow(
    fake_store, codec, links, moderated_config, email_service
) -> ModerationWorkflow:
    return ModerationWorkflow(
        store=fake_store,
        codec=codec,
        links=links,
        config=moderated_config,
        email_service=email_service,
    )
