"""Comment moderation workflow.

State machine of a comment:

    WAITING --approve--> ACCEPT
    WAITING --reject---> REJECTED

ACCEPT and REJECTED are terminal. New comments start in ACCEPT when
moderation is off and in WAITING when it is on; in the latter case the
moderators receive an email with one approve and one reject link. Each link
carries the content id, a signed token of the submitter's session key, the
action and the comment id. A click is honoured only while the comment is
still waiting; replays and lost races are reported as "not processed".
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from uuid import UUID

from comment_moderation.core.logging import get_logger
from comment_moderation.email.templates import TEMPLATES

from .forms import AnonymousCommentForm, CommentForm
from .models import (
    ANONYMOUS_USER_ID,
    Comment,
    CommentAuthor,
    CommentStatus,
    ModerationAction,
    NewComment,
)
from .store import CommentError, CommentStore
from .tokens import ModerationTokenCodec


if TYPE_CHECKING:
    from comment_moderation.config.settings import Settings
    from comment_moderation.email.service import EmailService


logger = get_logger(__name__)

MODERATION_ROUTE_NAME = "moderate_comment"


class AnonymousAccessDeniedError(CommentError):
    """Anonymous visitors may not comment on this site."""

    def __init__(self, message: str = "Anonymous comments are disabled"):
        super().__init__(message, "anonymous_access_denied")


@dataclass
class ModerationConfig:
    """Site switches and moderation email settings."""

    anonymous_access: bool = False
    moderation: bool = False
    email_subject: str = "New comment waiting for moderation"
    email_from: str | None = None
    email_to: list[str] = field(default_factory=list)
    email_template: str = "comment_moderation"

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ModerationConfig":
        return cls(
            anonymous_access=settings.comment_anonymous_access_enabled,
            moderation=settings.comment_moderation_enabled,
            email_subject=settings.comment_moderation_email_subject,
            email_from=settings.comment_moderation_email_from,
            email_to=list(settings.comment_moderation_email_to),
            email_template=settings.comment_moderation_email_template,
        )


class ModerationLinkBuilder:
    """Build absolute moderation URLs from the named moderation route.

    ``path_for`` is typically ``app.url_path_for``.
    """

    def __init__(self, base_url: str, path_for: Callable[..., Any]):
        self.base_url = base_url.rstrip("/")
        self.path_for = path_for

    def build(
        self,
        content_id: int,
        session_hash: str,
        action: ModerationAction,
        comment_id: UUID,
    ) -> str:
        path = self.path_for(
            MODERATION_ROUTE_NAME,
            content_id=str(content_id),
            session_hash=session_hash,
            action=action.value,
            comment_id=str(comment_id),
        )
        return f"{self.base_url}{path}"


class ModerationWorkflow:
    """Submission and moderation of comments."""

    def __init__(
        self,
        store: CommentStore,
        codec: ModerationTokenCodec,
        links: ModerationLinkBuilder,
        config: ModerationConfig,
        email_service: "EmailService | None" = None,
    ):
        if config.moderation and config.email_template not in TEMPLATES:
            msg = f"Unknown moderation email template: {config.email_template}"
            raise ValueError(msg)

        self.store = store
        self.codec = codec
        self.links = links
        self.config = config
        self.email_service = email_service

    def has_anonymous_access(self) -> bool:
        return self.config.anonymous_access

    def has_moderation(self) -> bool:
        return self.config.moderation

    def initial_status(self) -> CommentStatus:
        return CommentStatus.WAITING if self.has_moderation() else CommentStatus.ACCEPT

    # ==========================================================================
    # Submission
    # ==========================================================================

    async def submit(
        self,
        author: CommentAuthor | None,
        form: CommentForm,
        *,
        content_id: int,
        session_key: str,
        ip: str,
        locale_code: str,
    ) -> UUID:
        """Store a validated comment and ask for moderation if needed.

        ``author`` is None for anonymous submissions; the caller has already
        checked ``has_anonymous_access()`` and validated an anonymous form.

        Returns:
            The new comment id
        """
        if author is None:
            if not isinstance(form, AnonymousCommentForm):
                msg = "Anonymous submissions need the anonymous form"
                raise TypeError(msg)
            author = CommentAuthor(
                user_id=ANONYMOUS_USER_ID, name=form.name, email=str(form.email)
            )

        language_id = await self.store.lookup_language_id(locale_code)
        status = self.initial_status()

        comment_id = await self.store.insert_comment(
            NewComment(
                content_id=content_id,
                language_id=language_id,
                user_id=author.user_id,
                session_key=session_key,
                ip=ip,
                name=author.name,
                email=author.email,
                text=form.message,
                status=status,
            )
        )

        logger.info(
            "comment_submitted",
            comment_id=str(comment_id),
            content_id=content_id,
            anonymous=author.user_id == ANONYMOUS_USER_ID,
            status=status.name,
        )

        if self.has_moderation():
            await self.notify_moderators(
                author=author,
                text=form.message,
                content_id=content_id,
                session_key=session_key,
                comment_id=comment_id,
            )

        return comment_id

    async def notify_moderators(
        self,
        author: CommentAuthor,
        text: str,
        content_id: int,
        session_key: str,
        comment_id: UUID,
    ) -> bool:
        """Email the approve/reject links of a waiting comment.

        Returns:
            True if the email was handed to the mail service successfully.
            The comment stays stored either way.
        """
        if self.email_service is None or not self.config.email_to:
            logger.warning(
                "moderation_email_skipped",
                comment_id=str(comment_id),
                reason="no email service" if self.email_service is None else "no recipients",
            )
            return False

        session_hash = self.codec.encode(session_key)
        approve_url = self.links.build(
            content_id, session_hash, ModerationAction.APPROVE, comment_id
        )
        reject_url = self.links.build(
            content_id, session_hash, ModerationAction.REJECT, comment_id
        )

        result = await self.email_service.send_template(
            template=self.config.email_template,
            to=self.config.email_to,
            subject=self.config.email_subject,
            context={
                "name": author.name,
                "email": author.email,
                "comment": text,
                "approve_url": approve_url,
                "reject_url": reject_url,
            },
            sender=self.config.email_from,
        )

        if not result.success:
            logger.error(
                "moderation_email_failed",
                comment_id=str(comment_id),
                error=result.error,
            )
            return False

        logger.info(
            "moderation_email_sent",
            comment_id=str(comment_id),
            recipients=len(self.config.email_to),
        )
        return True

    # ==========================================================================
    # Moderation links
    # ==========================================================================

    async def authorize_action(
        self, content_id: int, session_token: str, comment_id: UUID
    ) -> bool:
        """Check a link still targets a waiting comment of that session."""
        session_key = self.codec.decode(session_token)
        if session_key is None:
            return False
        return await self.store.exists_waiting_comment(
            content_id, session_key, comment_id
        )

    async def apply_action(
        self,
        content_id: int,
        session_token: str,
        comment_id: UUID,
        action: ModerationAction,
    ) -> bool:
        """Resolve a waiting comment from a moderation link.

        Returns:
            True only for the click that actually changed the status.
        """
        if not await self.authorize_action(content_id, session_token, comment_id):
            logger.info(
                "moderation_link_rejected",
                comment_id=str(comment_id),
                content_id=content_id,
                action=action.value,
            )
            return False

        applied = await self.store.update_status_if_waiting(
            comment_id, action.target_status
        )
        logger.info(
            "comment_moderated" if applied else "comment_moderation_lost_race",
            comment_id=str(comment_id),
            action=action.value,
        )
        return applied

    async def get_comment(self, comment_id: UUID) -> Comment | None:
        """Comment shown on the moderation page once a link is applied."""
        return await self.store.get_comment(comment_id)
