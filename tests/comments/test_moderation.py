"""Tests for the submission and moderation workflow."""

import asyncio
import base64
import email
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch
from urllib.parse import urlparse
from uuid import uuid4

import pytest

from comment_moderation.comments.forms import AnonymousCommentForm, UserCommentForm
from comment_moderation.comments.models import (
    ANONYMOUS_USER_ID,
    CommentAuthor,
    CommentStatus,
    ModerationAction,
)
from comment_moderation.comments.moderation import (
    ModerationConfig,
    ModerationLinkBuilder,
    ModerationWorkflow,
)
from comment_moderation.comments.tokens import ModerationTokenCodec
from comment_moderation.email.schemas import SendEmailResponse
from comment_moderation.email.service import EmailService


CONTENT_ID = 42
SESSION_KEY = "visitor-session-key"


def anonymous_form() -> AnonymousCommentForm:
    return AnonymousCommentForm(
        name="Alice", email="alice@example.com", message="Great article"
    )


def link_parts(url: str) -> dict[str, str]:
    """Split a moderation URL into its path parameters."""
    parts = urlparse(url).path.strip("/").split("/")
    content_id, session_hash, action, comment_id = parts[-4:]
    return {
        "content_id": content_id,
        "session_hash": session_hash,
        "action": action,
        "comment_id": comment_id,
    }


async def submit_anonymous(workflow: ModerationWorkflow):
    return await workflow.submit(
        None,
        anonymous_form(),
        content_id=CONTENT_ID,
        session_key=SESSION_KEY,
        ip="10.0.0.1",
        locale_code="eng-GB",
    )


class TestSubmit:
    """Tests for ModerationWorkflow.submit."""

    @pytest.mark.asyncio
    async def test_without_moderation_comment_is_accepted(
        self, fake_store, codec, links, email_service
    ) -> None:
        """Comments go live immediately and no email is sent."""
        workflow = ModerationWorkflow(
            fake_store,
            codec,
            links,
            ModerationConfig(anonymous_access=True, moderation=False),
            email_service=email_service,
        )

        comment_id = await submit_anonymous(workflow)

        comment = fake_store.comments[comment_id]
        assert comment.status == CommentStatus.ACCEPT
        assert comment.user_id == ANONYMOUS_USER_ID
        assert comment.name == "Alice"
        assert comment.language_id == 1
        email_service.send_template.assert_not_called()

    @pytest.mark.asyncio
    async def test_with_moderation_comment_waits_and_email_is_sent(
        self, moderated_workflow, fake_store, email_service
    ) -> None:
        comment_id = await submit_anonymous(moderated_workflow)

        assert fake_store.comments[comment_id].status == CommentStatus.WAITING
        email_service.send_template.assert_awaited_once()

        kwargs = email_service.send_template.call_args.kwargs
        assert kwargs["template"] == "comment_moderation"
        assert kwargs["to"] == ["mod1@example.com", "mod2@example.com"]
        assert kwargs["subject"] == "New comment"
        assert kwargs["sender"] == "noreply@example.com"
        assert kwargs["context"]["name"] == "Alice"
        assert kwargs["context"]["email"] == "alice@example.com"
        assert kwargs["context"]["comment"] == "Great article"

    @pytest.mark.asyncio
    async def test_links_target_the_new_comment(
        self, moderated_workflow, email_service
    ) -> None:
        """Approve and reject links share content, token and comment id."""
        comment_id = await submit_anonymous(moderated_workflow)

        context = email_service.send_template.call_args.kwargs["context"]
        approve = link_parts(context["approve_url"])
        reject = link_parts(context["reject_url"])

        assert context["approve_url"].startswith("https://comments.example.com/v1/")
        assert approve["action"] == "approve"
        assert reject["action"] == "reject"
        assert approve["content_id"] == reject["content_id"] == str(CONTENT_ID)
        assert approve["comment_id"] == reject["comment_id"] == str(comment_id)
        assert approve["session_hash"] == reject["session_hash"]
        assert SESSION_KEY not in context["approve_url"]

    @pytest.mark.asyncio
    async def test_authenticated_author_is_stored(
        self, moderated_workflow, fake_store
    ) -> None:
        user_id = uuid4()
        author = CommentAuthor(user_id=user_id, name="Bob", email="bob@example.com")

        comment_id = await moderated_workflow.submit(
            author,
            UserCommentForm(message="Hello"),
            content_id=CONTENT_ID,
            session_key=SESSION_KEY,
            ip="10.0.0.2",
            locale_code="xx-XX",
        )

        comment = fake_store.comments[comment_id]
        assert comment.user_id == user_id
        assert comment.name == "Bob"
        assert comment.is_anonymous is False
        # Unknown locale is stored as language 0
        assert comment.language_id == 0

    @pytest.mark.asyncio
    async def test_anonymous_needs_anonymous_form(self, moderated_workflow) -> None:
        with pytest.raises(TypeError):
            await moderated_workflow.submit(
                None,
                UserCommentForm(message="Hello"),
                content_id=CONTENT_ID,
                session_key=SESSION_KEY,
                ip="10.0.0.1",
                locale_code="eng-GB",
            )

    @pytest.mark.asyncio
    async def test_email_failure_keeps_comment(
        self, moderated_workflow, fake_store, email_service
    ) -> None:
        """A failed notification is logged, the comment stays waiting."""
        email_service.send_template.return_value = SendEmailResponse(
            success=False, error="Gmail API error"
        )

        comment_id = await submit_anonymous(moderated_workflow)

        assert fake_store.comments[comment_id].status == CommentStatus.WAITING

    @pytest.mark.asyncio
    async def test_no_email_service_skips_notification(
        self, fake_store, codec, links, moderated_config
    ) -> None:
        workflow = ModerationWorkflow(fake_store, codec, links, moderated_config)

        comment_id = await submit_anonymous(workflow)
        notified = await workflow.notify_moderators(
            CommentAuthor(ANONYMOUS_USER_ID, "Alice", "alice@example.com"),
            "text",
            CONTENT_ID,
            SESSION_KEY,
            comment_id,
        )

        assert notified is False
        assert fake_store.comments[comment_id].status == CommentStatus.WAITING


class TestWorkflowConfig:
    """Tests for workflow switches."""

    def test_initial_status_follows_moderation(self, fake_store, codec, links) -> None:
        on = ModerationWorkflow(fake_store, codec, links, ModerationConfig(moderation=True))
        off = ModerationWorkflow(fake_store, codec, links, ModerationConfig())

        assert on.initial_status() == CommentStatus.WAITING
        assert off.initial_status() == CommentStatus.ACCEPT
        assert off.has_anonymous_access() is False

    def test_unknown_template_is_rejected(self, fake_store, codec, links) -> None:
        config = ModerationConfig(moderation=True, email_template="missing")

        with pytest.raises(ValueError, match="missing"):
            ModerationWorkflow(fake_store, codec, links, config)

    def test_link_builder_strips_trailing_slash(self) -> None:
        builder = ModerationLinkBuilder(
            "https://site.example/",
            lambda name, **p: f"/m/{p['content_id']}/{p['session_hash']}/{p['action']}/{p['comment_id']}",
        )
        comment_id = uuid4()

        url = builder.build(7, "tok", ModerationAction.REJECT, comment_id)

        assert url == f"https://site.example/m/7/tok/reject/{comment_id}"


class TestApplyAction:
    """Tests for moderation link handling."""

    @pytest.mark.asyncio
    async def test_approve_accepts_comment(
        self, moderated_workflow, fake_store, codec
    ) -> None:
        comment_id = await submit_anonymous(moderated_workflow)
        token = codec.encode(SESSION_KEY)

        applied = await moderated_workflow.apply_action(
            CONTENT_ID, token, comment_id, ModerationAction.APPROVE
        )

        assert applied is True
        assert fake_store.comments[comment_id].status == CommentStatus.ACCEPT

    @pytest.mark.asyncio
    async def test_reject_rejects_comment(
        self, moderated_workflow, fake_store, codec
    ) -> None:
        comment_id = await submit_anonymous(moderated_workflow)

        applied = await moderated_workflow.apply_action(
            CONTENT_ID, codec.encode(SESSION_KEY), comment_id, ModerationAction.REJECT
        )

        assert applied is True
        assert fake_store.comments[comment_id].status == CommentStatus.REJECTED

    @pytest.mark.asyncio
    async def test_second_click_is_not_processed(
        self, moderated_workflow, fake_store, codec
    ) -> None:
        """Once resolved, neither link changes the comment again."""
        comment_id = await submit_anonymous(moderated_workflow)
        token = codec.encode(SESSION_KEY)

        first = await moderated_workflow.apply_action(
            CONTENT_ID, token, comment_id, ModerationAction.APPROVE
        )
        second = await moderated_workflow.apply_action(
            CONTENT_ID, token, comment_id, ModerationAction.REJECT
        )
        replay = await moderated_workflow.apply_action(
            CONTENT_ID, token, comment_id, ModerationAction.APPROVE
        )

        assert (first, second, replay) == (True, False, False)
        assert fake_store.comments[comment_id].status == CommentStatus.ACCEPT

    @pytest.mark.asyncio
    async def test_concurrent_clicks_apply_once(
        self, moderated_workflow, fake_store, codec
    ) -> None:
        comment_id = await submit_anonymous(moderated_workflow)
        token = codec.encode(SESSION_KEY)

        results = await asyncio.gather(
            moderated_workflow.apply_action(
                CONTENT_ID, token, comment_id, ModerationAction.APPROVE
            ),
            moderated_workflow.apply_action(
                CONTENT_ID, token, comment_id, ModerationAction.REJECT
            ),
        )

        assert sorted(results) == [False, True]
        assert fake_store.comments[comment_id].status != CommentStatus.WAITING

    @pytest.mark.asyncio
    async def test_wrong_content_id_is_refused(
        self, moderated_workflow, fake_store, codec
    ) -> None:
        comment_id = await submit_anonymous(moderated_workflow)

        applied = await moderated_workflow.apply_action(
            CONTENT_ID + 1, codec.encode(SESSION_KEY), comment_id, ModerationAction.APPROVE
        )

        assert applied is False
        assert fake_store.comments[comment_id].status == CommentStatus.WAITING

    @pytest.mark.asyncio
    async def test_token_of_other_session_is_refused(
        self, moderated_workflow, fake_store, codec
    ) -> None:
        comment_id = await submit_anonymous(moderated_workflow)

        applied = await moderated_workflow.apply_action(
            CONTENT_ID, codec.encode("someone-else"), comment_id, ModerationAction.APPROVE
        )

        assert applied is False

    @pytest.mark.asyncio
    async def test_tampered_token_is_refused(
        self, moderated_workflow, fake_store, codec
    ) -> None:
        comment_id = await submit_anonymous(moderated_workflow)
        token = codec.encode(SESSION_KEY)

        applied = await moderated_workflow.apply_action(
            CONTENT_ID, token[:-4] + "AAAA", comment_id, ModerationAction.APPROVE
        )

        assert applied is False
        assert fake_store.comments[comment_id].status == CommentStatus.WAITING

    @pytest.mark.asyncio
    async def test_expired_token_is_refused(self, fake_store, links, moderated_config) -> None:
        issued = datetime(2024, 1, 1, tzinfo=UTC)
        now = {"value": issued}
        codec = ModerationTokenCodec(
            "secret", ttl=timedelta(hours=1), clock=lambda: now["value"]
        )
        workflow = ModerationWorkflow(fake_store, codec, links, moderated_config)
        comment_id = await submit_anonymous(workflow)
        token = codec.encode(SESSION_KEY)

        now["value"] = issued + timedelta(hours=2)
        applied = await workflow.apply_action(
            CONTENT_ID, token, comment_id, ModerationAction.APPROVE
        )

        assert applied is False

    @pytest.mark.asyncio
    async def test_unknown_comment_is_refused(self, moderated_workflow, codec) -> None:
        applied = await moderated_workflow.apply_action(
            CONTENT_ID, codec.encode(SESSION_KEY), uuid4(), ModerationAction.APPROVE
        )

        assert applied is False

    @pytest.mark.asyncio
    async def test_resolved_comment_is_returned(
        self, moderated_workflow, codec
    ) -> None:
        comment_id = await submit_anonymous(moderated_workflow)
        await moderated_workflow.apply_action(
            CONTENT_ID, codec.encode(SESSION_KEY), comment_id, ModerationAction.REJECT
        )

        comment = await moderated_workflow.get_comment(comment_id)

        assert comment.comment_id == comment_id
        assert comment.status == CommentStatus.REJECTED
        assert await moderated_workflow.get_comment(uuid4()) is None


class TestGmailDelivery:
    """Moderation email sent through EmailService with Gmail mocked."""

    @pytest.fixture
    def gmail(self) -> MagicMock:
        gmail = MagicMock()
        send = gmail.users.return_value.messages.return_value.send
        send.return_value.execute.return_value = {"id": "msg-1"}
        return gmail

    @pytest.fixture
    def workflow(self, fake_store, codec, links, moderated_config, gmail):
        with patch.object(EmailService, "_get_service", return_value=gmail):
            yield ModerationWorkflow(
                fake_store,
                codec,
                links,
                moderated_config,
                email_service=EmailService(
                    credentials_path="/fake/path.json",
                    sender_address="comments@example.com",
                ),
            )

    def sent_message(self, gmail: MagicMock):
        send = gmail.users.return_value.messages.return_value.send
        send.assert_called_once()
        raw = send.call_args.kwargs["body"]["raw"]
        return email.message_from_bytes(base64.urlsafe_b64decode(raw))

    @pytest.mark.asyncio
    async def test_links_reach_gmail(self, workflow, fake_store, codec, gmail) -> None:
        comment_id = await submit_anonymous(workflow)

        message = self.sent_message(gmail)
        parts = {
            part.get_content_type(): part.get_payload(decode=True).decode("utf-8")
            for part in message.walk()
            if not part.is_multipart()
        }
        text = parts["text/plain"]
        approve_url = text.split("Approve: ", 1)[1].split()[0]
        reject_url = text.split("Reject: ", 1)[1].split()[0]

        approve = link_parts(approve_url)
        assert approve["content_id"] == str(CONTENT_ID)
        assert approve["action"] == "approve"
        assert approve["comment_id"] == str(comment_id)
        assert link_parts(reject_url)["action"] == "reject"
        assert approve_url in parts["text/html"]
        assert reject_url in parts["text/html"]
        assert "Great article" in text
        assert fake_store.comments[comment_id].status == CommentStatus.WAITING

        assert codec.decode(approve["session_hash"]) == SESSION_KEY

    @pytest.mark.asyncio
    async def test_headers(self, workflow, gmail) -> None:
        await submit_anonymous(workflow)

        message = self.sent_message(gmail)

        assert message["From"] == "Comments <noreply@example.com>"
        assert message["To"] == "mod1@example.com, mod2@example.com"
        assert message["Subject"] == "New comment"
