"""Email service using Gmail API with Service Account.

Uses domain-wide delegation to send emails on behalf of a Google Workspace user.
The service account must have domain-wide delegation enabled in Google Admin Console.

Required Google Admin Console setup:
1. Go to Security > Access and data control > API controls > Domain-wide delegation
2. Add the service account client_id with scope: https://www.googleapis.com/auth/gmail.send
"""

import base64
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import TYPE_CHECKING

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from pydantic import ValidationError

from comment_moderation.core.logging import get_logger

from .schemas import EmailRecipient, SendEmailRequest, SendEmailResponse
from .templates import render_template


if TYPE_CHECKING:
    from googleapiclient._apis.gmail.v1 import GmailResource


logger = get_logger(__name__)

GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.send"]


class EmailService:
    """Send emails via Gmail API impersonating the configured sender."""

    def __init__(
        self,
        credentials_path: str,
        sender_address: str,
        sender_name: str = "Comments",
    ):
        self.credentials_path = credentials_path
        self.sender_address = sender_address
        self.sender_name = sender_name
        self._service: GmailResource | None = None

        if not Path(credentials_path).exists():
            logger.warning(
                "email_credentials_not_found",
                path=credentials_path,
                message="Gmail API will not be available",
            )

    def _get_service(self) -> "GmailResource":
        """Get or create the Gmail API service (lazy).

        Raises:
            FileNotFoundError: If credentials file doesn't exist
        """
        if self._service is not None:
            return self._service

        credentials_file = Path(self.credentials_path)
        if not credentials_file.exists():
            msg = f"Credentials file not found: {self.credentials_path}"
            raise FileNotFoundError(msg)

        credentials = service_account.Credentials.from_service_account_file(
            str(credentials_file),
            scopes=GMAIL_SCOPES,
        )
        self._service = build(
            "gmail",
            "v1",
            credentials=credentials.with_subject(self.sender_address),
            cache_discovery=False,
        )
        logger.info("gmail_service_initialized", sender=self.sender_address)
        return self._service

    @staticmethod
    def _format_address(recipient: EmailRecipient) -> str:
        if recipient.name:
            return f"{recipient.name} <{recipient.email}>"
        return recipient.email

    def _create_message(self, request: SendEmailRequest) -> dict:
        """Create email message in Gmail API format (base64url 'raw')."""
        message = MIMEMultipart("alternative")
        message["From"] = f"{self.sender_name} <{request.sender or self.sender_address}>"
        message["To"] = ", ".join(self._format_address(r) for r in request.to)
        message["Subject"] = request.subject
        if request.reply_to:
            message["Reply-To"] = request.reply_to

        # Plain text first, then HTML (clients prefer the last part)
        if request.body_text:
            message.attach(MIMEText(request.body_text, "plain", "utf-8"))
        message.attach(MIMEText(request.body_html, "html", "utf-8"))

        raw_message = base64.urlsafe_b64encode(message.as_bytes()).decode("utf-8")
        return {"raw": raw_message}

    async def send_email(self, request: SendEmailRequest) -> SendEmailResponse:
        """Send an email via Gmail API.

        Delivery problems are reported in the response, not raised.
        """
        recipients = [r.email for r in request.to]
        try:
            service = self._get_service()
            result = (
                service.users()
                .messages()
                .send(userId="me", body=self._create_message(request))
                .execute()
            )

            logger.info(
                "email_sent",
                message_id=result.get("id"),
                to=recipients,
                subject=request.subject[:50],
            )
            return SendEmailResponse(success=True, message_id=result.get("id"))

        except HttpError as e:
            logger.exception("email_send_failed", error=str(e), to=recipients)
            return SendEmailResponse(success=False, error=f"Gmail API error: {e}")

        except FileNotFoundError as e:
            logger.error("email_credentials_missing", error=str(e))
            return SendEmailResponse(
                success=False,
                error="Email service not configured: credentials file missing",
            )

    async def send_template(
        self,
        template: str,
        to: list[str],
        subject: str,
        context: dict[str, str],
        sender: str | None = None,
    ) -> SendEmailResponse:
        """Render a named template and send it to several recipients.

        ``sender`` overrides the From address; it must be a send-as alias of
        the delegated account. Invalid addresses are reported, not raised.
        """
        body_html, body_text = render_template(template, **context)
        try:
            request = SendEmailRequest(
                to=[EmailRecipient(email=address) for address in to],
                subject=subject,
                body_html=body_html,
                body_text=body_text,
                sender=sender,
            )
        except ValidationError as e:
            logger.error("email_request_invalid", error=str(e), to=to)
            return SendEmailResponse(success=False, error="Invalid email address")

        return await self.send_email(request)
