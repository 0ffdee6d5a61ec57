"""Email module for sending emails via Gmail API."""

from .schemas import EmailRecipient, SendEmailRequest, SendEmailResponse
from .service import EmailService
from .templates import render_template


__all__ = [
    "EmailRecipient",
    "EmailService",
    "SendEmailRequest",
    "SendEmailResponse",
    "render_template",
]
