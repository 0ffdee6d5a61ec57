"""Comment submission forms.

Field names are fixed and language neutral; only the messages shown to the
visitor are meant to be translated. A failed validation is returned as a
field -> message mapping, never raised to the caller.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationError,
    field_validator,
)


EMPTY_MESSAGE = "Could not be empty"
INVALID_EMAIL_MESSAGE = "This is not a valid email"
BOT_MESSAGE = "The form could not be verified"

MAX_MESSAGE_LENGTH = 10000


def _not_blank(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError(EMPTY_MESSAGE)
    return v


class UserCommentForm(BaseModel):
    """Form of an authenticated visitor."""

    model_config = ConfigDict(extra="ignore")

    message: str = Field(..., max_length=MAX_MESSAGE_LENGTH)

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        return _not_blank(v)


class AnonymousCommentForm(UserCommentForm):
    """Form of a visitor without an account.

    ``website`` is a honeypot: it is hidden from humans, so any value means
    the form was filled in by a bot.
    """

    name: str = Field(..., max_length=255)
    email: EmailStr
    website: str = ""

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _not_blank(v)

    @field_validator("website")
    @classmethod
    def validate_honeypot(cls, v: str) -> str:
        if v.strip():
            raise ValueError(BOT_MESSAGE)
        return v


CommentForm = UserCommentForm | AnonymousCommentForm


@dataclass
class FormResult:
    """Outcome of a form validation."""

    form: CommentForm | None = None
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return self.form is not None and not self.errors


def error_messages(exc: ValidationError) -> dict[str, str]:
    """Flatten a pydantic ValidationError into field -> message.

    Only the first error of a field is kept. Custom validator messages are
    used as is; pydantic's own messages are replaced by form messages.
    """
    errors: dict[str, str] = {}
    for error in exc.errors():
        loc = error.get("loc") or ("form",)
        key = ".".join(str(part) for part in loc)
        if key in errors:
            continue

        error_type = error.get("type", "")
        if error_type == "value_error":
            ctx_error = error.get("ctx", {}).get("error")
            message = str(ctx_error) if ctx_error else error["msg"]
            if key == "email" and message not in (EMPTY_MESSAGE, BOT_MESSAGE):
                message = INVALID_EMAIL_MESSAGE
        elif error_type in ("missing", "string_type", "string_too_short"):
            message = EMPTY_MESSAGE
        else:
            message = error["msg"]
        errors[key] = message
    return errors


def validate_comment_form(data: dict[str, Any], anonymous: bool) -> FormResult:
    """Validate raw submitted fields against the right form."""
    form_class = AnonymousCommentForm if anonymous else UserCommentForm
    try:
        return FormResult(form=form_class.model_validate(data))
    except ValidationError as e:
        return FormResult(errors=error_messages(e))
