"""Identity of commenting users."""

from .dependencies import OptionalUser, get_current_user_optional
from .schemas import AuthenticatedUser


__all__ = ["AuthenticatedUser", "OptionalUser", "get_current_user_optional"]
