"""Moderation link tokens.

A moderation email carries the submitter's session key inside a signed,
expiring JWT. The token is not bound to the action: approve and reject
links of the same comment share one token.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from comment_moderation.core.logging import get_logger


logger = get_logger(__name__)

TOKEN_TYPE = "comment_moderation"
DEFAULT_TOKEN_TTL = timedelta(days=7)


class ModerationTokenCodec:
    """Encode a session key into a link token and back."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        ttl: timedelta = DEFAULT_TOKEN_TTL,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.ttl = ttl
        self.clock = clock

    def encode(self, session_key: str) -> str:
        """Create a link token for a session key.

        Token payload includes:
            - sub: the session key
            - type: "comment_moderation"
            - iat / exp: issue time and issue time + ttl
        """
        now = self.clock()
        payload = {
            "sub": session_key,
            "type": TOKEN_TYPE,
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode(self, token: str) -> str | None:
        """Recover the session key of a link token.

        Returns None for tampered, foreign or expired tokens.
        """
        try:
            # exp is checked against the injected clock below, not the wall clock
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except JWTError as e:
            logger.info("moderation_token_invalid", error=str(e))
            return None

        if payload.get("type") != TOKEN_TYPE:
            logger.info("moderation_token_wrong_type", token_type=payload.get("type"))
            return None

        expires_at = payload.get("exp")
        if not isinstance(expires_at, int | float) or self.clock().timestamp() >= expires_at:
            logger.info("moderation_token_expired")
            return None

        session_key = payload.get("sub")
        return session_key if isinstance(session_key, str) else None
