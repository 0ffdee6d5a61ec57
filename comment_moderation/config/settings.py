"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import EmailStr, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="comment-moderation", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment name"
    )
    debug: bool = Field(default=True, description="Debug mode")
    public_base_url: str = Field(
        default="http://localhost:8000",
        description="Absolute base URL used in links sent by email",
    )

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Authentication (identity tokens issued by the host site)
    auth_secret_key: str = Field(
        default="dev-jwt-secret-key-change-in-production-32chars!",
        description="JWT signing key (min 32 chars)",
    )
    auth_algorithm: str = Field(default="HS256", description="JWT algorithm")
    auth_access_token_expire_minutes: int = Field(
        default=15, description="Access token expiration (minutes)"
    )

    # Cassandra
    cassandra_hosts: list[str] = Field(
        default=["localhost"], description="Cassandra hosts"
    )
    cassandra_port: int = Field(default=9042, description="Cassandra port")
    cassandra_keyspace: str = Field(
        default="comment_moderation", description="Cassandra keyspace"
    )
    cassandra_username: str | None = Field(default=None, description="Cassandra user")
    cassandra_password: str | None = Field(
        default=None, description="Cassandra password"
    )
    cassandra_protocol_version: int = Field(default=4, description="Protocol version")
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Connect timeout"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="DEBUG", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format"
    )
    log_include_caller_info: bool = Field(
        default=True, description="Include caller info"
    )
    log_dir: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Max size per log file (10MB default)"
    )
    log_file_backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )
    log_requests: bool = Field(
        default=True, description="Log HTTP request start/finish"
    )
    log_exclude_paths: list[str] = Field(
        default=["/health", "/health/live", "/health/ready"],
        description="Paths to exclude from request logging",
    )

    # CORS
    cors_origins: list[str] = Field(default=["*"], description="CORS origins")
    cors_allow_credentials: bool = Field(default=True, description="Allow credentials")
    cors_allow_methods: list[str] = Field(default=["*"], description="Allowed methods")
    cors_allow_headers: list[str] = Field(default=["*"], description="Allowed headers")
    cors_max_age: int = Field(default=600, description="Preflight cache seconds")

    # Email (Gmail API)
    email_enabled: bool = Field(
        default=False, description="Enable email sending via Gmail API"
    )
    email_credentials_path: str = Field(
        default="credentials/google-service-account.json",
        description="Path to Google service account JSON file",
    )
    email_sender_address: str = Field(
        default="comments@example.com",
        description="Sender email address (must be in Google Workspace domain)",
    )
    email_sender_name: str = Field(
        default="Comments", description="Sender display name"
    )

    # Comments
    comment_anonymous_access_enabled: bool = Field(
        default=False, description="Allow unauthenticated visitors to comment"
    )
    comment_moderation_enabled: bool = Field(
        default=False, description="Hold new comments until a moderator accepts them"
    )
    comment_moderation_email_subject: str = Field(
        default="New comment waiting for moderation",
        description="Subject of the moderation request email",
    )
    comment_moderation_email_from: EmailStr | None = Field(
        default=None,
        description="From address of the moderation email (sender if empty)",
    )
    comment_moderation_email_to: Annotated[list[EmailStr], NoDecode] = Field(
        default_factory=list,
        description="Moderator recipients (comma separated in the environment)",
    )
    comment_moderation_email_template: str = Field(
        default="comment_moderation",
        description="Name of the template rendered for moderation emails",
    )
    comment_moderation_token_secret: str | None = Field(
        default=None,
        description="Key signing moderation links (auth_secret_key if empty)",
    )
    comment_moderation_token_ttl_hours: int = Field(
        default=24 * 7, ge=1, description="Lifetime of a moderation link (hours)"
    )
    comment_session_cookie_name: str = Field(
        default="comment_session", description="Cookie holding the submitter session"
    )
    comment_locale_map: dict[str, str] = Field(
        default={
            "en": "eng-GB",
            "en-GB": "eng-GB",
            "en-US": "eng-US",
            "fr": "fre-FR",
            "de": "ger-DE",
            "es": "esl-ES",
            "pt": "por-PT",
            "pt-BR": "por-BR",
        },
        description="Request locale to content language code",
    )
    comment_default_locale: str = Field(
        default="eng-GB", description="Content language code when nothing matches"
    )

    @field_validator("comment_moderation_email_from", mode="before")
    @classmethod
    def empty_sender_is_none(cls, v: str | None) -> str | None:
        return v or None

    @field_validator("comment_moderation_email_to", mode="before")
    @classmethod
    def split_recipients(cls, v: str | list[str] | None) -> list[str]:
        """Accept a single address, a comma separated string or a list."""
        if v is None:
            return []
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing"

    @property
    def email_configured(self) -> bool:
        """Check if Gmail API email is configured."""
        return bool(self.email_enabled and self.email_sender_address)

    @property
    def moderation_token_secret(self) -> str:
        """Key used to sign moderation links."""
        return self.comment_moderation_token_secret or self.auth_secret_key


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
