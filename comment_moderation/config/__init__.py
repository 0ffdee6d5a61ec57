"""Configuration package."""

from comment_moderation.config.settings import Settings, get_settings


__all__ = ["Settings", "get_settings"]
