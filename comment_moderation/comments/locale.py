"""Request locale to content language code conversion."""

from collections.abc import Mapping


class LocaleResolver:
    """Map a request locale (``pt-BR``, ``fr``) to a content locale code.

    Lookup order: exact tag, primary language subtag, configured default.
    Matching is case-insensitive and accepts ``_`` as separator.
    """

    def __init__(self, mapping: Mapping[str, str], default: str):
        self._mapping = {self._normalize(k): v for k, v in mapping.items()}
        self.default = default

    @staticmethod
    def _normalize(tag: str) -> str:
        return tag.strip().replace("_", "-").lower()

    def convert(self, locale: str | None) -> str:
        if not locale:
            return self.default

        tag = self._normalize(locale)
        if tag in self._mapping:
            return self._mapping[tag]

        primary = tag.split("-", 1)[0]
        return self._mapping.get(primary, self.default)

    def from_accept_language(self, header: str | None) -> str:
        """Convert the preferred entry of an Accept-Language header."""
        if not header:
            return self.default
        first = header.split(",", 1)[0].split(";", 1)[0]
        if first.strip() == "*":
            return self.default
        return self.convert(first)
