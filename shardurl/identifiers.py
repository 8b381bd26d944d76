"""Short id generation and alias validation.

Generated ids come from nanoid over the 64-character URL-safe alphabet. At
the default length of 8 that is 64**8 (about 2.8e14) ids, so collisions are
treated as negligible and are not retried.
"""

import re
import string

from nanoid import generate

from shardurl.config import Settings
from shardurl.errors import ValidationError

__all__ = ["URL_SAFE_ALPHABET", "RESERVED_ALIASES", "IdentifierService"]

URL_SAFE_ALPHABET = string.ascii_letters + string.digits + "_-"

# Path segments served by the HTTP layer itself; an alias with one of these
# names could never be reached through a redirect.
RESERVED_ALIASES = frozenset({"api", "health", "metrics", "docs", "redoc"})

_ALIAS_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


class IdentifierService:
    def __init__(self, length: int = 8, alias_max_length: int = 50):
        if length <= 0:
            raise ValueError(f"length must be a positive integer, got {length!r}")
        self._length = length
        self._alias_max_length = alias_max_length

    @classmethod
    def from_settings(cls, settings: Settings) -> "IdentifierService":
        return cls(length=settings.SHORT_ID_LENGTH, alias_max_length=settings.ALIAS_MAX_LENGTH)

    @property
    def length(self) -> int:
        return self._length

    def generate(self) -> str:
        return generate(URL_SAFE_ALPHABET, self._length)

    def validate_alias(self, value: str) -> str:
        if not isinstance(value, str) or not value:
            raise ValidationError("Alias must not be empty")
        if len(value) > self._alias_max_length:
            raise ValidationError(f"Alias must be at most {self._alias_max_length} characters")
        if not _ALIAS_PATTERN.fullmatch(value):
            raise ValidationError("Alias may only contain letters, digits, '_' and '-'")
        if value.lower() in RESERVED_ALIASES:
            raise ValidationError(f"Alias '{value}' is reserved")
        return value

    def is_well_formed(self, short_id: str) -> bool:
        """Whether a path segment could name a stored record at all."""
        return (
            isinstance(short_id, str)
            and 0 < len(short_id) <= max(self._alias_max_length, self._length)
            and _ALIAS_PATTERN.fullmatch(short_id) is not None
        )

    def resolve(self, custom_alias: str | None) -> tuple[str, bool]:
        """Return ``(short_id, is_alias)`` for a create request."""
        if custom_alias is not None:
            return self.validate_alias(custom_alias), True
        return self.generate(), False
