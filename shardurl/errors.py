"""Error taxonomy for the record lifecycle layer.

ValidationError and NotFoundError double as ValueError and LookupError so
callers that only know the builtin hierarchy still classify them correctly.
"""

__all__ = [
    "ShortenerError",
    "ValidationError",
    "AliasConflictError",
    "NotFoundError",
    "BackendError",
    "ShardConnectError",
]


class ShortenerError(Exception):
    """Base class for every error raised by shardurl."""


class ValidationError(ShortenerError, ValueError):
    """Malformed input, rejected before any shard is touched."""


class AliasConflictError(ShortenerError):
    def __init__(self, short_id: str):
        super().__init__(f"Alias '{short_id}' is already taken")
        self.short_id = short_id


class NotFoundError(ShortenerError, LookupError):
    def __init__(self, short_id: str):
        super().__init__(f"Short URL '{short_id}' not found")
        self.short_id = short_id


class BackendError(ShortenerError):
    """Shard unreachable, timed out, or returned a corrupted payload."""

    def __init__(self, message: str, shard_index: int | None = None):
        super().__init__(message)
        self.shard_index = shard_index


class ShardConnectError(BackendError):
    """One or more shards could not be reached at startup."""

    def __init__(self, failures: dict[int, str]):
        details = ", ".join(f"shard {index}: {reason}" for index, reason in sorted(failures.items()))
        super().__init__(f"Failed to connect to {len(failures)} shard(s): {details}")
        self.failures = failures
