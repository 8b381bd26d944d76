"""Input validation that runs before any shard is touched."""

from urllib.parse import urlsplit

import validators

from shardurl.errors import ValidationError

__all__ = ["MAX_URL_LENGTH", "check_url_format", "validate_target_url", "validate_ttl"]

MAX_URL_LENGTH = 2048


def check_url_format(url: str) -> str:
    """Accept only absolute http/https URLs."""
    if not isinstance(url, str) or not url.strip():
        raise ValidationError("URL is required")
    url = url.strip()
    if len(url) > MAX_URL_LENGTH:
        raise ValidationError(f"URL must be at most {MAX_URL_LENGTH} characters")
    if urlsplit(url).scheme.lower() not in ("http", "https"):
        raise ValidationError("URL must use http or https")
    if not validators.url(url):
        raise ValidationError("Invalid URL provided")
    return url


_DEFAULT_PORTS = {"http": 80, "https": 443}


def _origin(url: str) -> tuple[str | None, int | None]:
    parts = urlsplit(url)
    return parts.hostname, parts.port or _DEFAULT_PORTS.get(parts.scheme.lower())


def validate_target_url(url: str, base_url: str) -> str:
    """Check the format and refuse URLs that point back at this service.

    A short link to ourselves could redirect to another short link, and so on.
    Host and port are compared; the same host on another port is a different
    service.
    """
    url = check_url_format(url)
    own_host, own_port = _origin(base_url)
    target_host, target_port = _origin(url)
    if own_host and target_host == own_host and target_port == own_port:
        raise ValidationError("URL must not point at this service")
    return url


def validate_ttl(ttl: int | None, default: int, maximum: int) -> int:
    if ttl is None:
        return default
    # bool is an int subclass; True is not a TTL
    if isinstance(ttl, bool) or not isinstance(ttl, int):
        raise ValidationError("TTL must be an integer number of seconds")
    if ttl <= 0:
        raise ValidationError("TTL must be a positive number of seconds")
    if ttl > maximum:
        raise ValidationError(f"TTL must be at most {maximum} seconds")
    return ttl
