"""Shared enums for the sharded URL shortener.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "RequestStatus", "RecordOperation"]


class HealthStatus(StrEnum):
    """Aggregate and per-shard health values."""

    OK = "ok"
    DEGRADED = "degraded"
    UNREACHABLE = "unreachable"


class RequestStatus(StrEnum):
    """Outcome labels for metrics and logging."""

    SUCCESS = "success"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    ERROR = "error"


class RecordOperation(StrEnum):
    """Record store operations, used as metric labels."""

    CREATE = "create"
    GET = "get"
    CLICK = "click"
    ANALYTICS = "analytics"
    DELETE = "delete"
