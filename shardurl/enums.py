"""Shared enums for the sharded URL shortener.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "RequestStatus", "DeleteResult", "Operation"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class RequestStatus(StrEnum):
    """Request status values for metrics and logging."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    ERROR = "error"


class DeleteResult(StrEnum):
    """Outcome of removing a mapping from its shard."""

    REMOVED = "removed"
    NOT_FOUND = "not_found"


class Operation(StrEnum):
    """Mapping operations, used as metric labels."""

    SHORTEN = "shorten"
    RESOLVE = "resolve"
    REMOVE = "remove"
