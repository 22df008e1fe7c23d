"""Exceptions raised by the mapping service and its shard store adapters.

Classes:
    MappingError:
        Generic base class for mapping-related exceptions.

    ValidationError:
        Raised when caller input is missing or malformed (e.g. no URL to shorten).

    NotFoundError:
        Raised when a key is absent at its shard. Never-created, deleted and
        expired keys all raise this same error.

    BackendError:
        Raised when the selected shard is unreachable or answers with a
        protocol-level failure (connection loss, timeout, server error).

Example:
    >>> from shardurl.exceptions import NotFoundError
    >>> raise NotFoundError("Short URL 'abc12345' not found.")
    Traceback (most recent call last):
        ...
    shardurl.exceptions.NotFoundError: Short URL 'abc12345' not found.
"""

__all__ = ["MappingError", "ValidationError", "NotFoundError", "BackendError"]


class MappingError(Exception):
    """Generic base class for mapping-related exceptions."""

    pass


class ValidationError(MappingError):
    """Exception raised when caller input is missing or malformed."""

    pass


class NotFoundError(MappingError):
    """Exception raised when a key does not exist at its shard."""

    pass


class BackendError(MappingError):
    """Exception raised when a shard store cannot serve a request.

    e.g. connection refused, timeouts, protocol errors, etc.
    """

    pass
