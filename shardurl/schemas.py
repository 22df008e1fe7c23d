"""Pydantic schemas for request/response validation in the sharded URL shortener.

Schema Hierarchy
=================
::
    ShortenRequest (Input)
    ├─ url: str | None   (presence checked by the service)
    └─ ttl: int | None   (seconds, defaults when absent or non-positive)

    ShortenResponse (Output)
    ├─ key: str
    └─ short_url: str

    MessageResponse (Output)
    └─ message: str

    ErrorResponse (Output)
    └─ error: str

    HealthResponse (Output)
    ├─ status: HealthStatus
    └─ shards: list[ShardHealth]

Key Behaviours
===============
- ``url`` is optional at the schema level so a missing URL reaches the
  service and is reported as a validation error with no shard write.
- URLs are not checked for well-formedness; any non-empty string is stored.
- A ``ttl`` that is not an integer fails request validation.
"""

from pydantic import BaseModel, Field

from shardurl.enums import HealthStatus

__all__ = [
    "ShortenRequest",
    "ShortenResponse",
    "MessageResponse",
    "ErrorResponse",
    "ShardHealth",
    "HealthResponse",
]


class ShortenRequest(BaseModel):
    url: str | None = Field(None, examples=["https://example.com"])
    ttl: int | None = Field(None, description="Seconds until the short URL expires", examples=[3600])


class ShortenResponse(BaseModel):
    key: str
    short_url: str


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str


class ShardHealth(BaseModel):
    index: int
    address: str
    status: HealthStatus


class HealthResponse(BaseModel):
    status: HealthStatus
    shards: list[ShardHealth]
