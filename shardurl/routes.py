"""FastAPI route definitions for the sharded URL shortener.

API Endpoint Overview
=====================
::
    GET    /
        └─ HTML landing page

    GET    /health
        └─ HealthResponse (200)

    POST   /shorten
        ├─ ShortenRequest (request body)
        └─ ShortenResponse (200) or 400 / 503

    GET    /:key
        └─ 302 Redirect or 404 / 503

    DELETE /:key
        └─ MessageResponse (200) or 404 / 503

Key Behaviours
===============
- Handlers only translate HTTP to MappingService calls; service errors are
  turned into responses by the exception handlers registered in main.py.
- Deleting a key that is already gone answers 404 with a message body.
- Redirects use 302 Found.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from shardurl.dependencies import RequestContext, get_mapping_service, get_request_context
from shardurl.enums import DeleteResult, HealthStatus
from shardurl.schemas import (
    ErrorResponse,
    HealthResponse,
    MessageResponse,
    ShardHealth,
    ShortenRequest,
    ShortenResponse,
)
from shardurl.service import MappingService

__all__ = ["router"]

router = APIRouter()

LANDING_PAGE = '<h1>URL Shortener API</h1><p>See <a href="/docs">/docs</a> for Swagger UI</p>'


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index() -> str:
    return LANDING_PAGE


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(
    ctx: RequestContext = Depends(get_request_context),
    service: MappingService = Depends(get_mapping_service),
) -> HealthResponse:
    shards = [
        ShardHealth(index=index, address=address, status=status)
        for index, address, status in await service.shard_health()
    ]
    status = (
        HealthStatus.HEALTHY
        if all(shard.status is HealthStatus.HEALTHY for shard in shards)
        else HealthStatus.UNHEALTHY
    )
    ctx.logger.info(f"Health check completed: {status.value}")
    return HealthResponse(status=status, shards=shards)


@router.post(
    "/shorten",
    response_model=ShortenResponse,
    tags=["urls"],
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def shorten_url(
    payload: ShortenRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: MappingService = Depends(get_mapping_service),
) -> ShortenResponse:
    key = await service.shorten(payload.url, payload.ttl)
    ctx.logger.info(
        f"URL shortened: {key}",
        extra={"operation": "shorten", "key": key, "duration_ms": ctx.get_duration()},
    )
    return ShortenResponse(key=key, short_url=f"{ctx.settings.BASE_URL}/{key}")


@router.get(
    "/{key}",
    tags=["redirect"],
    status_code=302,
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def redirect_to_url(
    key: str,
    ctx: RequestContext = Depends(get_request_context),
    service: MappingService = Depends(get_mapping_service),
) -> RedirectResponse:
    original_url = await service.resolve(key)
    ctx.logger.info(
        f"Redirect: {key} -> {original_url}",
        extra={"operation": "resolve", "key": key, "duration_ms": ctx.get_duration()},
    )
    return RedirectResponse(url=original_url, status_code=302)


@router.delete(
    "/{key}",
    response_model=MessageResponse,
    tags=["urls"],
    responses={404: {"model": MessageResponse}, 503: {"model": ErrorResponse}},
)
async def delete_url(
    key: str,
    ctx: RequestContext = Depends(get_request_context),
    service: MappingService = Depends(get_mapping_service),
):
    result = await service.remove(key)
    if result is DeleteResult.NOT_FOUND:
        ctx.logger.warning(f"Delete failed - key not found: {key}")
        return JSONResponse(status_code=404, content={"message": "Short URL not found"})

    ctx.logger.info(f"Deleted {key}", extra={"operation": "remove", "key": key})
    return MessageResponse(message="Short URL deleted successfully")
