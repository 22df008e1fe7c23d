"""FastAPI application entry point for the sharded URL shortener.

Application Lifecycle Diagram
=============================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌──────────────┐
    │ create_app() │
    │ Settings →   │
    │ ShardMap →   │
    │ Service      │
    └──────┬───────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ startup:    │
    │ ping shards │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    │ requests    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ shutdown:   │
    │ close shards│
    └─────────────┘

How to Use
===========
**Step 1 — Run with uvicorn**::
    uvicorn shardurl.main:app --host 0.0.0.0 --port 3000

    # or
    python -m shardurl.main

**Step 2 — Make API calls**::
    curl -X POST http://localhost:3000/shorten \
         -H "Content-Type: application/json" \
         -d '{"url": "https://example.com", "ttl": 3600}'

    curl -i http://localhost:3000/<key>
    curl -X DELETE http://localhost:3000/<key>

**Step 3 — Browse docs**::
    http://localhost:3000/docs

Key Behaviours
===============
- Startup fails if any configured shard is unreachable.
- The shard set is fixed for the process lifetime.
- Service errors map to HTTP codes: validation 400, not found 404,
  backend 503. Malformed request bodies answer 400.
"""

__all__ = ["app", "create_app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from shardurl.config import Settings, get_settings
from shardurl.dependencies import ServiceManager
from shardurl.exceptions import BackendError, NotFoundError, ValidationError
from shardurl.routes import router
from shardurl.sharding import ShardMap


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    manager: ServiceManager = app.state.service_manager
    # Startup
    await manager.initialize()
    yield
    # Shutdown
    await manager.cleanup()


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc)})


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Invalid request"})


async def not_found_error_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "Short URL not found"})


async def backend_error_handler(request: Request, exc: BackendError) -> JSONResponse:
    request.app.state.service_manager.logger.error(f"Backend failure on {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"error": "Storage backend unavailable"})


def create_app(settings: Optional[Settings] = None, shards: Optional[ShardMap] = None) -> FastAPI:
    settings = settings or get_settings()

    application = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        description="URL shortener with keys sharded across independent Redis stores",
        lifespan=lifespan,
    )
    application.state.service_manager = ServiceManager(settings, shards)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(ValidationError, validation_error_handler)
    application.add_exception_handler(RequestValidationError, request_validation_error_handler)
    application.add_exception_handler(NotFoundError, not_found_error_handler)
    application.add_exception_handler(BackendError, backend_error_handler)

    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=False,
        should_respect_env_var=False,
    ).instrument(application).expose(application)

    application.include_router(router)
    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
