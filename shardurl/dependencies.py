"""Dependency injection for the HTTP layer.

The ServiceManager owns the process-wide resources: settings, the logger,
the immutable shard map and the MappingService built on top of it. One
instance is created by the app factory and kept on ``app.state``; request
handlers reach it through the dependency functions below instead of a
module-level global.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Request

from shardurl.config import Settings
from shardurl.service import MappingService
from shardurl.sharding import ShardMap


# ============================================================================
# SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Process-scoped owner of shared resources.

    Resources are built once and reused by every request; nothing here is
    created per request.
    """

    def __init__(self, settings: Settings, shards: Optional[ShardMap] = None):
        self.settings = settings
        self.logger = self._setup_logger()
        self.shards = shards if shards is not None else ShardMap.from_urls(settings.shard_urls)
        self.mapping_service = MappingService(
            self.shards,
            default_ttl=settings.DEFAULT_TTL_SECONDS,
            code_length=settings.SHORT_CODE_LENGTH,
            logger=self.logger,
        )
        self._initialized = False

    def _setup_logger(self) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger("shardurl")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.setLevel(self.settings.LOG_LEVEL.upper())
        return logger

    async def initialize(self) -> None:
        """Check every shard is reachable before serving traffic.

        Raises:
            BackendError: If any shard does not answer.
        """
        if self._initialized:
            return
        await asyncio.gather(*(store.ping() for store in self.shards))
        for index, store in enumerate(self.shards):
            self.logger.info(f"Shard {index} connected: {store.address}")
        self.logger.info(f"All {len(self.shards)} shards connected")
        self._initialized = True

    async def cleanup(self) -> None:
        """Close shard connections at shutdown."""
        for store in self.shards:
            await store.close()
        self._initialized = False


# ============================================================================
# REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request tracking information with access to shared resources.

    Attributes:
        service_manager: Process-scoped service manager
        request_id: Unique identifier for this request
        client_ip: Client IP address
        user_agent: Client user agent string
        start_time: Request start timestamp
    """

    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    client_ip: Optional[str] = None
    user_agent: Optional[str] = None
    start_time: float = field(default_factory=lambda: time.time())

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Get shared logger with request context."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def get_service_manager(request: Request) -> ServiceManager:
    return request.app.state.service_manager


def get_request_context(
    request: Request,
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    return RequestContext(
        service_manager=manager,
        request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
        client_ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


def get_mapping_service(manager: ServiceManager = Depends(get_service_manager)) -> MappingService:
    return manager.mapping_service
