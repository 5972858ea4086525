"""Dependency injection with a singleton service manager.

The service manager owns the process-wide resources: settings, the logger, the
database engine, the mapping store and the id allocator. Each request gets a
lightweight ``RequestContext`` pointing at them.

Startup Sequence
================
::
    ServiceManager.initialize()
    ├─ settings + logger
    ├─ build engine / sessionmaker
    ├─ store.ensure_schema()
    └─ allocator.initialize(store)   # max(short_code) + 1
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from shorturl.allocator import IdAllocator
from shorturl.config import Settings, get_settings
from shorturl.database import build_engine, build_sessionmaker
from shorturl.service import ShorteningService
from shorturl.store import MappingStore


# ============================================================================
# SINGLETON SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Singleton service manager for shared resources.

    Resources are created once at startup instead of per request. The id
    allocator in particular must be a single instance per process.
    """

    _instance: Optional["ServiceManager"] = None
    _initialized: bool = False

    def __new__(cls) -> "ServiceManager":
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self, settings: Settings | None = None) -> None:
        """Initialize shared resources once at startup.

        Failures (unreachable database, unreadable schema) propagate so the
        process does not start serving with a guessed allocator state.
        """
        if self._initialized:
            return
        self.settings = settings or get_settings()
        self.logger = self._setup_logger()
        self.engine: AsyncEngine = build_engine(self.settings)
        self.store = MappingStore(self.engine, build_sessionmaker(self.engine))
        self.allocator = IdAllocator(width=self.settings.SHORT_CODE_WIDTH)
        try:
            await self.store.ensure_schema()
            next_id = await self.allocator.initialize(self.store)
        except Exception:
            self.logger.exception("Could not initialize the database or the id allocator")
            await self.engine.dispose()
            raise
        self.logger.info(f"Id allocator ready, next id {next_id}")
        self._initialized = True

    def _setup_logger(self) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger("shorturl")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(self.settings.LOG_LEVEL.upper())
        return logger

    async def cleanup(self) -> None:
        """Cleanup shared resources at shutdown."""
        if hasattr(self, "engine"):
            await self.engine.dispose()
        self._initialized = False


# Global singleton instance
_service_manager = ServiceManager()


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request identifiers plus access to the shared resources.

    Attributes:
        service_manager: Singleton service manager with shared resources
        request_id: Unique identifier for this request
        trace_id: Correlation ID for distributed tracing
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
        tags: Request tags for categorization
    """

    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    trace_id: Optional[str] = None
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=lambda: time.time())
    tags: list[str] = field(default_factory=list)

    @property
    def store(self) -> MappingStore:
        return self.service_manager.store

    @property
    def allocator(self) -> IdAllocator:
        return self.service_manager.allocator

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
                "trace_id": self.trace_id or self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
                "tags": ",".join(self.tags),
            },
        )

    def add_tag(self, tag: str) -> None:
        if tag not in self.tags:
            self.tags.append(tag)

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    if not _service_manager.initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_request_context(
    request: Request,
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    return RequestContext(
        service_manager=manager,
        trace_id=request.headers.get("x-trace-id"),
        user_agent=request.headers.get("user-agent"),
        client_ip=request.client.host if request.client else None,
    )


def get_shortening_service(ctx: RequestContext = Depends(get_request_context)) -> ShorteningService:
    return ShorteningService.from_context(ctx)
