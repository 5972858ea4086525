"""Shortening and redirection workflows.

This module wires the mapping store and the id allocator together. It owns the
orchestration rules (idempotent shortening, race handling, duplicate code
reporting) plus the Prometheus metrics and logging around them.

Shortening Flow
===============
::
    ┌─────────────┐
    │ validated   │
    │ URL         │
    └──────┬──────┘
           ▼
    ┌─────────────┐  HIT   ┌──────────────┐
    │ find code   ├───────►│ return code  │
    │ by URL      │        │ (EXISTING)   │
    └──────┬──────┘        └──────────────┘
           │ MISS
           ▼
    ┌─────────────┐
    │ allocator   │
    │ .next()     │
    └──────┬──────┘
           ▼
    ┌─────────────┐ STORED          ┌──────────────┐
    │ insert      ├────────────────►│ CREATED      │
    │ mapping     │ ALREADY_EXISTS  ├──────────────┤
    │             ├────────────────►│ RACE_LOST    │
    └──────┬──────┘                 └──────────────┘
           │ DUPLICATE_SHORT_CODE
           ▼
    ┌─────────────┐
    │ log + count │──► retry after resync, or ConflictError
    └─────────────┘

Redirection Flow
================
::
    code ──► format check ──► find URL by code ──► URL | NotFoundError

Key Behaviours
===============
- Shortening the same URL twice returns the same code and stores one row.
- Losing an insert race returns the winner's code; the unused candidate id
  is simply skipped.
- A duplicate short code is always logged at error level and counted. It is
  retried only when ``DUPLICATE_CODE_RETRIES`` allows, after the allocator
  has been advanced past the store's current maximum.
- Malformed short codes never reach the store.

Classes:
    ShortenResult:  Code, URL and how the code was obtained.
    ShorteningService:  The two workflows.
"""

import logging
import time
from dataclasses import dataclass

from prometheus_client import Counter, Histogram

from shorturl.allocator import IdAllocator
from shorturl.enums import InsertStatus, RequestStatus
from shorturl.errors import ConflictError, NotFoundError, ShortenerError, ValidationError
from shorturl.store import MappingStore
from shorturl.validation import validate_short_code

__all__ = ["ShortenResult", "ShorteningService"]


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

SHORTEN_REQUESTS_TOTAL = Counter(
    "shorturl_shorten_requests_total",
    "Total shortening requests",
    ["status"],
)
LOOKUP_REQUESTS_TOTAL = Counter(
    "shorturl_lookup_requests_total",
    "Total short code lookups",
    ["status"],
)
SHORT_CODE_CONFLICTS_TOTAL = Counter(
    "shorturl_short_code_conflicts_total",
    "Short codes issued by the allocator that were already stored",
)
SHORTEN_DURATION = Histogram(
    "shorturl_shorten_duration_seconds",
    "Time taken to shorten a URL",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)


@dataclass(frozen=True)
class ShortenResult:
    short_code: str
    original_url: str
    status: RequestStatus

    @property
    def created(self) -> bool:
        return self.status is RequestStatus.CREATED


class ShorteningService:
    """Shortening and redirection on top of a store and an allocator.

    Example:
        >>> service = ShorteningService(store, allocator)
        >>> result = await service.shorten("https://example.com/a")
        >>> await service.resolve(result.short_code)
        'https://example.com/a'
    """

    def __init__(
        self,
        store: MappingStore,
        allocator: IdAllocator,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        duplicate_code_retries: int = 0,
    ) -> None:
        self._store = store
        self._allocator = allocator
        self._logger = logger or logging.getLogger("shorturl")
        self._duplicate_code_retries = max(duplicate_code_retries, 0)

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "ShorteningService":
        """Build a service from the request context's shared resources."""
        return cls(
            store=ctx.store,
            allocator=ctx.allocator,
            logger=ctx.logger,
            duplicate_code_retries=ctx.settings.DUPLICATE_CODE_RETRIES,
        )

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def shorten(self, original_url: str) -> ShortenResult:
        """Return the short code for ``original_url``, creating it if needed.

        ``original_url`` must already be validated.

        Raises:
            ConflictError: The allocator issued a code that is already stored
                and no retry was allowed or left.
            StorageError: The store failed.
            AllocatorError: The allocator is not ready or out of codes.
        """
        start_time = time.perf_counter()
        try:
            result = await self._shorten(original_url)
        except ConflictError:
            SHORTEN_REQUESTS_TOTAL.labels(status=RequestStatus.CONFLICT).inc()
            raise
        except ShortenerError as exc:
            SHORTEN_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Shortening failed for {original_url}: {exc}")
            raise
        finally:
            SHORTEN_DURATION.observe(time.perf_counter() - start_time)

        SHORTEN_REQUESTS_TOTAL.labels(status=result.status).inc()
        return result

    async def resolve(self, short_code: str) -> str:
        """Return the original URL for ``short_code``.

        Raises:
            ShortCodeFormatError: The code is not exactly the configured
                number of digits; the store is not queried.
            NotFoundError: No mapping exists for the code.
            StorageError: The store failed.
        """
        try:
            validate_short_code(short_code, self._allocator.width)
        except ValidationError:
            LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.VALIDATION_ERROR).inc()
            raise

        try:
            original_url = await self._store.find_url_by_short_code(short_code)
        except ShortenerError:
            LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            raise

        if original_url is None:
            LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
            raise NotFoundError("Short URL not found.")

        LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.FOUND).inc()
        return original_url

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    async def _shorten(self, original_url: str) -> ShortenResult:
        existing = await self._store.find_short_code_by_url(original_url)
        if existing is not None:
            self._logger.debug(f"Existing short code {existing} for {original_url}")
            return ShortenResult(existing, original_url, RequestStatus.EXISTING)

        attempts = self._duplicate_code_retries + 1
        candidate = ""
        for attempt in range(1, attempts + 1):
            candidate = self._allocator.next()
            outcome = await self._store.insert_mapping(candidate, original_url)

            if outcome.status is InsertStatus.STORED:
                self._logger.info(f"Created short code {candidate} for {original_url}")
                return ShortenResult(candidate, original_url, RequestStatus.CREATED)

            if outcome.status is InsertStatus.ALREADY_EXISTS:
                self._logger.info(
                    f"Lost insert race for {original_url}; using {outcome.short_code}, discarding {candidate}"
                )
                return ShortenResult(outcome.short_code, original_url, RequestStatus.RACE_LOST)

            SHORT_CODE_CONFLICTS_TOTAL.inc()
            self._logger.error(
                f"Allocator issued short code {candidate} which is already stored "
                f"(attempt {attempt}/{attempts})"
            )
            if attempt < attempts:
                await self._resync_allocator()
                self._logger.warning(f"Retrying shortening of {original_url} after allocator resync")

        raise ConflictError(f"Short code {candidate} is already in use", short_code=candidate)

    async def _resync_allocator(self) -> None:
        max_code = await self._store.max_short_code()
        if max_code is not None:
            self._allocator.advance_past(max_code)
