"""FastAPI route definitions for the shorturl HTTP API.

API Endpoint Overview
=====================
::
    GET  /
        └─ HTML landing page

    GET  /health
        └─ HealthResponse (200)

    POST /api/shorturl
        ├─ {"url": ...} as JSON or form body
        └─ ShortenResponse (200), {"error": "invalid url"} (200), 400, 500

    GET  /api/shorturl/{short_code}
        └─ 302 Redirect, 400 (malformed code) or 404

Key Behaviours
===============
- Service errors are rendered by the handlers in ``shorturl.main`` as
  ``{"error": message}`` with the status carried by the exception.
- An invalid URL is answered with status 200 and ``{"error": "invalid url"}``.
- A malformed short code is rejected before the store is queried.
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse

from shorturl.dependencies import RequestContext, get_request_context, get_service_manager, get_shortening_service
from shorturl.enums import HealthStatus
from shorturl.errors import InvalidURLError, StorageError, ValidationError
from shorturl.schemas import ErrorResponse, HealthResponse, ShortenRequest, ShortenResponse
from shorturl.service import ShorteningService
from shorturl.validation import validate_original_url

__all__ = ["router"]

VIEWS_DIR = Path(__file__).parent / "views"
FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

router = APIRouter()


async def _read_shorten_request(request: Request) -> ShortenRequest:
    """Accept the ``url`` field from a JSON body or an HTML form post."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        return ShortenRequest(url=form.get("url"))

    try:
        body = await request.json()
    except ValueError:
        return ShortenRequest()
    if not isinstance(body, dict):
        return ShortenRequest()
    return ShortenRequest.model_validate(body)


@router.get("/", include_in_schema=False)
async def index() -> FileResponse:
    return FileResponse(VIEWS_DIR / "index.html")


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check() -> HealthResponse:
    # Startup failures are reported as unhealthy, not raised.
    logger = logging.getLogger("shorturl")
    db_status = HealthStatus.HEALTHY
    try:
        manager = await get_service_manager()
        await manager.store.ping()
        logger.debug("Database health check passed")
    except StorageError as e:
        logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    return HealthResponse(status=db_status, database=db_status)


@router.post(
    "/api/shorturl",
    response_model=ShortenResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["urls"],
)
async def shorten_url(
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    service: ShorteningService = Depends(get_shortening_service),
) -> ShortenResponse | JSONResponse:
    ctx.add_tag("url_creation")
    payload = await _read_shorten_request(request)
    if payload.url is None or payload.url == "":
        raise ValidationError("Missing url in request body.")

    try:
        original_url = await validate_original_url(payload.url, ctx.settings.VERIFY_URL_HOSTNAME)
    except InvalidURLError:
        ctx.logger.info(f"Rejected invalid url: {payload.url!r}")
        return JSONResponse(status_code=200, content=ErrorResponse(error="invalid url").model_dump())

    result = await service.shorten(original_url)
    ctx.logger.info(
        f"Shortened {original_url} -> {result.short_code} ({result.status})",
        extra={"operation": "shorten", "duration_ms": ctx.get_duration()},
    )
    return ShortenResponse(original_url=result.original_url, short_url=result.short_code)


@router.get(
    "/api/shorturl/{short_code}",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["redirect"],
)
async def redirect_to_url(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: ShorteningService = Depends(get_shortening_service),
) -> RedirectResponse:
    ctx.add_tag("redirect")
    original_url = await service.resolve(short_code)
    ctx.logger.info(f"Redirect {short_code} -> {original_url}")
    return RedirectResponse(url=original_url, status_code=302)
