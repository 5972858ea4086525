"""Input validation for submitted URLs and short codes.

Both checks run in the HTTP layer before any store query.

Key Behaviours
===============
- A URL must be a string with an ``http`` or ``https`` scheme and a hostname
  (``localhost``, single-label and underscore names included),
  and must pass ``validators.url`` (so ``not a url`` fails).
- Hostname resolution is only checked when ``verify_hostname`` is set; a
  failed lookup then rejects the URL. It is never fired and ignored.
- A short code must be exactly ``width`` decimal digits.
"""

import asyncio
import re
import socket
from urllib.parse import urlsplit

import validators

from shorturl.allocator import DEFAULT_WIDTH
from shorturl.errors import InvalidURLError, ShortCodeFormatError

__all__ = ["ALLOWED_SCHEMES", "hostname_resolves", "validate_original_url", "validate_short_code"]

ALLOWED_SCHEMES = ("http", "https")


async def hostname_resolves(hostname: str) -> bool:
    loop = asyncio.get_running_loop()
    try:
        await loop.getaddrinfo(hostname, None)
    except (socket.gaierror, UnicodeError):
        return False
    return True


async def validate_original_url(url: object, verify_hostname: bool = False) -> str:
    """Return ``url`` unchanged if acceptable, else raise ``InvalidURLError``."""
    if not isinstance(url, str) or not url:
        raise InvalidURLError("invalid url")

    try:
        parts = urlsplit(url)
    except ValueError as exc:
        raise InvalidURLError("invalid url") from exc

    if parts.scheme not in ALLOWED_SCHEMES or not parts.hostname:
        raise InvalidURLError("invalid url")
    # Underscores are legal in DNS names but not in validators' host grammar.
    checked = parts._replace(netloc=parts.netloc.replace("_", "-")).geturl()
    if not validators.url(checked, simple_host=True):
        raise InvalidURLError("invalid url")

    if verify_hostname and not await hostname_resolves(parts.hostname):
        raise InvalidURLError("invalid url")
    return url


def validate_short_code(short_code: str, width: int = DEFAULT_WIDTH) -> str:
    if not re.fullmatch(rf"[0-9]{{{width}}}", short_code):
        raise ShortCodeFormatError(f"Invalid short code format. Must be {width} digits.")
    return short_code
