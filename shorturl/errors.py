"""Exception hierarchy for the shorturl service.

Every error carries the HTTP status it maps to; the handlers registered in
``shorturl.main`` render them as ``{"error": message}``.

Hierarchy
=========
::
    ShortenerError (500)
    ├─ ValidationError (400)
    │   ├─ InvalidURLError
    │   └─ ShortCodeFormatError
    ├─ NotFoundError (404)
    ├─ ConflictError (500)
    ├─ StorageError (500)
    └─ AllocatorError (500)
        ├─ AllocatorNotReadyError
        └─ CodeSpaceExhaustedError
"""

__all__ = [
    "AllocatorError",
    "AllocatorNotReadyError",
    "CodeSpaceExhaustedError",
    "ConflictError",
    "InvalidURLError",
    "NotFoundError",
    "ShortCodeFormatError",
    "ShortenerError",
    "StorageError",
    "ValidationError",
]


class ShortenerError(Exception):
    """Base class for all service errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ShortenerError):
    """User-correctable input problem."""

    status_code = 400


class InvalidURLError(ValidationError):
    pass


class ShortCodeFormatError(ValidationError):
    pass


class NotFoundError(ShortenerError):
    status_code = 404


class ConflictError(ShortenerError):
    """The allocator issued a short code that is already stored."""

    def __init__(self, message: str, short_code: str) -> None:
        super().__init__(message)
        self.short_code = short_code


class StorageError(ShortenerError):
    """The mapping store is unreachable or failed."""


class AllocatorError(ShortenerError):
    pass


class AllocatorNotReadyError(AllocatorError):
    pass


class CodeSpaceExhaustedError(AllocatorError):
    pass
