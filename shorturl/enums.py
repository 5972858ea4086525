"""Shared enums for the shorturl service.

This module defines the status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["AllocatorState", "HealthStatus", "InsertStatus", "RequestStatus"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"

    @classmethod
    def from_str(cls, value: str) -> "HealthStatus":
        """Safely parse from string, falling back to UNHEALTHY for unknown values."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNHEALTHY


class InsertStatus(StrEnum):
    """Outcome of persisting a new short code / URL pair."""

    STORED = "stored"
    ALREADY_EXISTS = "already_exists"
    DUPLICATE_SHORT_CODE = "duplicate_short_code"


class AllocatorState(StrEnum):
    """Lifecycle of the id allocator."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"


class RequestStatus(StrEnum):
    """Request status values for metrics and logging."""

    CREATED = "created"
    EXISTING = "existing"
    RACE_LOST = "race_lost"
    FOUND = "found"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    CONFLICT = "conflict"
    ERROR = "error"

    @classmethod
    def from_str(cls, value: str) -> "RequestStatus":
        """Safely parse from string, falling back to ERROR for unknown values."""
        try:
            return cls(value)
        except ValueError:
            return cls.ERROR
