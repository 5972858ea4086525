"""Pydantic schemas for the shorturl HTTP API.

Schema Hierarchy
=================
::
    ShortenRequest (Input)
    └─ url: object | None (validated by the route, not by pydantic)

    ShortenResponse (Output)
    ├─ original_url: str
    └─ short_url: str (the fixed-width short code)

    ErrorResponse (Output)
    └─ error: str

    HealthResponse (Output)
    ├─ status: HealthStatus
    └─ database: HealthStatus

Key Behaviours
===============
- ``ShortenRequest`` accepts any payload shape; a missing ``url`` is a 400
  and a bad one is a 200 ``invalid url``, which pydantic's 422 cannot express.
- Unknown request fields are ignored.
"""

from typing import Any

from pydantic import BaseModel, Field

from shorturl.enums import HealthStatus

__all__ = ["ErrorResponse", "HealthResponse", "ShortenRequest", "ShortenResponse"]


class ShortenRequest(BaseModel):
    url: Any = None


class ShortenResponse(BaseModel):
    original_url: str
    short_url: str = Field(..., description="Fixed-width short code, e.g. '000000001'")


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
