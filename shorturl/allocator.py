"""Id allocator: strictly increasing ids rendered as fixed-width short codes.

State Diagram
=============
::
    ┌───────────────┐  initialize(store) / seed(n)  ┌───────┐
    │ UNINITIALIZED ├──────────────────────────────►│ READY │◄─┐
    └───────────────┘                               └───┬───┘  │ next()
                                                        └──────┘

Key Behaviours
===============
- The counter is recovered at boot as ``max(short_code) + 1``, or 1 when the
  store is empty.
- ``next()`` reads and increments under a mutex; no two callers in one
  process ever receive the same code.
- Uniqueness across processes is not guaranteed here. Two instances booted
  against the same store can issue overlapping ids; the store's unique
  constraint catches that and ``advance_past`` lets the caller resync.
- A value that no longer fits the width raises ``CodeSpaceExhaustedError``
  instead of truncating or wrapping.
"""

import logging
import re
import threading

from shorturl.enums import AllocatorState
from shorturl.errors import AllocatorNotReadyError, CodeSpaceExhaustedError, ShortCodeFormatError

__all__ = ["DEFAULT_WIDTH", "IdAllocator", "format_short_code", "parse_short_code"]

DEFAULT_WIDTH = 9

logger = logging.getLogger("shorturl.allocator")


def format_short_code(value: int, width: int = DEFAULT_WIDTH) -> str:
    """Render ``value`` zero-padded to ``width`` digits.

    >>> format_short_code(42)
    '000000042'
    """
    if value < 1:
        raise ValueError("Id must be positive")
    code = str(value).zfill(width)
    if len(code) > width:
        raise CodeSpaceExhaustedError(f"Id {value} does not fit in {width} digits")
    return code


def parse_short_code(short_code: str) -> int:
    if not re.fullmatch(r"[0-9]+", short_code):
        raise ShortCodeFormatError(f"Short code must be decimal digits: {short_code!r}")
    return int(short_code)


class IdAllocator:
    """Process-wide owner of the next-id counter."""

    def __init__(self, width: int = DEFAULT_WIDTH) -> None:
        self._width = width
        self._lock = threading.Lock()
        self._next_id: int | None = None

    @property
    def width(self) -> int:
        return self._width

    @property
    def state(self) -> AllocatorState:
        return AllocatorState.UNINITIALIZED if self._next_id is None else AllocatorState.READY

    @property
    def peek(self) -> int | None:
        """The id the next call to ``next()`` will issue."""
        return self._next_id

    async def initialize(self, store) -> int:
        """Recover the counter from the largest stored short code.

        Storage errors propagate; the allocator stays uninitialized.
        """
        max_code = await store.max_short_code()
        next_id = parse_short_code(max_code) + 1 if max_code else 1
        self.seed(next_id)
        logger.info(f"Allocator initialized: max stored code {max_code}, next id {next_id}")
        return next_id

    def seed(self, next_id: int) -> None:
        if next_id < 1:
            raise ValueError("next_id must be >= 1")
        with self._lock:
            self._next_id = next_id

    def next(self) -> str:
        with self._lock:
            if self._next_id is None:
                raise AllocatorNotReadyError("Id allocator used before initialization")
            code = format_short_code(self._next_id, self._width)
            self._next_id += 1
            return code

    def advance_past(self, short_code: str) -> int:
        """Move the counter beyond ``short_code`` if it is not already."""
        floor = parse_short_code(short_code) + 1
        with self._lock:
            if self._next_id is None:
                raise AllocatorNotReadyError("Id allocator used before initialization")
            if floor > self._next_id:
                logger.warning(f"Allocator advanced from {self._next_id} to {floor}")
                self._next_id = floor
            return self._next_id
