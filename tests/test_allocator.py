"""Unit tests for the id allocator and short code formatting."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from shorturl.allocator import IdAllocator, format_short_code, parse_short_code
from shorturl.enums import AllocatorState
from shorturl.errors import AllocatorNotReadyError, CodeSpaceExhaustedError, ShortCodeFormatError
from shorturl.store import MappingStore


def test_format_short_code_pads_to_width() -> None:
    assert format_short_code(1) == "000000001"
    assert format_short_code(123456789) == "123456789"
    assert format_short_code(7, width=3) == "007"


def test_format_short_code_rejects_overflow() -> None:
    with pytest.raises(CodeSpaceExhaustedError):
        format_short_code(1_000_000_000)


def test_format_short_code_rejects_non_positive() -> None:
    with pytest.raises(ValueError):
        format_short_code(0)


def test_parse_short_code() -> None:
    assert parse_short_code("000000042") == 42
    with pytest.raises(ShortCodeFormatError):
        parse_short_code("00000004a")


def test_next_before_initialize_fails() -> None:
    allocator = IdAllocator()
    assert allocator.state is AllocatorState.UNINITIALIZED
    with pytest.raises(AllocatorNotReadyError):
        allocator.next()


def test_next_is_sequential() -> None:
    allocator = IdAllocator()
    allocator.seed(1)
    assert allocator.state is AllocatorState.READY
    assert [allocator.next() for _ in range(3)] == ["000000001", "000000002", "000000003"]
    assert allocator.peek == 4


def test_overflow_fails_loudly_without_advancing() -> None:
    allocator = IdAllocator(width=2)
    allocator.seed(99)
    assert allocator.next() == "99"
    with pytest.raises(CodeSpaceExhaustedError):
        allocator.next()
    with pytest.raises(CodeSpaceExhaustedError):
        allocator.next()
    assert allocator.peek == 100


def test_advance_past_only_moves_forward() -> None:
    allocator = IdAllocator()
    allocator.seed(10)
    assert allocator.advance_past("000000004") == 10
    assert allocator.advance_past("000000020") == 21
    assert allocator.next() == "000000021"


def test_next_is_unique_across_threads() -> None:
    allocator = IdAllocator()
    allocator.seed(1)
    with ThreadPoolExecutor(max_workers=8) as pool:
        codes = list(pool.map(lambda _: allocator.next(), range(2000)))
    assert len(set(codes)) == 2000
    assert max(codes) == "000002000"


@pytest.mark.asyncio
async def test_initialize_on_empty_store_starts_at_one(store: MappingStore) -> None:
    allocator = IdAllocator()
    assert await allocator.initialize(store) == 1
    assert allocator.next() == "000000001"


@pytest.mark.asyncio
async def test_initialize_recovers_from_stored_codes(store: MappingStore) -> None:
    for i in range(1, 6):
        await store.insert_mapping(format_short_code(i), f"https://example.com/{i}")

    allocator = IdAllocator()
    await allocator.initialize(store)
    assert allocator.next() == "000000006"
