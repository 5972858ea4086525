"""Shortening and redirection workflow tests."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from prometheus_client import REGISTRY

from shorturl.allocator import IdAllocator
from shorturl.enums import RequestStatus
from shorturl.errors import ConflictError, NotFoundError, ShortCodeFormatError, StorageError
from shorturl.service import ShorteningService
from shorturl.store import MappingStore


def _conflicts() -> float:
    return REGISTRY.get_sample_value("shorturl_short_code_conflicts_total") or 0.0


@pytest.mark.asyncio
async def test_shorten_creates_first_code(service: ShorteningService) -> None:
    result = await service.shorten("https://example.com/a")
    assert result.short_code == "000000001"
    assert result.original_url == "https://example.com/a"
    assert result.created


@pytest.mark.asyncio
async def test_shorten_is_idempotent(service: ShorteningService, count_mappings) -> None:
    first = await service.shorten("https://example.com/a")
    second = await service.shorten("https://example.com/a")

    assert second.short_code == first.short_code
    assert second.status is RequestStatus.EXISTING
    assert await count_mappings() == 1


@pytest.mark.asyncio
async def test_round_trip(service: ShorteningService) -> None:
    result = await service.shorten("https://example.com/a")
    assert await service.resolve(result.short_code) == "https://example.com/a"


@pytest.mark.asyncio
async def test_distinct_urls_get_distinct_codes_concurrently(service: ShorteningService, count_mappings) -> None:
    urls = [f"https://example.com/page/{i}" for i in range(20)]

    results = await asyncio.gather(*(service.shorten(url) for url in urls))

    codes = [r.short_code for r in results]
    assert len(set(codes)) == len(urls)
    assert await count_mappings() == len(urls)
    for url, code in zip(urls, codes):
        assert await service.resolve(code) == url


@pytest.mark.asyncio
async def test_concurrent_duplicates_create_one_record(service: ShorteningService, count_mappings) -> None:
    results = await asyncio.gather(*(service.shorten("https://example.com/same") for _ in range(10)))

    assert len({r.short_code for r in results}) == 1
    assert await count_mappings() == 1


@pytest.mark.asyncio
async def test_lost_race_returns_winner_code(store: MappingStore, allocator: IdAllocator) -> None:
    await store.insert_mapping("000000001", "https://example.com/a")
    allocator.seed(2)
    service = ShorteningService(store, allocator)

    # The winner commits between our read and our insert.
    find = AsyncMock(side_effect=[None, "000000001"])
    with patch.object(store, "find_short_code_by_url", find):
        result = await service.shorten("https://example.com/a")

    assert result.short_code == "000000001"
    assert result.status is RequestStatus.RACE_LOST
    assert await store.find_url_by_short_code("000000002") is None


@pytest.mark.asyncio
async def test_duplicate_short_code_raises_conflict(store: MappingStore, allocator: IdAllocator) -> None:
    await store.insert_mapping("000000001", "https://example.com/a")
    allocator.seed(1)
    service = ShorteningService(store, allocator)
    before = _conflicts()

    with pytest.raises(ConflictError) as exc_info:
        await service.shorten("https://example.com/b")

    assert exc_info.value.short_code == "000000001"
    assert _conflicts() == before + 1
    assert await store.find_short_code_by_url("https://example.com/b") is None


@pytest.mark.asyncio
async def test_duplicate_short_code_retry_resyncs_allocator(store: MappingStore, allocator: IdAllocator) -> None:
    for i, url in enumerate(["https://example.com/a", "https://example.com/b"], start=1):
        await store.insert_mapping(f"00000000{i}", url)
    allocator.seed(1)
    service = ShorteningService(store, allocator, duplicate_code_retries=1)

    result = await service.shorten("https://example.com/c")

    assert result.short_code == "000000003"
    assert result.created


@pytest.mark.asyncio
async def test_storage_error_propagates(store: MappingStore, allocator: IdAllocator) -> None:
    service = ShorteningService(store, allocator)
    failing = AsyncMock(side_effect=StorageError("Storage failure during find_short_code_by_url"))
    with patch.object(store, "find_short_code_by_url", failing):
        with pytest.raises(StorageError):
            await service.shorten("https://example.com/a")


@pytest.mark.asyncio
@pytest.mark.parametrize("code", ["00000001", "0000000001", "abcdefghi", "00000000a", ""])
async def test_resolve_rejects_malformed_codes_before_store(store: MappingStore, allocator: IdAllocator, code: str) -> None:
    service = ShorteningService(store, allocator)
    lookup = AsyncMock(return_value="https://example.com")
    with patch.object(store, "find_url_by_short_code", lookup):
        with pytest.raises(ShortCodeFormatError):
            await service.resolve(code)
    lookup.assert_not_awaited()


@pytest.mark.asyncio
async def test_resolve_unknown_code_is_not_found(service: ShorteningService) -> None:
    with pytest.raises(NotFoundError):
        await service.resolve("000000999")
