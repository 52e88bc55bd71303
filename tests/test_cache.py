"""Tests for the resolution cache."""

from rawscan.services.cache import ResolutionCache
from tests.conftest import ManualUtcClock, make_product


def test_put_then_get_returns_product() -> None:
    cache = ResolutionCache()
    product = make_product()

    cache.put("0000000000017", product)

    assert cache.get("0000000000017") is product
    assert cache.get("0000000000024") is None


def test_expired_entry_reads_as_miss_and_is_evicted() -> None:
    clock = ManualUtcClock()
    cache = ResolutionCache(ttl_seconds=10, clock=clock)
    cache.put("0000000000017", make_product())

    clock.advance(9)
    assert cache.get("0000000000017") is not None

    clock.advance(1)
    assert cache.get("0000000000017") is None
    assert len(cache) == 0


def test_sweep_removes_only_expired_entries() -> None:
    clock = ManualUtcClock()
    cache = ResolutionCache(ttl_seconds=10, clock=clock)
    cache.put("old", make_product(barcode="old"))
    clock.advance(5)
    cache.put("new", make_product(barcode="new"))
    clock.advance(6)

    assert cache.sweep() == 1
    assert cache.get("new") is not None
    assert len(cache) == 1


def test_last_write_wins_and_clear() -> None:
    cache = ResolutionCache()
    cache.put("key", make_product(name="First"))
    cache.put("key", make_product(name="Second"))

    assert cache.get("key").name == "Second"

    cache.clear()
    assert len(cache) == 0
