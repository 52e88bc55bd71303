"""Time-bounded cache of resolved products."""

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from rawscan.domain.products import Product


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True)
class ResolutionCacheEntry:
    product: Product
    inserted_at: datetime


@dataclass
class ResolutionCache:
    """In-memory cache keyed by canonical barcode.

    Products are frozen, so handing the stored value to callers cannot expose
    the entry to mutation.
    """

    ttl_seconds: int = 60 * 60 * 48
    clock: Callable[[], datetime] = _utc_now
    _entries: dict[str, ResolutionCacheEntry] = field(default_factory=dict, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def get(self, barcode: str) -> Product | None:
        """Return a cached product if it hasn't expired."""
        now = self.clock()
        with self._lock:
            entry = self._entries.get(barcode)
            if entry is None:
                return None
            if self._expired(entry, now):
                self._entries.pop(barcode, None)
                return None
            return entry.product

    def put(self, barcode: str, product: Product) -> None:
        """Store a product; concurrent writers for one key are last-write-wins."""
        entry = ResolutionCacheEntry(product=product, inserted_at=self.clock())
        with self._lock:
            self._entries[barcode] = entry

    def sweep(self) -> int:
        """Evict expired entries and return how many were removed."""
        now = self.clock()
        with self._lock:
            expired = [
                key for key, entry in self._entries.items() if self._expired(entry, now)
            ]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _expired(self, entry: ResolutionCacheEntry, now: datetime) -> bool:
        return now >= entry.inserted_at + timedelta(seconds=self.ttl_seconds)
