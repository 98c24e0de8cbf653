import collections
import hashlib
import json
import threading
import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from loguru import logger

from photo_overlay import config
from photo_overlay.models import FrameSettings, OverlaySettings
from photo_overlay.pipeline.request import RequestVariant


@dataclass(frozen=True)
class CacheEntry:
    """
    Rendered output for one fingerprint. Never mutated after insertion;
    the cache only replaces or evicts entries.
    """
    key: str
    preview_data: Optional[bytes]
    full_data: Optional[bytes]
    created_at: float

    @property
    def size_bytes(self) -> int:
        return len(self.preview_data or b"") + len(self.full_data or b"")


def _canonical_overlay(settings: Union[OverlaySettings, Mapping]) -> dict:
    if isinstance(settings, OverlaySettings):
        return settings.to_dict()
    return OverlaySettings.from_dict(dict(settings)).to_dict()


def _canonical_frame(settings: Union[FrameSettings, Mapping]) -> dict:
    if isinstance(settings, FrameSettings):
        return settings.to_dict()
    return FrameSettings.from_dict(dict(settings)).to_dict()


def make_cache_key(
    input_path: str,
    overlay_settings: Union[OverlaySettings, Mapping],
    frame_settings: Union[FrameSettings, Mapping],
    variant: RequestVariant,
    extra: Optional[Mapping[str, Any]] = None,
) -> str:
    """
    Deterministic fingerprint of a render request.

    Settings are normalised and serialised with sorted keys, so key order in
    the incoming records never changes the result.
    """
    payload = {
        'inputPath': input_path,
        'overlaySettings': _canonical_overlay(overlay_settings),
        'frameSettings': _canonical_frame(frame_settings),
        'variant': variant.value,
        'extra': dict(extra) if extra else None,
    }
    blob = json.dumps(payload, sort_keys=True, separators=(',', ':'), ensure_ascii=False, default=str)
    digest = hashlib.sha256(blob.encode('utf-8')).hexdigest()
    return f"unified_cache_{digest}"


class RenderCache:
    """
    Thread-safe store of rendered bytes.

    Over capacity, the ``evict_batch`` entries with the oldest insertion
    time are dropped in one go (coarse batch eviction, not strict LRU).
    """

    def __init__(self, capacity: int = config.CACHE_CAPACITY, evict_batch: int = config.CACHE_EVICT_BATCH):
        self.capacity = capacity
        self.evict_batch = evict_batch
        self.cache: "collections.OrderedDict[str, CacheEntry]" = collections.OrderedDict()
        self.lock = threading.Lock()

    def get(self, key: str) -> Optional[CacheEntry]:
        with self.lock:
            return self.cache.get(key)

    def put(self, key: str, preview_data: Optional[bytes] = None, full_data: Optional[bytes] = None) -> CacheEntry:
        entry = CacheEntry(
            key=key,
            preview_data=preview_data,
            full_data=full_data,
            created_at=time.time(),
        )
        self.put_entry(entry)
        return entry

    def put_entry(self, entry: CacheEntry):
        with self.lock:
            # Re-insert so the OrderedDict order stays the insertion order
            self.cache.pop(entry.key, None)
            self.cache[entry.key] = entry
            self._evict_if_needed()
            count = len(self.cache)

        logger.debug(f"[Cache] Added {entry.key[:24]}... Items: {count}, Size: {entry.size_bytes} bytes")

    def _evict_if_needed(self):
        # Caller holds the lock
        if len(self.cache) <= self.capacity:
            return
        # Stable sort: equal timestamps keep insertion order
        oldest = sorted(self.cache.values(), key=lambda e: e.created_at)[:self.evict_batch]
        for entry in oldest:
            del self.cache[entry.key]
        logger.debug(f"[Cache] Evicted {len(oldest)} oldest entries. Items: {len(self.cache)}")

    def __len__(self) -> int:
        with self.lock:
            return len(self.cache)

    def __contains__(self, key: str) -> bool:
        with self.lock:
            return key in self.cache

    def clear(self):
        with self.lock:
            self.cache.clear()
