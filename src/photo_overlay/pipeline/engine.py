import os
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from loguru import logger

from photo_overlay.config import EngineConfig
from photo_overlay.errors import EngineError, OverlayError
from photo_overlay.models import FrameSettings, OverlaySettings, PhotoMetadata
from photo_overlay.pipeline.cache_manager import RenderCache, make_cache_key
from photo_overlay.pipeline.render import RenderPipeline
from photo_overlay.pipeline.request import (
    BothResult,
    FullQualityResult,
    PreviewResult,
    ProcessingResult,
    RequestVariant,
)


@dataclass(frozen=True)
class EngineStats:
    """Read-only snapshot of the engine counters"""
    cache_hits: int = 0
    cache_misses: int = 0
    total_processing_time_ms: float = 0.0

    def to_dict(self) -> dict:
        return {
            'cacheHits': self.cache_hits,
            'cacheMisses': self.cache_misses,
            'totalProcessingTimeMs': self.total_processing_time_ms,
        }


class UnifiedEngine:
    """
    Serves preview / full-quality / both renders with memoization.

    Cache entries are kept per concrete variant. A ``Both`` request looks up
    each half on its own and renders only what is missing; two missing
    halves render concurrently on the engine's worker pool.

    Concurrent callers asking for the same fingerprint share one render.
    Locks guard only the cache, the in-flight table and the counters;
    rendering never happens while a lock is held.
    """

    def __init__(
        self,
        pipeline: Optional[RenderPipeline] = None,
        cache: Optional[RenderCache] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.config = config if config is not None else EngineConfig()
        self.pipeline = pipeline if pipeline is not None else RenderPipeline(
            preview_max_width=self.config.preview_max_width,
            preview_max_height=self.config.preview_max_height,
            full_quality=self.config.full_quality,
        )
        self.cache = cache if cache is not None else RenderCache(
            capacity=self.config.cache_capacity,
            evict_batch=self.config.cache_evict_batch,
        )
        self._executor = ThreadPoolExecutor(
            max_workers=max(2, self.config.max_workers),
            thread_name_prefix="render",
        )

        self._inflight_lock = threading.Lock()
        self._inflight: Dict[str, Future] = {}

        self._stats_lock = threading.Lock()
        self._cache_hits = 0
        self._cache_misses = 0
        self._total_processing_time_ms = 0.0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def process_unified(
        self,
        input_path: str,
        metadata: PhotoMetadata,
        overlay_settings: OverlaySettings,
        frame_settings: FrameSettings,
        variant: RequestVariant,
        preview_size: Optional[Tuple[int, int]] = None,
    ) -> ProcessingResult:
        """
        Return the requested variant, from cache when possible.

        Args:
            preview_size: optional (max_width, max_height) overriding the
                engine's preview bounds; part of the preview fingerprint

        Raises:
            RenderError subclasses from the pipeline, or EngineError when a
            concurrent join fails for another reason
        """
        start = time.perf_counter()
        name = os.path.basename(input_path)

        preview_key = full_key = None
        if variant in (RequestVariant.Preview, RequestVariant.Both):
            preview_key = make_cache_key(
                input_path, overlay_settings, frame_settings, RequestVariant.Preview,
                extra=self._preview_extra(preview_size),
            )
        if variant in (RequestVariant.FullQuality, RequestVariant.Both):
            full_key = make_cache_key(input_path, overlay_settings, frame_settings, RequestVariant.FullQuality)

        preview_entry = self.cache.get(preview_key) if preview_key else None
        full_entry = self.cache.get(full_key) if full_key else None

        preview_data = preview_entry.preview_data if preview_entry else None
        full_data = full_entry.full_data if full_entry else None

        missing_preview = preview_key is not None and preview_data is None
        missing_full = full_key is not None and full_data is None

        if not missing_preview and not missing_full:
            self._record(hit=True)
            logger.debug(f"[Engine] Cache Hit: {name} ({variant.value})")
            return self._result(variant, preview_data, full_data)

        logger.debug(f"[Engine] Cache Miss: {name} ({variant.value})")

        def preview_job() -> bytes:
            return self._compute(preview_key, 'preview', lambda: self.pipeline.render_preview(
                input_path, metadata, overlay_settings, frame_settings,
                *(preview_size or (None, None)),
            ))

        def full_job() -> bytes:
            return self._compute(full_key, 'full', lambda: self.pipeline.render_full(
                input_path, metadata, overlay_settings, frame_settings,
            ))

        if missing_preview and missing_full:
            preview_data, full_data = self._run_concurrently(preview_job, full_job)
        elif missing_preview:
            preview_data = preview_job()
        else:
            full_data = full_job()

        elapsed_ms = (time.perf_counter() - start) * 1000
        self._record(hit=False, elapsed_ms=elapsed_ms)
        logger.info(f"[Engine] Rendered {name} ({variant.value}) in {elapsed_ms:.0f} ms")
        return self._result(variant, preview_data, full_data)

    def stats(self) -> EngineStats:
        with self._stats_lock:
            return EngineStats(
                cache_hits=self._cache_hits,
                cache_misses=self._cache_misses,
                total_processing_time_ms=self._total_processing_time_ms,
            )

    def clear_cache(self):
        self.cache.clear()

    def close(self):
        self._executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _preview_extra(self, preview_size: Optional[Tuple[int, int]]) -> dict:
        width, height = preview_size or (self.pipeline.preview_max_width, self.pipeline.preview_max_height)
        return {'previewMax': [int(width), int(height)]}

    @staticmethod
    def _result(variant: RequestVariant, preview_data: Optional[bytes], full_data: Optional[bytes]) -> ProcessingResult:
        if variant is RequestVariant.Preview:
            return PreviewResult(preview_data)
        if variant is RequestVariant.FullQuality:
            return FullQualityResult(full_data)
        return BothResult(preview_data, full_data)

    def _compute(self, key: str, kind: str, render: Callable[[], bytes]) -> bytes:
        """
        Render once per key. Later callers for the same key wait on the
        first caller's future instead of rendering again.
        """
        with self._inflight_lock:
            # The owner stores its result before leaving the in-flight table,
            # so a late caller finds either the future or the cached bytes
            entry = self.cache.get(key)
            data = None
            if entry is not None:
                data = entry.preview_data if kind == 'preview' else entry.full_data
            future = self._inflight.get(key)
            owner = data is None and future is None
            if owner:
                future = Future()
                self._inflight[key] = future

        if data is not None:
            logger.debug(f"[Engine] {kind} render finished while waiting, using cache")
            return data

        if not owner:
            logger.debug(f"[Engine] Joining in-flight {kind} render")
            return future.result()

        try:
            data = render()
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            if kind == 'preview':
                self.cache.put(key, preview_data=data)
            else:
                self.cache.put(key, full_data=data)
            future.set_result(data)
            return data
        finally:
            with self._inflight_lock:
                self._inflight.pop(key, None)

    def _run_concurrently(self, preview_job, full_job) -> Tuple[bytes, bytes]:
        """
        Launch both jobs and wait. The call fails with the first failure in
        completion order; the other job is not cancelled and still finishes
        (and fills the cache) in the background.
        """
        failures = []

        def tracked(job):
            def run():
                try:
                    return job()
                except BaseException as e:
                    failures.append(e)
                    raise
            return run

        preview_future = self._executor.submit(tracked(preview_job))
        full_future = self._executor.submit(tracked(full_job))

        wait([preview_future, full_future], return_when=FIRST_EXCEPTION)

        if failures:
            error = failures[0]
            if isinstance(error, OverlayError):
                raise error
            raise EngineError(f"Concurrent render failed: {error}") from error

        return preview_future.result(), full_future.result()

    def _record(self, hit: bool, elapsed_ms: float = 0.0):
        with self._stats_lock:
            if hit:
                self._cache_hits += 1
            else:
                self._cache_misses += 1
                self._total_processing_time_ms += elapsed_ms
