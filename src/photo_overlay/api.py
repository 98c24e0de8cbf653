"""
Host application boundary.

Takes plain records (dicts with camelCase keys) and answers with
``{"ok": True, "data": ...}`` or ``{"ok": False, "error": {...}}``.
"""
from typing import Callable, Iterable, Optional

from loguru import logger

from photo_overlay.config import EngineConfig, load_engine_config
from photo_overlay.errors import OverlayError
from photo_overlay.exif_reader import extract_metadata
from photo_overlay.models import PhotoMetadata, PreviewSettings, ProcessingSettings
from photo_overlay.pipeline.batch import BatchRenderer
from photo_overlay.pipeline.engine import UnifiedEngine
from photo_overlay.pipeline.request import ProcessingRequest, RequestVariant


def _ok(data) -> dict:
    return {'ok': True, 'data': data}


def _fail(error: OverlayError) -> dict:
    return {'ok': False, 'error': error.to_dict()}


class OverlayService:
    """
    Owns one UnifiedEngine for its whole lifetime. Construct it once in the
    host and pass it where it is needed.
    """

    def __init__(
        self,
        engine: Optional[UnifiedEngine] = None,
        extractor: Optional[Callable[[str], PhotoMetadata]] = None,
        config: Optional[EngineConfig] = None,
    ):
        if extractor is None:
            extractor = extract_metadata
        self.extractor = extractor
        if engine is None:
            engine = UnifiedEngine(config=config if config is not None else load_engine_config())
        self.engine = engine
        self.batch = BatchRenderer(extractor, pipeline=self.engine.pipeline)

    def render_to_file(self, request: dict) -> dict:
        try:
            req = ProcessingRequest.from_dict(request)
            info = self.engine.pipeline.render_request(req)
        except OverlayError as e:
            logger.error(f"❌ Render failed: {e.message}")
            return _fail(e)
        return _ok(info.to_dict())

    def render_batch(self, image_paths: Iterable[str], settings: dict, output_dir: str) -> dict:
        try:
            parsed = ProcessingSettings.from_dict(settings)
            result = self.batch.run(image_paths, parsed, output_dir)
        except OverlayError as e:
            logger.error(f"❌ Batch failed: {e.message}")
            return _fail(e)
        return _ok(result.to_dict())

    def generate_preview_bytes(self, image_path: str, settings: dict) -> dict:
        try:
            parsed = PreviewSettings.from_dict(settings)
            metadata = self.batch.extract(image_path)
            result = self.engine.process_unified(
                image_path,
                metadata,
                parsed.overlay_settings,
                parsed.frame_settings,
                RequestVariant.Preview,
                preview_size=(parsed.max_width, parsed.max_height),
            )
        except OverlayError as e:
            logger.error(f"❌ Preview failed: {e.message}")
            return _fail(e)
        return _ok(result.preview_data)

    def query_stats(self) -> dict:
        return _ok(self.engine.stats().to_dict())

    def close(self):
        self.engine.close()
