import os
import time
from typing import Optional

from PIL import Image
from loguru import logger

from photo_overlay import config, file_io
from photo_overlay.frame import composite_frame
from photo_overlay.models import (
    FrameSettings,
    OutputFormat,
    OverlaySettings,
    PhotoMetadata,
    ProcessedImageInfo,
)
from photo_overlay.overlay import composite_overlay
from photo_overlay.pipeline.request import ProcessingRequest


class RenderPipeline:
    """
    decode -> overlay -> frame -> encode.

    Overlay always runs before the frame so the frame never hides the text.
    Every call decodes its own pixel buffer; nothing is shared between calls,
    so one pipeline can serve concurrent renders.
    """

    def __init__(
        self,
        preview_max_width: int = config.PREVIEW_MAX_WIDTH,
        preview_max_height: int = config.PREVIEW_MAX_HEIGHT,
        full_quality: int = config.FULL_QUALITY,
    ):
        self.preview_max_width = preview_max_width
        self.preview_max_height = preview_max_height
        self.full_quality = full_quality

    def compose(
        self,
        img: Image.Image,
        metadata: PhotoMetadata,
        overlay_settings: OverlaySettings,
        frame_settings: FrameSettings,
    ) -> Image.Image:
        img = composite_overlay(img, metadata, overlay_settings)
        if frame_settings.enabled:
            img = composite_frame(img, frame_settings)
        return img

    def render(
        self,
        input_path: str,
        metadata: PhotoMetadata,
        overlay_settings: OverlaySettings,
        frame_settings: FrameSettings,
        output_path: str,
        quality: int,
    ) -> ProcessedImageInfo:
        """Render one image to a file. Output format follows the extension."""
        start = time.perf_counter()
        original_size = file_io.file_size(input_path)

        img = file_io.load_image(input_path)
        img = self.compose(img, metadata, overlay_settings, frame_settings)
        processed_size = file_io.save_image(img, output_path, quality)

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.info(f"✅ Saved: {output_path} ({processed_size} bytes, {elapsed_ms} ms)")

        return ProcessedImageInfo(
            input_path=input_path,
            output_path=output_path,
            original_size=original_size,
            processed_size=processed_size,
            processing_time_ms=elapsed_ms,
        )

    def render_request(self, request: ProcessingRequest) -> ProcessedImageInfo:
        return self.render(
            request.input_path,
            request.metadata,
            request.overlay_settings,
            request.frame_settings,
            request.output_path,
            request.quality,
        )

    def render_preview(
        self,
        input_path: str,
        metadata: PhotoMetadata,
        overlay_settings: OverlaySettings,
        frame_settings: FrameSettings,
        max_width: Optional[int] = None,
        max_height: Optional[int] = None,
    ) -> bytes:
        """
        Downsample (Lanczos, aspect preserved, never enlarged), compose, and
        encode as PNG in memory.
        """
        bounds = (max_width or self.preview_max_width, max_height or self.preview_max_height)

        img = file_io.load_image(input_path)
        img.thumbnail(bounds, Image.Resampling.LANCZOS)
        img = self.compose(img, metadata, overlay_settings, frame_settings)

        data = file_io.encode_image(img, OutputFormat.Png)
        logger.debug(f"[Preview] {os.path.basename(input_path)} -> {img.width}x{img.height}, {len(data)} bytes")
        return data

    def render_full(
        self,
        input_path: str,
        metadata: PhotoMetadata,
        overlay_settings: OverlaySettings,
        frame_settings: FrameSettings,
    ) -> bytes:
        """Full-resolution render encoded as high-quality JPEG in memory."""
        img = file_io.load_image(input_path)
        img = self.compose(img, metadata, overlay_settings, frame_settings)
        data = file_io.encode_image(img, OutputFormat.Jpeg, self.full_quality)
        logger.debug(f"[Full] {os.path.basename(input_path)} -> {img.width}x{img.height}, {len(data)} bytes")
        return data
