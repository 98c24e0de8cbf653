from dataclasses import dataclass
from enum import Enum
from typing import Union

from photo_overlay.errors import InvalidSettings
from photo_overlay.models import PhotoMetadata, OverlaySettings, FrameSettings


class RequestVariant(Enum):
    """Which renders a caller wants back from the engine"""
    Preview = "Preview"
    FullQuality = "FullQuality"
    Both = "Both"


@dataclass(frozen=True)
class ProcessingRequest:
    """Immutable render-to-file request. Consumed once by the pipeline."""
    input_path: str
    metadata: PhotoMetadata
    overlay_settings: OverlaySettings
    frame_settings: FrameSettings
    output_path: str
    quality: int = 90

    def __post_init__(self):
        if isinstance(self.quality, bool) or not isinstance(self.quality, int) or not 1 <= self.quality <= 100:
            raise InvalidSettings(f"quality must be an integer in 1..100, got {self.quality!r}")

    @classmethod
    def from_dict(cls, data: dict) -> "ProcessingRequest":
        try:
            input_path = data.get('inputPath', data.get('input_path'))
            output_path = data.get('outputPath', data.get('output_path'))
            quality = int(data.get('quality', 90))
        except (TypeError, ValueError, AttributeError):
            raise InvalidSettings("malformed processing request")
        if not input_path or not output_path:
            raise InvalidSettings("processing request needs inputPath and outputPath")
        return cls(
            input_path=str(input_path),
            metadata=PhotoMetadata.from_dict(data.get('metadata')),
            overlay_settings=OverlaySettings.from_dict(data.get('overlaySettings', data.get('overlay_settings'))),
            frame_settings=FrameSettings.from_dict(data.get('frameSettings', data.get('frame_settings'))),
            output_path=str(output_path),
            quality=quality,
        )


# Tagged union returned by the engine: exactly one of these per call

@dataclass(frozen=True)
class PreviewResult:
    preview_data: bytes


@dataclass(frozen=True)
class FullQualityResult:
    full_data: bytes


@dataclass(frozen=True)
class BothResult:
    preview_data: bytes
    full_data: bytes


ProcessingResult = Union[PreviewResult, FullQualityResult, BothResult]
