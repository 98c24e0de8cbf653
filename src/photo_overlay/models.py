"""
Data model: photo metadata, overlay / frame settings and render results.

Records arrive from the host as plain dicts with camelCase keys;
``from_dict`` also accepts snake_case. ``to_dict`` always emits camelCase.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from photo_overlay.errors import ErrorCategory, InvalidSettings


def _pick(data: dict, camel: str, snake: Optional[str] = None, default: Any = None) -> Any:
    if camel in data:
        return data[camel]
    if snake and snake in data:
        return data[snake]
    return default


def _as_float(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidSettings(f"{name} must be a number, got {value!r}")


def _as_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _as_record(value: Any, name: str) -> dict:
    """None reads as an empty record; anything but a mapping is rejected."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidSettings(f"{name} must be a mapping, got {value!r}")
    return value


def _as_bool(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise InvalidSettings(f"{name} must be true or false, got {value!r}")
    return value


class NamedEnum(Enum):
    """Enum parsed leniently: 'BottomRight', 'bottom-right', 'bottom_right'."""

    @classmethod
    def parse(cls, value: Any):
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            wanted = value.replace('-', '').replace('_', '').replace(' ', '').lower()
            for member in cls:
                if member.name.lower() == wanted:
                    return member
        raise InvalidSettings(f"Unknown {cls.__name__}: {value!r}")


class OverlayPosition(NamedEnum):
    TopLeft = "TopLeft"
    TopRight = "TopRight"
    BottomLeft = "BottomLeft"
    BottomRight = "BottomRight"


class FontWeight(NamedEnum):
    Normal = "Normal"
    Bold = "Bold"


class FrameStyle(NamedEnum):
    Simple = "Simple"
    Shadow = "Shadow"
    Film = "Film"
    Polaroid = "Polaroid"
    Vintage = "Vintage"


class OutputFormat(NamedEnum):
    Jpeg = "Jpeg"
    Png = "Png"

    @property
    def extension(self) -> str:
        return "jpg" if self is OutputFormat.Jpeg else "png"


# =========================================================
# Photo metadata (produced by the external extractor)
# =========================================================

@dataclass(frozen=True)
class CameraInfo:
    make: Optional[str] = None
    model: Optional[str] = None


@dataclass(frozen=True)
class CameraSettings:
    aperture: Optional[str] = None
    shutter_speed: Optional[str] = None
    iso: Optional[int] = None
    focal_length: Optional[str] = None


@dataclass(frozen=True)
class LocationInfo:
    latitude: float
    longitude: float
    address: Optional[str] = None


@dataclass(frozen=True)
class PhotoMetadata:
    camera: CameraInfo = field(default_factory=CameraInfo)
    settings: CameraSettings = field(default_factory=CameraSettings)
    timestamp: Optional[str] = None
    location: Optional[LocationInfo] = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "PhotoMetadata":
        data = _as_record(data, "metadata")
        camera = _as_record(data.get('camera'), "metadata.camera")
        settings = _as_record(data.get('settings'), "metadata.settings")
        location = _as_record(data.get('location'), "metadata.location")

        iso = _pick(settings, 'iso')
        if iso is not None:
            try:
                iso = int(iso)
            except (TypeError, ValueError):
                raise InvalidSettings(f"iso must be an unsigned integer, got {iso!r}")
            if iso < 0:
                raise InvalidSettings(f"iso must be an unsigned integer, got {iso!r}")

        loc = None
        if location:
            loc = LocationInfo(
                latitude=_as_float(location.get('latitude'), 'latitude'),
                longitude=_as_float(location.get('longitude'), 'longitude'),
                address=_as_optional_str(location.get('address')),
            )

        return cls(
            camera=CameraInfo(
                make=_as_optional_str(camera.get('make')),
                model=_as_optional_str(camera.get('model')),
            ),
            settings=CameraSettings(
                aperture=_as_optional_str(_pick(settings, 'aperture')),
                shutter_speed=_as_optional_str(_pick(settings, 'shutterSpeed', 'shutter_speed')),
                iso=iso,
                focal_length=_as_optional_str(_pick(settings, 'focalLength', 'focal_length')),
            ),
            timestamp=_as_optional_str(data.get('timestamp')),
            location=loc,
        )

    def to_dict(self) -> dict:
        return {
            'camera': {'make': self.camera.make, 'model': self.camera.model},
            'settings': {
                'aperture': self.settings.aperture,
                'shutterSpeed': self.settings.shutter_speed,
                'iso': self.settings.iso,
                'focalLength': self.settings.focal_length,
            },
            'timestamp': self.timestamp,
            'location': None if self.location is None else {
                'latitude': self.location.latitude,
                'longitude': self.location.longitude,
                'address': self.location.address,
            },
        }


# =========================================================
# Overlay settings
# =========================================================

@dataclass(frozen=True)
class FontSettings:
    family: str = "sans-serif"
    size: float = 24.0
    color: str = "#FFFFFF"
    weight: FontWeight = FontWeight.Normal


@dataclass(frozen=True)
class BackgroundSettings:
    color: str = "#000000"
    opacity: float = 0.6
    padding: float = 10.0
    corner_radius: float = 0.0


@dataclass(frozen=True)
class DisplayItems:
    brand: bool = True
    model: bool = True
    aperture: bool = True
    shutter_speed: bool = True
    iso: bool = True
    timestamp: bool = True
    location: bool = False
    brand_logo: bool = False


_DISPLAY_KEYS = [
    ('brand', 'brand'),
    ('model', 'model'),
    ('aperture', 'aperture'),
    ('shutterSpeed', 'shutter_speed'),
    ('iso', 'iso'),
    ('timestamp', 'timestamp'),
    ('location', 'location'),
    ('brandLogo', 'brand_logo'),
]


@dataclass(frozen=True)
class OverlaySettings:
    position: OverlayPosition = OverlayPosition.BottomRight
    font: FontSettings = field(default_factory=FontSettings)
    background: BackgroundSettings = field(default_factory=BackgroundSettings)
    display_items: DisplayItems = field(default_factory=DisplayItems)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "OverlaySettings":
        data = _as_record(data, "overlaySettings")
        font = _as_record(data.get('font'), "overlaySettings.font")
        background = _as_record(data.get('background'), "overlaySettings.background")
        items = _as_record(_pick(data, 'displayItems', 'display_items'), "overlaySettings.displayItems")

        font_size = _as_float(font.get('size', FontSettings.size), 'font.size')
        if font_size <= 0:
            raise InvalidSettings(f"font.size must be positive, got {font_size}")

        opacity = _as_float(background.get('opacity', BackgroundSettings.opacity), 'background.opacity')
        if not 0.0 <= opacity <= 1.0:
            raise InvalidSettings(f"background.opacity must be within 0..1, got {opacity}")

        padding = _as_float(background.get('padding', BackgroundSettings.padding), 'background.padding')
        if padding < 0:
            raise InvalidSettings(f"background.padding must not be negative, got {padding}")

        defaults = DisplayItems()
        toggles = {
            snake: _as_bool(_pick(items, camel, snake, getattr(defaults, snake)), f"displayItems.{camel}")
            for camel, snake in _DISPLAY_KEYS
        }

        return cls(
            position=OverlayPosition.parse(data.get('position', OverlayPosition.BottomRight)),
            font=FontSettings(
                family=str(font.get('family', FontSettings.family)),
                size=font_size,
                color=str(font.get('color', FontSettings.color)),
                weight=FontWeight.parse(font.get('weight', FontWeight.Normal)),
            ),
            background=BackgroundSettings(
                color=str(background.get('color', BackgroundSettings.color)),
                opacity=opacity,
                padding=padding,
                corner_radius=_as_float(
                    _pick(background, 'cornerRadius', 'corner_radius',
                          background.get('borderRadius', BackgroundSettings.corner_radius)),
                    'background.cornerRadius'
                ),
            ),
            display_items=DisplayItems(**toggles),
        )

    def to_dict(self) -> dict:
        return {
            'position': self.position.value,
            'font': {
                'family': self.font.family,
                'size': self.font.size,
                'color': self.font.color,
                'weight': self.font.weight.value,
            },
            'background': {
                'color': self.background.color,
                'opacity': self.background.opacity,
                'padding': self.background.padding,
                'cornerRadius': self.background.corner_radius,
            },
            'displayItems': {
                camel: getattr(self.display_items, snake) for camel, snake in _DISPLAY_KEYS
            },
        }


# =========================================================
# Frame settings
# =========================================================

@dataclass(frozen=True)
class FrameSettings:
    enabled: bool = False
    style: FrameStyle = FrameStyle.Simple
    color: str = "#FFFFFF"
    width: float = 20.0
    opacity: float = 1.0
    # Style-specific extras: cornerRadius, shadowBlur, shadowOffset {x, y}
    custom_properties: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "FrameSettings":
        data = _as_record(data, "frameSettings")
        width = _as_float(data.get('width', FrameSettings.width), 'frame.width')
        if width < 0:
            raise InvalidSettings(f"frame.width must not be negative, got {width}")
        opacity = _as_float(data.get('opacity', FrameSettings.opacity), 'frame.opacity')
        if not 0.0 <= opacity <= 1.0:
            raise InvalidSettings(f"frame.opacity must be within 0..1, got {opacity}")

        custom = _pick(data, 'customProperties', 'custom_properties')
        if custom is not None and not isinstance(custom, dict):
            raise InvalidSettings(f"frame.customProperties must be a mapping, got {custom!r}")

        return cls(
            enabled=_as_bool(data.get('enabled', False), "frame.enabled"),
            style=FrameStyle.parse(data.get('style', FrameStyle.Simple)),
            color=str(data.get('color', FrameSettings.color)),
            width=width,
            opacity=opacity,
            custom_properties=dict(custom) if custom is not None else None,
        )

    def to_dict(self) -> dict:
        return {
            'enabled': self.enabled,
            'style': self.style.value,
            'color': self.color,
            'width': self.width,
            'opacity': self.opacity,
            'customProperties': self.custom_properties,
        }

    def custom(self, key: str, default: Any = None) -> Any:
        if not self.custom_properties:
            return default
        return self.custom_properties.get(key, default)


# =========================================================
# Composite settings used by batch / preview boundaries
# =========================================================

def _parse_quality(value: Any) -> int:
    try:
        quality = int(value)
    except (TypeError, ValueError):
        raise InvalidSettings(f"quality must be an integer in 1..100, got {value!r}")
    if not 1 <= quality <= 100:
        raise InvalidSettings(f"quality must be an integer in 1..100, got {quality}")
    return quality


@dataclass(frozen=True)
class ProcessingSettings:
    overlay_settings: OverlaySettings = field(default_factory=OverlaySettings)
    frame_settings: FrameSettings = field(default_factory=FrameSettings)
    output_format: OutputFormat = OutputFormat.Jpeg
    quality: int = 90

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ProcessingSettings":
        data = _as_record(data, "settings")
        return cls(
            overlay_settings=OverlaySettings.from_dict(_pick(data, 'overlaySettings', 'overlay_settings')),
            frame_settings=FrameSettings.from_dict(_pick(data, 'frameSettings', 'frame_settings')),
            output_format=OutputFormat.parse(_pick(data, 'outputFormat', 'output_format', OutputFormat.Jpeg)),
            quality=_parse_quality(data.get('quality', 90)),
        )


@dataclass(frozen=True)
class PreviewSettings:
    max_width: int = 800
    max_height: int = 600
    overlay_settings: OverlaySettings = field(default_factory=OverlaySettings)
    frame_settings: FrameSettings = field(default_factory=FrameSettings)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "PreviewSettings":
        data = _as_record(data, "previewSettings")
        try:
            max_width = int(_pick(data, 'maxWidth', 'max_width', 800))
            max_height = int(_pick(data, 'maxHeight', 'max_height', 600))
        except (TypeError, ValueError):
            raise InvalidSettings("preview bounds must be integers")
        if max_width <= 0 or max_height <= 0:
            raise InvalidSettings(f"preview bounds must be positive, got {max_width}x{max_height}")
        return cls(
            max_width=max_width,
            max_height=max_height,
            overlay_settings=OverlaySettings.from_dict(_pick(data, 'overlaySettings', 'overlay_settings')),
            frame_settings=FrameSettings.from_dict(_pick(data, 'frameSettings', 'frame_settings')),
        )


# =========================================================
# Results
# =========================================================

@dataclass
class ProcessedImageInfo:
    input_path: str
    output_path: str
    original_size: int
    processed_size: int
    processing_time_ms: int

    def to_dict(self) -> dict:
        return {
            'inputPath': self.input_path,
            'outputPath': self.output_path,
            'originalSize': self.original_size,
            'processedSize': self.processed_size,
            'processingTimeMs': self.processing_time_ms,
        }


@dataclass
class ProcessingFailure:
    file_path: str
    error_message: str
    error_type: ErrorCategory

    def to_dict(self) -> dict:
        return {
            'filePath': self.file_path,
            'errorMessage': self.error_message,
            'errorType': self.error_type.value,
        }


@dataclass
class BatchProcessingResult:
    total_files: int
    successful: List[ProcessedImageInfo] = field(default_factory=list)
    failed: List[ProcessingFailure] = field(default_factory=list)
    total_time_ms: int = 0

    def to_dict(self) -> dict:
        return {
            'totalFiles': self.total_files,
            'successful': [s.to_dict() for s in self.successful],
            'failed': [f.to_dict() for f in self.failed],
            'totalTimeMs': self.total_time_ms,
        }
