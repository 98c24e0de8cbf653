"""
Text layout for the metadata overlay.

Font resolution is a probe chain: the font embedded in Pillow first, then a
fixed list of system font files. When nothing loads, callers get ``None``
and skip text drawing; this is the only non-fatal degradation in the render.
"""
import math
import threading
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from PIL import ImageFont
from loguru import logger

from photo_overlay import config
from photo_overlay.errors import FontUnavailable
from photo_overlay.models import FontWeight

Font = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]

EMBEDDED = "<embedded>"

_probe_lock = threading.Lock()
_probed = False
_font_source: Optional[str] = None


@dataclass(frozen=True)
class TextLayout:
    """Bounding box of a multi-line string plus a draw origin per line"""
    width: int
    height: int
    lines: Tuple[str, ...] = ()
    origins: Tuple[Tuple[int, int], ...] = ()
    stroke_width: int = 0

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0


EMPTY_LAYOUT = TextLayout(0, 0)


def _pixel_size(size: float) -> int:
    return max(1, int(round(size)))


def _load_embedded(size: float) -> Optional[ImageFont.FreeTypeFont]:
    try:
        font = ImageFont.load_default(size=_pixel_size(size))
    except (TypeError, OSError, ImportError) as e:
        # TypeError: Pillow without the sized default font
        logger.debug(f"[Font] Embedded font unavailable: {e}")
        return None
    # Bitmap fallback ignores the size, which breaks the layout contract
    if isinstance(font, ImageFont.FreeTypeFont):
        return font
    return None


def _load_file(path: str, size: float) -> Optional[ImageFont.FreeTypeFont]:
    try:
        return ImageFont.truetype(path, _pixel_size(size))
    except (OSError, ImportError):
        return None


def _probe_source() -> Optional[str]:
    """Find the first usable font source once per process."""
    global _probed, _font_source
    with _probe_lock:
        if _probed:
            return _font_source

        if _load_embedded(12) is not None:
            _font_source = EMBEDDED
        else:
            logger.warning("[Font] Embedded font failed, probing system fonts...")
            for path in config.SYSTEM_FONT_CANDIDATES:
                if _load_file(path, 12) is not None:
                    logger.info(f"[Font] Loaded system font: {path}")
                    _font_source = path
                    break

        if _font_source is None:
            logger.warning("[Font] No usable font found, overlay text will be skipped")
        _probed = True
        return _font_source


def reset_font_probe():
    """Forget the cached probe result (font files may have changed)."""
    global _probed, _font_source
    with _probe_lock:
        _probed = False
        _font_source = None


def load_font(size: float) -> ImageFont.FreeTypeFont:
    """
    Load a font at the given pixel size.

    A fresh font object is created per call so concurrent renders never
    share one.

    Raises:
        FontUnavailable: no source in the probe chain works
    """
    source = _probe_source()
    if source == EMBEDDED:
        font = _load_embedded(size)
    elif source is not None:
        font = _load_file(source, size)
    else:
        font = None

    if font is None:
        raise FontUnavailable("Failed to load any font")
    return font


def resolve_font(size: float) -> Optional[ImageFont.FreeTypeFont]:
    """Optional-returning variant of load_font for the overlay compositor."""
    try:
        return load_font(size)
    except FontUnavailable as e:
        logger.warning(f"⚠️ Font loading failed: {e}, continuing without text overlay")
        return None


def stroke_for(size: float, weight: FontWeight) -> int:
    if weight is FontWeight.Bold:
        return max(1, int(round(size / 24)))
    return 0


def layout_text(font: Font, size: float, text: str, weight: FontWeight = FontWeight.Normal) -> TextLayout:
    """
    Measure a newline-separated string.

    Width is the advance width of the widest line; height is
    ``line_count * size`` (fixed pitch). Bold adds its stroke on every side.
    """
    if not text:
        return EMPTY_LAYOUT

    lines = tuple(text.split("\n"))
    stroke = stroke_for(size, weight)

    widest = max(font.getlength(line) for line in lines)
    width = int(math.ceil(widest)) + 2 * stroke
    height = int(math.ceil(len(lines) * size)) + 2 * stroke

    if widest <= 0:
        return EMPTY_LAYOUT

    origins = tuple(
        (stroke, stroke + int(round(i * size))) for i in range(len(lines))
    )
    return TextLayout(width, height, lines, origins, stroke)
