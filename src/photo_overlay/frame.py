"""
Frame compositor: grows the canvas by the frame width on every side,
paints a style-specific border and places the photo in the middle.
"""
from typing import Callable, Dict, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFilter
from loguru import logger

from photo_overlay.color import RGBA, parse_color
from photo_overlay.models import FrameSettings, FrameStyle

# Grain must be reproducible: cached bytes and fresh renders have to match
VINTAGE_GRAIN_SEED = 1839


def _shade(color: RGBA, factor: float) -> RGBA:
    """Scale RGB by factor (<1 darkens, >1 lightens), keeping alpha."""
    def ch(v):
        return int(max(0, min(255, round(v * factor))))
    return RGBA(ch(color.r), ch(color.g), ch(color.b), color.a)


def _luminance(color: RGBA) -> float:
    return 0.2126 * color.r + 0.7152 * color.g + 0.0722 * color.b


def _offset(frame: FrameSettings, default: Tuple[int, int]) -> Tuple[int, int]:
    value = frame.custom('shadowOffset')
    if isinstance(value, dict):
        try:
            return int(value.get('x', default[0])), int(value.get('y', default[1]))
        except (TypeError, ValueError):
            logger.warning(f"Ignoring malformed shadowOffset {value!r}")
    return default


def _number(frame: FrameSettings, key: str, default: float) -> float:
    value = frame.custom(key, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed {key} {value!r}")
        return default


def _drop_shadow(canvas: Image.Image, photo_box, offset, blur: float, alpha: int) -> Image.Image:
    x0, y0, x1, y1 = photo_box
    dx, dy = offset
    layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    ImageDraw.Draw(layer).rectangle((x0 + dx, y0 + dy, x1 + dx, y1 + dy), fill=(0, 0, 0, alpha))
    if blur > 0:
        layer = layer.filter(ImageFilter.GaussianBlur(blur))
    return Image.alpha_composite(canvas, layer)


# =========================================================
# Style painters
# Each paints the full canvas; the photo is pasted over the centre later.
# =========================================================

def _paint_simple(size, photo_box, fw: int, color: RGBA, frame: FrameSettings) -> Image.Image:
    radius = int(_number(frame, 'cornerRadius', 0))
    if radius <= 0:
        return Image.new("RGBA", size, tuple(color))
    canvas = Image.new("RGBA", size, (0, 0, 0, 0))
    ImageDraw.Draw(canvas).rounded_rectangle(
        (0, 0, size[0] - 1, size[1] - 1), radius=radius, fill=tuple(color)
    )
    return canvas


def _paint_shadow(size, photo_box, fw: int, color: RGBA, frame: FrameSettings) -> Image.Image:
    canvas = Image.new("RGBA", size, tuple(color))
    blur = _number(frame, 'shadowBlur', 10)
    offset = _offset(frame, (0, 5))
    return _drop_shadow(canvas, photo_box, offset, blur, alpha=77)


def _paint_film(size, photo_box, fw: int, color: RGBA, frame: FrameSettings) -> Image.Image:
    canvas = Image.new("RGBA", size, tuple(color))
    if fw <= 0:
        return canvas

    hole = max(2, min(int(fw * 0.3), 8))
    spacing = hole * 2
    # Holes must contrast with the strip, black on black would vanish
    if _luminance(color) < 128:
        hole_color = RGBA(235, 235, 225, color.a)
    else:
        hole_color = RGBA(15, 15, 15, color.a)

    width, height = size
    draw = ImageDraw.Draw(canvas)
    top_y = fw // 2 - hole // 2
    bottom_y = height - fw // 2 - hole // 2 - 1
    for x in range(spacing, width - spacing, spacing):
        left = x - hole // 2
        for y in (top_y, bottom_y):
            draw.rounded_rectangle(
                (left, y, left + hole - 1, y + hole - 1),
                radius=max(1, hole // 4),
                fill=tuple(hole_color),
            )
    return canvas


def _paint_polaroid(size, photo_box, fw: int, color: RGBA, frame: FrameSettings) -> Image.Image:
    width, height = size
    canvas = Image.new("RGBA", size, tuple(color))
    draw = ImageDraw.Draw(canvas)

    # Caption band: lower part of the bottom border, slightly toned
    _, _, _, photo_bottom = photo_box
    band_top = photo_bottom + 1 + max(1, fw // 3)
    if band_top < height:
        draw.rectangle((0, band_top, width - 1, height - 1), fill=tuple(_shade(color, 0.94)))

    blur = _number(frame, 'shadowBlur', 15)
    offset = _offset(frame, (0, 8))
    canvas = _drop_shadow(canvas, photo_box, offset, blur, alpha=51)

    x0, y0, x1, y1 = photo_box
    if fw > 0:
        ImageDraw.Draw(canvas).rectangle(
            (x0 - 1, y0 - 1, x1 + 1, y1 + 1), outline=tuple(_shade(color, 0.8)), width=1
        )
    return canvas


def _paint_vintage(size, photo_box, fw: int, color: RGBA, frame: FrameSettings) -> Image.Image:
    width, height = size

    # Aged tint: pull the frame color halfway towards sepia
    rgb = np.array([color.r, color.g, color.b], dtype=np.float32)
    sepia = np.array([
        0.393 * rgb[0] + 0.769 * rgb[1] + 0.189 * rgb[2],
        0.349 * rgb[0] + 0.686 * rgb[1] + 0.168 * rgb[2],
        0.272 * rgb[0] + 0.534 * rgb[1] + 0.131 * rgb[2],
    ], dtype=np.float32)
    tinted = 0.5 * rgb + 0.5 * np.minimum(sepia, 255.0)

    # Darken towards the outer edge
    ys = np.linspace(-1.0, 1.0, height, dtype=np.float32)[:, None]
    xs = np.linspace(-1.0, 1.0, width, dtype=np.float32)[None, :]
    vignette = 1.0 - 0.35 * np.clip((xs ** 2 + ys ** 2) / 2.0, 0.0, 1.0)

    rng = np.random.default_rng(VINTAGE_GRAIN_SEED)
    grain = rng.normal(0.0, 8.0, size=(height, width)).astype(np.float32)

    pixels = tinted[None, None, :] * vignette[:, :, None] + grain[:, :, None]
    rgba = np.empty((height, width, 4), dtype=np.uint8)
    rgba[:, :, :3] = np.clip(pixels, 0, 255).astype(np.uint8)
    rgba[:, :, 3] = color.a

    canvas = Image.fromarray(rgba, "RGBA")

    if fw > 0:
        x0, y0, x1, y1 = photo_box
        line = _shade(RGBA(*[int(v) for v in tinted], color.a), 0.7)
        ImageDraw.Draw(canvas).rectangle(
            (x0 - 2, y0 - 2, x1 + 2, y1 + 2), outline=tuple(line), width=2
        )
    return canvas


StylePainter = Callable[..., Image.Image]

STYLE_PAINTERS: Dict[FrameStyle, StylePainter] = {
    FrameStyle.Simple: _paint_simple,
    FrameStyle.Shadow: _paint_shadow,
    FrameStyle.Film: _paint_film,
    FrameStyle.Polaroid: _paint_polaroid,
    FrameStyle.Vintage: _paint_vintage,
}


def composite_frame(image: Image.Image, frame_settings: FrameSettings) -> Image.Image:
    """
    Apply the frame. Returns the input untouched when the frame is disabled.

    The canvas is ``(w + 2*fw, h + 2*fw)`` and the photo sits at ``(fw, fw)``.
    """
    if not frame_settings.enabled:
        return image

    img = image if image.mode == "RGBA" else image.convert("RGBA")
    fw = int(round(frame_settings.width))
    size = (img.width + 2 * fw, img.height + 2 * fw)
    photo_box = (fw, fw, fw + img.width - 1, fw + img.height - 1)

    color = parse_color(frame_settings.color, frame_settings.opacity)
    painter = STYLE_PAINTERS[frame_settings.style]
    canvas = painter(size, photo_box, fw, color, frame_settings)

    canvas.alpha_composite(img, dest=(fw, fw))
    logger.debug(f"[Frame] {frame_settings.style.value} frame, width={fw}, canvas={size[0]}x{size[1]}")
    return canvas
