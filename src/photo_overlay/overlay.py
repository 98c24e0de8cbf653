"""
Overlay compositor: draws the metadata text panel onto an image.
"""
from typing import Tuple

from PIL import Image, ImageDraw
from loguru import logger

from photo_overlay.color import parse_color
from photo_overlay.models import DisplayItems, OverlayPosition, OverlaySettings, PhotoMetadata
from photo_overlay.text_layout import layout_text, resolve_font


def generate_overlay_text(metadata: PhotoMetadata, display_items: DisplayItems) -> str:
    """
    Project metadata through the display toggles.

    Line order is fixed: brand, model, aperture, shutter speed, ISO, timestamp.
    Fields that are toggled off or missing are left out.
    """
    camera = metadata.camera
    settings = metadata.settings

    candidates = [
        (display_items.brand, camera.make),
        (display_items.model, camera.model),
        (display_items.aperture, settings.aperture),
        (display_items.shutter_speed, settings.shutter_speed),
        (display_items.iso, None if settings.iso is None else f"ISO {settings.iso}"),
        (display_items.timestamp, metadata.timestamp),
    ]
    lines = [value for enabled, value in candidates if enabled and value]
    return "\n".join(lines)


def calculate_overlay_position(
    position: OverlayPosition,
    img_width: int,
    img_height: int,
    text_width: int,
    text_height: int,
    padding: int,
) -> Tuple[int, int]:
    """
    Top-left corner of the overlay panel for a corner anchor.

    Right/bottom anchors subtract the text size from the image size; the
    result is clamped at zero when the text is larger than the image.
    """
    right = max(0, img_width - text_width - padding)
    bottom = max(0, img_height - text_height - padding)

    if position is OverlayPosition.TopLeft:
        return padding, padding
    if position is OverlayPosition.TopRight:
        return right, padding
    if position is OverlayPosition.BottomLeft:
        return padding, bottom
    return right, bottom


def composite_overlay(image: Image.Image, metadata: PhotoMetadata, overlay_settings: OverlaySettings) -> Image.Image:
    """
    Draw the background panel and metadata text, returning a new RGBA image.

    The caller's image is never modified.
    """
    if image.mode != "RGBA":
        img = image.convert("RGBA")
    else:
        img = image.copy()

    text = generate_overlay_text(metadata, overlay_settings.display_items)
    if not text:
        return img

    font_settings = overlay_settings.font
    background = overlay_settings.background

    # Parse colors before touching fonts so bad settings always surface
    font_color = parse_color(font_settings.color, 1.0)
    bg_color = parse_color(background.color, background.opacity) if background.opacity > 0 else None

    font = resolve_font(font_settings.size)
    if font is None:
        logger.debug(f"📝 Text would be: {text!r}")
        return img

    layout = layout_text(font, font_settings.size, text, font_settings.weight)
    if layout.is_empty:
        return img

    padding = int(round(background.padding))
    x, y = calculate_overlay_position(
        overlay_settings.position,
        img.width,
        img.height,
        layout.width,
        layout.height,
        padding,
    )

    if bg_color is not None:
        panel = Image.new("RGBA", img.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(panel)
        box = (
            x,
            y,
            x + layout.width + 2 * padding - 1,
            y + layout.height + 2 * padding - 1,
        )
        radius = int(round(background.corner_radius))
        if radius > 0:
            draw.rounded_rectangle(box, radius=radius, fill=tuple(bg_color))
        else:
            draw.rectangle(box, fill=tuple(bg_color))
        img = Image.alpha_composite(img, panel)

    text_layer = Image.new("RGBA", img.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(text_layer)
    for line, (ox, oy) in zip(layout.lines, layout.origins):
        draw.text(
            (x + padding + ox, y + padding + oy),
            line,
            font=font,
            fill=tuple(font_color),
            anchor="la",
            stroke_width=layout.stroke_width,
            stroke_fill=tuple(font_color),
        )
    img = Image.alpha_composite(img, text_layer)

    logger.debug(f"✅ Rendered overlay text ({len(layout.lines)} lines) at ({x}, {y})")
    return img
