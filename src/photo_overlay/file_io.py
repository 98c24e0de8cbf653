"""
Image input / output.
Decodes the supported input formats and encodes renders by output extension.
"""
import io
import os
import tempfile

from PIL import Image, UnidentifiedImageError
import pillow_heif
import rawpy
from loguru import logger

from photo_overlay import config
from photo_overlay.errors import DecodeError, EncodeError, IoError
from photo_overlay.models import OutputFormat

# HEIC / HEIF inputs open through the regular Image.open path
pillow_heif.register_heif_opener()


def validate_image_file(path: str) -> bool:
    """True when the file extension is a supported input format."""
    ext = os.path.splitext(path)[1].lower()
    return ext in config.SUPPORTED_INPUT_EXTENSIONS


def output_format_for(output_path: str) -> OutputFormat:
    """.png is lossless; .jpg/.jpeg and anything unrecognized are JPEG."""
    ext = os.path.splitext(output_path)[1].lower()
    if ext == '.png':
        return OutputFormat.Png
    return OutputFormat.Jpeg


def file_size(path: str) -> int:
    try:
        return os.path.getsize(path)
    except OSError as e:
        raise IoError(f"Failed to get metadata for {path}: {e}", path=path)


def _decode_raw(path: str) -> Image.Image:
    """Demosaic a camera RAW file into 8-bit sRGB."""
    try:
        with rawpy.imread(path) as raw:
            rgb = raw.postprocess(
                use_camera_wb=True,
                no_auto_bright=False,
                output_bps=8,
                output_color=rawpy.ColorSpace.sRGB,
            )
    except rawpy.LibRawError as e:
        raise DecodeError(f"Failed to decode RAW image {path}: {e}", path=path)

    return Image.fromarray(rgb).convert("RGBA")


def load_image(path: str) -> Image.Image:
    """
    Decode an input image into a fresh RGBA buffer owned by the caller.

    Raises:
        IoError: missing / unreadable file
        DecodeError: corrupt or unsupported image data
    """
    if not os.path.isfile(path):
        raise IoError(f"Failed to open image: {path} (no such file)", path=path)

    ext = os.path.splitext(path)[1].lower()
    if ext in config.RAW_EXTENSIONS:
        logger.debug(f"[Decode] RAW: {os.path.basename(path)}")
        return _decode_raw(path)

    try:
        with Image.open(path) as im:
            im.load()
            return im.convert("RGBA")
    except (PermissionError, IsADirectoryError) as e:
        raise IoError(f"Failed to open image: {path} ({e})", path=path)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeError(f"Failed to decode image: {path} ({e})", path=path)


def encode_image(img: Image.Image, fmt: OutputFormat, quality: int = 90) -> bytes:
    """
    Encode to bytes in memory.

    JPEG drops the alpha channel and honours quality; PNG keeps RGBA.
    """
    buffer = io.BytesIO()
    try:
        if fmt is OutputFormat.Png:
            img.save(buffer, format='PNG')
        else:
            img.convert('RGB').save(buffer, format='JPEG', quality=int(quality), optimize=True)
    except (OSError, ValueError) as e:
        raise EncodeError(f"Failed to encode {fmt.value} image: {e}")
    return buffer.getvalue()


def save_image(img: Image.Image, output_path: str, quality: int = 90) -> int:
    """
    Encode by extension and write atomically.

    The bytes go to a temporary file next to the target and are moved into
    place with os.replace, so readers never see a truncated output.

    Returns:
        number of bytes written
    """
    fmt = output_format_for(output_path)
    data = encode_image(img, fmt, quality)

    target_dir = os.path.dirname(os.path.abspath(output_path))
    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(
            dir=target_dir,
            prefix=f".{os.path.basename(output_path)}.",
            suffix=".part",
        )
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        os.replace(tmp_path, output_path)
        tmp_path = None
    except OSError as e:
        raise IoError(f"Failed to write image to {output_path}: {e}", path=output_path)
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.remove(tmp_path)

    logger.debug(f"  Format: {fmt.value}, {len(data)} bytes -> {output_path}")
    return len(data)
