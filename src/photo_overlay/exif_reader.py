"""
Default metadata extractor.

Reads already-decoded EXIF tag values through pyexiv2 and turns them into a
PhotoMetadata record. The render engine never calls this directly; it is
injected into the batch renderer and the host boundary.
"""
import os
from typing import Optional

import pyexiv2
from loguru import logger

from photo_overlay.errors import ExtractionError
from photo_overlay.models import CameraInfo, CameraSettings, LocationInfo, PhotoMetadata


def parse_rational(value) -> Optional[float]:
    """'28/10' -> 2.8, '100' -> 100.0; None when unparsable."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        if '/' in text:
            num, denom = map(float, text.split('/', 1))
            return num / denom if denom != 0 else None
        return float(text)
    except ValueError:
        return None


def format_aperture(value) -> Optional[str]:
    f_number = parse_rational(value)
    if not f_number:
        return None
    return f"f/{f_number:.1f}"


def format_shutter_speed(value) -> Optional[str]:
    exposure = parse_rational(value)
    if not exposure:
        return None
    if exposure >= 1.0:
        return f"{int(exposure)}s"
    return f"1/{int(round(1.0 / exposure))}"


def format_focal_length(value) -> Optional[str]:
    focal = parse_rational(value)
    if not focal:
        return None
    return f"{focal:.0f}mm"


def parse_gps_coordinate(value, reference) -> Optional[float]:
    """'35/1 40/1 3000/100' + 'N' -> 35.675 (S and W are negative)."""
    if not value or not reference:
        return None
    parts = [parse_rational(p) for p in str(value).split()]
    if len(parts) < 3 or any(p is None for p in parts[:3]):
        return None
    degrees, minutes, seconds = parts[:3]
    coordinate = degrees + minutes / 60.0 + seconds / 3600.0
    if str(reference).strip().upper() in ('S', 'W'):
        coordinate = -coordinate
    return coordinate


def _text(exif: dict, tag: str) -> Optional[str]:
    value = exif.get(tag)
    if value is None:
        return None
    value = str(value).strip().rstrip('\x00').strip()
    return value or None


def _iso(exif: dict) -> Optional[int]:
    raw = _text(exif, 'Exif.Photo.ISOSpeedRatings') or _text(exif, 'Exif.Photo.PhotographicSensitivity')
    if raw is None:
        return None
    try:
        # Multi-valued tags come back space separated
        return int(raw.split()[0])
    except ValueError:
        return None


def metadata_from_exif(exif: dict) -> PhotoMetadata:
    """Build PhotoMetadata from a pyexiv2-style ``{tag: value}`` mapping."""
    location = None
    latitude = parse_gps_coordinate(exif.get('Exif.GPSInfo.GPSLatitude'), exif.get('Exif.GPSInfo.GPSLatitudeRef'))
    longitude = parse_gps_coordinate(exif.get('Exif.GPSInfo.GPSLongitude'), exif.get('Exif.GPSInfo.GPSLongitudeRef'))
    if latitude is not None and longitude is not None:
        # Reverse geocoding is out of scope, address stays empty
        location = LocationInfo(latitude=latitude, longitude=longitude)

    return PhotoMetadata(
        camera=CameraInfo(
            make=_text(exif, 'Exif.Image.Make'),
            model=_text(exif, 'Exif.Image.Model'),
        ),
        settings=CameraSettings(
            aperture=format_aperture(exif.get('Exif.Photo.FNumber')),
            shutter_speed=format_shutter_speed(exif.get('Exif.Photo.ExposureTime')),
            iso=_iso(exif),
            focal_length=format_focal_length(exif.get('Exif.Photo.FocalLength')),
        ),
        timestamp=_text(exif, 'Exif.Image.DateTime') or _text(exif, 'Exif.Photo.DateTimeOriginal'),
        location=location,
    )


def extract_metadata(path: str) -> PhotoMetadata:
    """
    Read EXIF metadata from an image file.

    Raises:
        ExtractionError: missing file or unreadable EXIF block
    """
    if not os.path.isfile(path):
        raise ExtractionError(f"Failed to open file: {path}", path=path)

    exif_img = None
    try:
        exif_img = pyexiv2.Image(path)
        exif = exif_img.read_exif()
    except Exception as e:
        # pyexiv2 raises bare RuntimeError / Exception subclasses from exiv2
        logger.error(f"  ❌ [EXIF Error] {path}: {e}")
        raise ExtractionError(f"Failed to read EXIF data from {path}: {e}", path=path) from e
    finally:
        if exif_img is not None:
            exif_img.close()

    return metadata_from_exif(exif)
