"""
Error taxonomy shared by every component.
Each error carries a machine-readable category for the host boundary.
"""
from enum import Enum
from typing import Optional


class ErrorCategory(Enum):
    EXTRACTION = "extraction"
    DECODE = "decode"
    INVALID_COLOR = "invalid_color"
    FONT_UNAVAILABLE = "font_unavailable"
    ENCODE = "encode"
    IO = "io"
    ENGINE = "engine"
    INVALID_SETTINGS = "invalid_settings"


class OverlayError(Exception):
    """Base class: human-readable message + category (+ offending path)"""
    category = ErrorCategory.ENGINE

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def to_dict(self) -> dict:
        return {
            'category': self.category.value,
            'message': self.message,
            'path': self.path,
        }


class ExtractionError(OverlayError):
    """Metadata extraction failed; terminal for that image"""
    category = ErrorCategory.EXTRACTION


class InvalidColorFormat(OverlayError, ValueError):
    category = ErrorCategory.INVALID_COLOR

    def __init__(self, color_text: str, reason: str = ""):
        message = (
            f"Invalid color format: {color_text!r}. "
            f"Supported formats: rgba(r,g,b,a), rgb(r,g,b), #RRGGBB"
        )
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.color_text = color_text


class InvalidSettings(OverlayError, ValueError):
    category = ErrorCategory.INVALID_SETTINGS


class FontUnavailable(OverlayError):
    """No usable font; callers degrade by skipping text"""
    category = ErrorCategory.FONT_UNAVAILABLE


class RenderError(OverlayError):
    """Base for failures inside the render pipeline"""


class DecodeError(RenderError):
    category = ErrorCategory.DECODE


class EncodeError(RenderError):
    category = ErrorCategory.ENCODE


class IoError(RenderError):
    category = ErrorCategory.IO


class EngineError(OverlayError):
    """Cache or concurrency join failure"""
    category = ErrorCategory.ENGINE
