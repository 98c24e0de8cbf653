"""
Unified logging module.
Configures loguru once at import: console output plus a rotating log file.
"""
from typing import Optional
from loguru import logger
import sys
from pathlib import Path


def get_log_file_path() -> str:
    """Return the log file path, creating the log directory if needed."""
    log_dir = Path.home() / ".photo_overlay" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return str(log_dir / "photo_overlay.log")


logger.remove()

# Console only shows INFO and above; DEBUG goes to the file
if sys.stderr is not None:
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level="INFO",
        colorize=True
    )

try:
    logger.add(
        get_log_file_path(),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}",
        level="DEBUG",
        rotation="1 day",
        retention="7 days",
        compression="zip",
        encoding="utf-8"
    )
except OSError as e:
    # Read-only home (CI sandboxes, containers): console logging only
    logger.warning(f"File logging disabled: {e}")


class LoguruHandler:
    """
    Thin wrapper around loguru that tags every message with a file id,
    so per-item logs of a batch can be told apart.
    """

    def __init__(self, file_id: Optional[str] = None):
        self.file_id = file_id

    def _format_message(self, message: str) -> str:
        if self.file_id:
            return f"[{self.file_id}] {message}"
        return message

    def _output(self, message: str, level: str = "INFO"):
        formatted_msg = self._format_message(message)
        # depth=2 reports the caller of info()/error(), not this wrapper
        logger.opt(depth=2).log(level, formatted_msg)

    def log(self, message: str, level: str = "INFO"):
        self._output(message, level.upper())

    def info(self, message: str):
        self._output(message, "INFO")

    def error(self, message: str):
        self._output(message, "ERROR")

    def success(self, message: str):
        self._output(message, "SUCCESS")

    def warning(self, message: str):
        self._output(message, "WARNING")

    def debug(self, message: str):
        self._output(message, "DEBUG")


def create_logger(file_id: Optional[str] = None) -> LoguruHandler:
    """
    Factory for a tagged logger.

    Args:
        file_id: identifier prefixed to every message (usually a file name)

    Returns:
        LoguruHandler instance
    """
    return LoguruHandler(file_id)


Logger = LoguruHandler
