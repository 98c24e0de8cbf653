"""
Crash handler for the command line entry point.
Routes uncaught exceptions and fatal signals into the loguru log file.
"""
import sys
import platform
import faulthandler
from datetime import datetime
from loguru import logger


class CrashHandler:
    """Process-wide crash hooks, reported through loguru"""

    def __init__(self):
        from photo_overlay.logger import get_log_file_path
        self.main_log_file = get_log_file_path()
        self.installed = False
        self._previous_hook = None

    def install(self):
        if self.installed:
            return

        try:
            # Dumps native tracebacks (segfaults inside codecs) to stderr
            faulthandler.enable()
        except (RuntimeError, ValueError) as e:
            logger.warning(f"⚠️  Failed to enable faulthandler: {e}")

        self._previous_hook = sys.excepthook
        sys.excepthook = self._exception_hook
        self._log_system_info()

        self.installed = True
        logger.debug("✅ Crash handler installed")

    def uninstall(self):
        if not self.installed:
            return
        sys.excepthook = self._previous_hook or sys.__excepthook__
        self.installed = False

    def _exception_hook(self, exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        logger.opt(exception=(exc_type, exc_value, exc_traceback)).critical(
            f"❌ UNHANDLED EXCEPTION at {datetime.now().isoformat()}: {exc_type.__name__}: {exc_value}"
        )
        logger.critical(f"Crash log saved to: {self.main_log_file}")

    def _log_system_info(self):
        logger.debug(f"Platform: {platform.platform()} ({platform.machine()})")
        logger.debug(f"Python: {platform.python_implementation()} {sys.version.split()[0]}")
        logger.debug(f"Main Log File: {self.main_log_file}")


_crash_handler = None


def install_crash_handler() -> CrashHandler:
    global _crash_handler
    if _crash_handler is None:
        _crash_handler = CrashHandler()
        _crash_handler.install()
    return _crash_handler
