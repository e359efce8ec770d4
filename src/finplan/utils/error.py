import functools
from gspread.utils import convert_hex_to_colors_dict
from typing import Callable
from finplan.utils.logger import logger
from finplan.utils.notify import Notifier
from finplan.utils.timezone import get_current_time, format_timestamp
from finplan.utils.util import to_json
import finplan.const as const


class PlannerError(Exception):
    """Application error carrying structured details (severity, original error, context)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.timestamp = get_current_time()

    @property
    def severity(self) -> str:
        return self.details.get("severity", "low")


# Severities that are routine enough to stay off the Error Log sheet
CONSOLE_ONLY_SEVERITIES = ("info", "warning")

LOG_LEVELS = {
    "info": logger.info,
    "warning": logger.warning,
}


def _severity(error: BaseException) -> str:
    details = getattr(error, "details", None) or {}
    return details.get("severity", "low")


class ErrorService:
    """
    Central error reporting.

    Args:
        notifier: receives the short user-facing message from ``handle``.
        error_sheet: zero-argument callable returning the Error Log worksheet,
            or None to log to the console only.
    """

    def __init__(
        self,
        notifier: Notifier | None = None,
        error_sheet: Callable | None = None,
    ):
        self.notifier = notifier
        self.error_sheet = error_sheet

    def create(self, message: str, **details) -> PlannerError:
        return PlannerError(message, details)

    def log(self, error: BaseException) -> None:
        """Log an error to the console, and to the Error Log sheet unless it is only a warning"""
        self._log_to_console(error)
        if _severity(error) not in CONSOLE_ONLY_SEVERITIES:
            self._log_to_sheet(error)

    def handle(self, error: BaseException, user_message: str | None = None) -> None:
        """Log an error and show a short message to the user"""
        self.log(error)
        if self.notifier is not None:
            self.notifier.error("Error", user_message or str(error))

    def wrap(self, fn: Callable, user_message: str | None = None) -> Callable:
        """Wrap ``fn`` so failures are handled, then re-raised"""

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except Exception as e:
                self.handle(
                    e, user_message or "An error occurred while performing the operation."
                )
                raise

        return wrapper

    def _log_to_console(self, error: BaseException) -> None:
        details = getattr(error, "details", None)
        name = type(error).__name__
        log = LOG_LEVELS.get(_severity(error), logger.error)
        if details:
            log(f"[{name}] {error} | details: {to_json(details)}")
        else:
            log(f"[{name}] {error}")
        if error.__traceback__ is not None:
            logger.debug("Traceback:", exc_info=error)

    def _log_to_sheet(self, error: BaseException) -> None:
        if self.error_sheet is None:
            return
        try:
            sheet = self.error_sheet()
            details = getattr(error, "details", {}) or {}
            timestamp = format_timestamp(getattr(error, "timestamp", None))
            sheet.append_row(
                [
                    timestamp,
                    type(error).__name__,
                    str(error),
                    to_json(details),
                ]
            )
            severity = details.get("severity", "low")
            background = const.SEVERITY_BACKGROUNDS.get(
                severity, const.SEVERITY_BACKGROUNDS["low"]
            )
            last_row = len(sheet.get_all_values())
            sheet.format(
                f"A{last_row}:D{last_row}",
                {"backgroundColor": convert_hex_to_colors_dict(background)},
            )
        except Exception as log_error:
            logger.error(f"Failed to log error to sheet: {log_error}")
            logger.error(f"Original error: {error}")
