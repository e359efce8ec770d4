from dataclasses import dataclass, asdict
from finplan.utils.logger import logger


@dataclass
class Notification:
    title: str
    message: str
    level: str = "info"


class Notifier:
    """Collects user-facing messages for the current request.

    The workbook trigger shows each entry as a toast, so messages stay short
    and non-technical; diagnostics belong in the logger.
    """

    def __init__(self):
        self.notifications: list[Notification] = []

    def _push(self, title: str, message: str, level: str) -> None:
        logger.info(f"[{level}] {title}: {message}")
        self.notifications.append(Notification(title, message, level))

    def success(self, message: str, title: str = "Success") -> None:
        self._push(title, message, "success")

    def info(self, title: str, message: str) -> None:
        self._push(title, message, "info")

    def error(self, title: str, message: str) -> None:
        self._push(title, message, "error")

    def drain(self) -> list[dict]:
        """Return pending notifications as dicts and forget them"""
        pending = [asdict(n) for n in self.notifications]
        self.notifications = []
        return pending
