"""User-facing cart notifications (toasts)."""
from enum import Enum
from typing import Callable, List, Optional, Tuple

from shoecart.logging import get_logger

logger = get_logger(__name__)


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


Handler = Callable[[NotificationLevel, str], None]


class Notifier:
    """
    Routes cart messages to the UI.

    The UI passes a handler (e.g. its toast function). Messages are also
    logged, and the last few are kept for views that render them later.
    """

    def __init__(self, handler: Optional[Handler] = None, history_size: int = 20):
        self.handler = handler
        self.history_size = history_size
        self.history: List[Tuple[NotificationLevel, str]] = []

    def success(self, message: str) -> None:
        logger.info(f"Cart: {message}")
        self._emit(NotificationLevel.SUCCESS, message)

    def error(self, message: str) -> None:
        logger.warning(f"Cart: {message}")
        self._emit(NotificationLevel.ERROR, message)

    def _emit(self, level: NotificationLevel, message: str) -> None:
        self.history.append((level, message))
        del self.history[:-self.history_size]
        if self.handler is None:
            return
        try:
            self.handler(level, message)
        except Exception as e:
            logger.error(f"Notification handler failed: {e}", exc_info=True)
