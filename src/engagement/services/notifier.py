"""User-visible feedback for mutating actions (toasts, banners)."""
import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Receives the confirmation or error message of every bookmark/like action."""

    def success(self, message: str) -> None: ...  # noqa: D102

    def error(self, message: str) -> None: ...  # noqa: D102


class LoggingNotifier:
    """Notifier used when no UI is attached; messages go to the log."""

    def success(self, message: str) -> None:
        """Log a confirmation."""
        logger.info("user_notice level=success message=%s", message)

    def error(self, message: str) -> None:
        """Log an error shown to the user."""
        logger.warning("user_notice level=error message=%s", message)
