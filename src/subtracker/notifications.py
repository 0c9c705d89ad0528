"""User-facing notifications for one-shot actions."""
import logging

logger = logging.getLogger(__name__)


class Notifier:
    def success(self, message: str) -> None:
        raise NotImplementedError()

    def error(self, message: str) -> None:
        raise NotImplementedError()


class LogNotifier(Notifier):
    """Sends notifications to the application log (headless use, the HTTP API)."""

    def success(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.error(message)
