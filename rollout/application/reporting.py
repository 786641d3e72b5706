"""
Status Reporting

Architectural Intent:
- Port for the human-readable status lines tasks emit (info/comment/error)
- Presentation supplies a console implementation; the default logs
- `line` carries raw material: pretend-mode commands and verbose command output
"""

from abc import ABC, abstractmethod
import logging

logger = logging.getLogger(__name__)


class StatusReporter(ABC):
    @abstractmethod
    def info(self, message: str) -> None:
        pass

    @abstractmethod
    def comment(self, message: str) -> None:
        pass

    @abstractmethod
    def error(self, message: str) -> None:
        pass

    @abstractmethod
    def line(self, message: str) -> None:
        pass


class LoggingReporter(StatusReporter):
    """Routes status lines into the rollout logger tree."""

    def info(self, message: str) -> None:
        logger.info(message)

    def comment(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.error(message)

    def line(self, message: str) -> None:
        logger.info(message)
