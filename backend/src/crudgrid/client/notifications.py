"""Dismissible notifications for errors and confirmations."""

import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from crudgrid.core.exceptions import ErrorKind, error_kind

logger = logging.getLogger(__name__)


class Level(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    id: int
    level: Level
    message: str
    kind: Optional[ErrorKind] = None


USER_MESSAGES = {
    ErrorKind.NETWORK: "Network error. Please check your connection and try again.",
    ErrorKind.FETCH: "Unable to load data. Please check your connection and try again.",
    ErrorKind.AUTH_EXPIRED: "Your session has expired. Please log in again.",
}


def user_message(error: BaseException) -> str:
    """Text to show for an error that reached the UI."""
    kind = error_kind(error)
    if kind in USER_MESSAGES:
        return USER_MESSAGES[kind]
    return str(error) or "Something went wrong. Please try again."


class NotificationCenter:
    """Holds notifications until they are dismissed."""

    def __init__(self):
        self._ids = itertools.count(1)
        self._active: List[Notification] = []

    def push(self, message: str, level: Level = Level.INFO, kind: Optional[ErrorKind] = None) -> Notification:
        notification = Notification(next(self._ids), level, message, kind)
        self._active.append(notification)
        return notification

    def success(self, message: str) -> Notification:
        return self.push(message, Level.SUCCESS)

    def error(self, error: BaseException) -> Notification:
        logger.info(f"Notifying {error_kind(error).value} error: {error}")
        return self.push(user_message(error), Level.ERROR, error_kind(error))

    def dismiss(self, notification_id: int) -> None:
        self._active = [n for n in self._active if n.id != notification_id]

    def clear(self) -> None:
        self._active = []

    def active(self) -> Tuple[Notification, ...]:
        return tuple(self._active)
