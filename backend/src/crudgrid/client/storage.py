"""Session-scoped key/value storage for client state."""

import logging
import os
import re
from abc import ABC, abstractmethod
from typing import Dict, Optional

from crudgrid.core.config import ClientSettings

logger = logging.getLogger(__name__)


class SessionStorage(ABC):
    """String values under string keys that live as long as the session."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        pass


class MemorySessionStorage(SessionStorage):
    """Storage that ends with the process."""

    def __init__(self):
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileSessionStorage(SessionStorage):
    """One file per key inside a session directory.

    Survives reloads of the client while the directory exists; ``end_session``
    removes everything.
    """

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, key: str) -> str:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return os.path.join(self.directory, f"{safe}.json")

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(value)
        os.replace(tmp_path, path)

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        if os.path.exists(path):
            os.remove(path)

    def end_session(self) -> None:
        for name in os.listdir(self.directory):
            if name.endswith(".json"):
                os.remove(os.path.join(self.directory, name))
        logger.info(f"Cleared session storage in {self.directory}")


def create_session_storage(settings: ClientSettings) -> SessionStorage:
    """File-backed storage when a session directory is configured, memory otherwise."""
    if settings.session_dir:
        return FileSessionStorage(settings.session_dir)
    return MemorySessionStorage()
