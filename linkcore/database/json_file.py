"""JSON file storage backend.

Each collection lives in its own file inside ``directory`` (``users.json``,
``links.json``). Writes go to a temporary file which then replaces the target,
so a crash never leaves a half-written collection behind.
"""

import json
import logging
import os
import tempfile
from typing import List, Dict, Any, Optional

from .base import RegistryStorageBase


class JsonFileStorage(RegistryStorageBase):
    """Storage backend writing one JSON document per collection."""

    name = "json"

    USERS_FILE = "users.json"
    LINKS_FILE = "links.json"

    def __init__(self, directory: str, logger: Optional[logging.Logger] = None):
        """Initialize JSON file storage.

        Args:
            directory: Directory holding the collection files
            logger: Optional logger instance
        """
        super().__init__(directory)
        self.directory = directory
        self.logger = logger or logging.getLogger(__name__)

    async def open(self) -> None:
        os.makedirs(self.directory, exist_ok=True)
        self.logger.info(f"Using JSON storage in {os.path.abspath(self.directory)}")

    def _path(self, filename: str) -> str:
        return os.path.join(self.directory, filename)

    def _read(self, filename: str) -> List[Dict[str, Any]]:
        path = self._path(filename)
        if not os.path.exists(path):
            return []
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"{path} does not contain a JSON list")
        return data

    def _write(self, filename: str, records: List[Dict[str, Any]]) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{filename}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self._path(filename))
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    async def load_users(self) -> List[Dict[str, Any]]:
        return self._read(self.USERS_FILE)

    async def load_links(self) -> List[Dict[str, Any]]:
        return self._read(self.LINKS_FILE)

    async def save_users(self, users: List[Dict[str, Any]]) -> None:
        self._write(self.USERS_FILE, users)
        self.logger.debug(f"Wrote {len(users)} users to {self.USERS_FILE}")

    async def save_links(self, links: List[Dict[str, Any]]) -> None:
        self._write(self.LINKS_FILE, links)
        self.logger.debug(f"Wrote {len(links)} links to {self.LINKS_FILE}")

    async def close(self) -> None:
        pass

    async def health_check(self) -> bool:
        return os.path.isdir(self.directory) and os.access(self.directory, os.W_OK)
