"""In-memory storage backend."""

import copy
from typing import List, Dict, Any

from .base import RegistryStorageBase


class InMemoryStorage(RegistryStorageBase):
    """Keeps collections in process memory. Each instance is isolated."""

    name = "memory"

    def __init__(self, users: List[Dict[str, Any]] = None, links: List[Dict[str, Any]] = None):
        super().__init__("memory://")
        self._users = copy.deepcopy(users or [])
        self._links = copy.deepcopy(links or [])
        self.save_count = 0

    async def load_users(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._users)

    async def load_links(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._links)

    async def save_users(self, users: List[Dict[str, Any]]) -> None:
        self._users = copy.deepcopy(users)
        self.save_count += 1

    async def save_links(self, links: List[Dict[str, Any]]) -> None:
        self._links = copy.deepcopy(links)
        self.save_count += 1

    async def close(self) -> None:
        pass

    async def health_check(self) -> bool:
        return True
