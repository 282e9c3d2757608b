"""Abstract base class for registry storage backends."""

from abc import ABC, abstractmethod
from typing import List, Dict, Any


class RegistryStorageBase(ABC):
    """Abstract base class for persisting the users and links collections.

    Each collection is loaded and saved as a whole list of plain dictionaries,
    so backends stay independent of the model classes.
    """

    name = "base"

    def __init__(self, db_config: str = ""):
        """Initialize storage.

        Args:
            db_config: Backend-specific connection string or path
        """
        self.db_config = db_config

    async def open(self) -> None:
        """Prepare the backend (connect, create files/tables)."""

    @abstractmethod
    async def load_users(self) -> List[Dict[str, Any]]:
        """Load the users collection.

        Returns:
            List of user dictionaries (empty if nothing was stored yet)
        """
        pass

    @abstractmethod
    async def load_links(self) -> List[Dict[str, Any]]:
        """Load the links collection.

        Returns:
            List of link dictionaries (empty if nothing was stored yet)
        """
        pass

    @abstractmethod
    async def save_users(self, users: List[Dict[str, Any]]) -> None:
        """Replace the stored users collection.

        Args:
            users: Complete list of user dictionaries
        """
        pass

    @abstractmethod
    async def save_links(self, links: List[Dict[str, Any]]) -> None:
        """Replace the stored links collection.

        Args:
            links: Complete list of link dictionaries
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close backend connections."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the backend is healthy.

        Returns:
            True if healthy, False otherwise
        """
        pass
