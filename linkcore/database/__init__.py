"""Storage backends for the link registry."""

from .base import RegistryStorageBase
from .memory import InMemoryStorage
from .json_file import JsonFileStorage
from .redis_store import RedisStorage
from .postgres import PostgresStorage

__all__ = [
    "RegistryStorageBase",
    "InMemoryStorage",
    "JsonFileStorage",
    "RedisStorage",
    "PostgresStorage",
]
