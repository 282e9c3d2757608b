"""Pytest configuration and fixtures."""

import pytest
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

from linkcore import (
    BulkService,
    ClickAccountingEngine,
    GuestSessionPolicy,
    IdentityService,
    LinkRegistryService,
    RegistryStore,
    ShortCodeGenerator,
)
from linkcore.database import InMemoryStorage
from linkcore.models import Actor, User, UserRole
from linkcore.common.logging_config import setup_logging
from linkcore.common.passwords import hash_password


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture
def logger():
    """Create test logger."""
    return setup_logging(level="DEBUG")


@pytest.fixture
def clock():
    return ManualClock(datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
async def store(storage, clock, logger) -> AsyncGenerator[RegistryStore, None]:
    """Open registry store over in-memory storage."""
    registry_store = RegistryStore(storage, clock=clock, logger=logger)
    await registry_store.open()

    yield registry_store

    await registry_store.close()


@pytest.fixture
def short_code_generator():
    """Create short code generator."""
    return ShortCodeGenerator(default_length=6)


@pytest.fixture
def links(store, short_code_generator, logger) -> LinkRegistryService:
    return LinkRegistryService(store, short_code_generator=short_code_generator, logger=logger)


@pytest.fixture
def identity(store, logger) -> IdentityService:
    return IdentityService(store, logger=logger)


@pytest.fixture
def clicks(store, logger) -> ClickAccountingEngine:
    return ClickAccountingEngine(store, logger=logger)


@pytest.fixture
def guests(links, logger) -> GuestSessionPolicy:
    return GuestSessionPolicy(links, logger=logger)


@pytest.fixture
def bulk(store, links, logger) -> BulkService:
    return BulkService(store, links, logger=logger)


@pytest.fixture
def make_user(store):
    """Insert an account directly, bypassing role checks (for bootstrapping OWNERs)."""

    async def _make_user(email: str, role: UserRole = UserRole.USER, password: str = "secret") -> User:
        async with store.transaction() as tx:
            user = User(
                id=store.new_id("user"),
                email=email,
                name=email.split("@")[0],
                role=role,
                credential=hash_password(password),
                created_at=tx.now,
            )
            tx.put_user(user)
        return user

    return _make_user


@pytest.fixture
async def owner(make_user) -> Actor:
    return Actor.from_user(await make_user("owner@example.com", UserRole.OWNER))


@pytest.fixture
async def admin(make_user) -> Actor:
    return Actor.from_user(await make_user("admin@example.com", UserRole.ADMIN))


@pytest.fixture
async def member(make_user) -> Actor:
    return Actor.from_user(await make_user("member@example.com", UserRole.USER))


@pytest.fixture
def sample_urls():
    """Sample URLs for testing."""
    return [
        "https://example.com/test",
        "https://github.com/user/repo",
        "https://stackoverflow.com/questions/123456",
    ]
