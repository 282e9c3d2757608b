"""Registry store: the single shared resource behind every component.

The store keeps the committed users/links state in memory and persists it
through a storage backend. All mutations go through ``transaction()``, which
holds one writer lock for the whole registry, works on a private copy of the
state and swaps it in only after the backend accepted the write. Reads never
take the lock; they look at the committed state, which is replaced in a
single assignment, so they cannot observe a half-applied update.
"""

import asyncio
import logging
import secrets
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, AsyncIterator

from .database.base import RegistryStorageBase
from .models import User, ShortLink


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RegistryState:
    """Users and links keyed by id, plus the slug index."""

    def __init__(
        self,
        users: Optional[Dict[str, User]] = None,
        links: Optional[Dict[str, ShortLink]] = None,
    ):
        self.users: Dict[str, User] = users or {}
        self.links: Dict[str, ShortLink] = links or {}
        self.slugs: Dict[str, str] = {link.slug: link.id for link in self.links.values()}

    @classmethod
    def build(cls, users: Iterable[User], links: Iterable[ShortLink]) -> "RegistryState":
        return cls(
            users={user.id: user for user in users},
            links={link.id: link for link in links},
        )

    def fork(self) -> "RegistryState":
        """Shallow copy; records themselves are replaced, never mutated in place."""
        state = RegistryState.__new__(RegistryState)
        state.users = dict(self.users)
        state.links = dict(self.links)
        state.slugs = dict(self.slugs)
        return state


class Transaction:
    """Mutable view over a forked state, valid inside ``RegistryStore.transaction``."""

    def __init__(self, state: RegistryState, now: datetime):
        self.state = state
        self.now = now
        self.users_changed = False
        self.links_changed = False

    # Users

    def get_user(self, user_id: str) -> Optional[User]:
        user = self.state.users.get(user_id)
        return _copy_user(user) if user else None

    def find_user_by_email(self, email: str) -> Optional[User]:
        for user in self.state.users.values():
            if user.email == email:
                return _copy_user(user)
        return None

    def put_user(self, user: User) -> None:
        self.state.users[user.id] = user
        self.users_changed = True

    def remove_user(self, user_id: str) -> bool:
        if self.state.users.pop(user_id, None) is None:
            return False
        self.users_changed = True
        return True

    # Links

    def get_link(self, link_id: str) -> Optional[ShortLink]:
        link = self.state.links.get(link_id)
        return link.copy() if link else None

    def get_link_by_slug(self, slug: str) -> Optional[ShortLink]:
        link_id = self.state.slugs.get(slug)
        return self.get_link(link_id) if link_id else None

    def slug_exists(self, slug: str) -> bool:
        return slug in self.state.slugs

    def links(self) -> List[ShortLink]:
        return [link.copy() for link in self.state.links.values()]

    def put_link(self, link: ShortLink) -> None:
        """Insert or replace a link, keeping the slug index in sync."""
        previous = self.state.links.get(link.id)
        if previous is not None and previous.slug != link.slug:
            self.state.slugs.pop(previous.slug, None)
        owner = self.state.slugs.get(link.slug)
        if owner is not None and owner != link.id:
            raise RuntimeError(f"Slug index conflict for '{link.slug}'")
        self.state.links[link.id] = link
        self.state.slugs[link.slug] = link.id
        self.links_changed = True

    def remove_link(self, link_id: str) -> bool:
        link = self.state.links.pop(link_id, None)
        if link is None:
            return False
        self.state.slugs.pop(link.slug, None)
        self.links_changed = True
        return True


def _copy_user(user: User) -> User:
    return User(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        credential=user.credential,
        created_at=user.created_at,
    )


def _user_rows(state: RegistryState) -> List[dict]:
    return [user.to_dict(include_credential=True) for user in state.users.values()]


def _link_rows(state: RegistryState) -> List[dict]:
    return [link.to_dict() for link in state.links.values()]


class RegistryStore:
    """Explicit, injectable store for users and links."""

    def __init__(
        self,
        storage: RegistryStorageBase,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize the store.

        Args:
            storage: Persistence backend
            clock: Optional callable returning the current aware datetime
            logger: Optional logger
        """
        self.storage = storage
        self.clock = clock or utc_now
        self.logger = logger or logging.getLogger(__name__)
        self._state = RegistryState()
        self._lock = asyncio.Lock()
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    async def open(self) -> None:
        """Open the backend and load both collections."""
        if self._open:
            return
        await self.storage.open()
        users = [User.from_dict(item) for item in await self.storage.load_users()]
        links = [ShortLink.from_dict(item) for item in await self.storage.load_links()]
        self._state = RegistryState.build(users, links)
        self._open = True
        self.logger.info(
            f"Registry opened with {len(users)} users and {len(links)} links "
            f"({self.storage.name} storage)"
        )

    async def close(self) -> None:
        """Close the backend."""
        if not self._open:
            return
        await self.storage.close()
        self._open = False
        self.logger.info("Registry closed")

    async def __aenter__(self) -> "RegistryStore":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _require_open(self) -> None:
        if not self._open:
            raise RuntimeError("Registry store is not open")

    def now(self) -> datetime:
        return self.clock()

    def new_id(self, prefix: str) -> str:
        """Opaque id whose numeric part orders ids by creation time."""
        millis = int(self.now().timestamp() * 1000)
        while True:
            candidate = f"{prefix}-{millis}-{secrets.token_hex(3)}"
            if candidate not in self._state.users and candidate not in self._state.links:
                return candidate

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """Run a serialized mutation.

        Changes become visible (and are persisted) only if the block exits
        normally; any exception discards them.
        """
        self._require_open()
        async with self._lock:
            tx = Transaction(self._state.fork(), self.now())
            yield tx
            await self._persist(tx.state, tx.users_changed, tx.links_changed)
            self._state = tx.state

    async def replace_all(self, users: List[User], links: List[ShortLink]) -> None:
        """Swap in an entirely new dataset under the writer lock."""
        self._require_open()
        state = RegistryState.build(users, links)
        if len(state.slugs) != len(state.links):
            raise ValueError("Duplicate slugs in replacement dataset")
        async with self._lock:
            await self._persist(state, True, True)
            self._state = state
        self.logger.warning(f"Registry replaced: {len(users)} users, {len(links)} links")

    async def _persist(self, state: RegistryState, users_changed: bool, links_changed: bool) -> None:
        """Write the changed collections; on failure put back what was already written."""
        written = []
        try:
            if users_changed:
                await self.storage.save_users(_user_rows(state))
                written.append("users")
            if links_changed:
                await self.storage.save_links(_link_rows(state))
                written.append("links")
        except Exception as e:
            self.logger.error(f"Failed to persist registry: {e}")
            if written:
                await self._restore(written)
            raise

    async def _restore(self, collections: List[str]) -> None:
        """Re-save the committed state for collections a failed write already replaced."""
        try:
            if "users" in collections:
                await self.storage.save_users(_user_rows(self._state))
            if "links" in collections:
                await self.storage.save_links(_link_rows(self._state))
            self.logger.warning(f"Restored committed {', '.join(collections)} after failed write")
        except Exception as e:
            self.logger.critical(f"Backend diverged from committed registry state: {e}")

    # Lock-free reads over the committed state

    def get_user(self, user_id: str) -> Optional[User]:
        self._require_open()
        user = self._state.users.get(user_id)
        return _copy_user(user) if user else None

    def find_user_by_email(self, email: str) -> Optional[User]:
        self._require_open()
        for user in self._state.users.values():
            if user.email == email:
                return _copy_user(user)
        return None

    def users(self) -> List[User]:
        self._require_open()
        return [_copy_user(user) for user in self._state.users.values()]

    def get_link(self, link_id: str) -> Optional[ShortLink]:
        self._require_open()
        link = self._state.links.get(link_id)
        return link.copy() if link else None

    def get_link_by_slug(self, slug: str) -> Optional[ShortLink]:
        self._require_open()
        state = self._state
        link_id = state.slugs.get(slug)
        link = state.links.get(link_id) if link_id else None
        return link.copy() if link else None

    def links(self) -> List[ShortLink]:
        self._require_open()
        return [link.copy() for link in self._state.links.values()]

    async def health_check(self) -> bool:
        return self._open and await self.storage.health_check()
