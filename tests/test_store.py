"""Tests for the registry store and its storage backends."""

import json
import pytest

from linkcore import RegistryStore
from linkcore.database import InMemoryStorage, JsonFileStorage, RedisStorage
from linkcore.models import ShortLink, User, UserRole


class FailingStorage(InMemoryStorage):
    """Memory storage whose writes can be made to fail."""

    def __init__(self):
        super().__init__()
        self.fail = False

    async def save_links(self, links):
        if self.fail:
            raise IOError("disk full")
        await super().save_links(links)


class FakeRedis:
    """Minimal async stand-in for a redis client."""

    def __init__(self):
        self.data = {}
        self.closed = False

    async def ping(self):
        return True

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value
        return True

    async def aclose(self):
        self.closed = True


def _link(store, slug, creator_id="user-1") -> ShortLink:
    return ShortLink(
        id=store.new_id("link"),
        original_url=f"https://example.com/{slug}",
        slug=slug,
        creator_id=creator_id,
        created_at=store.now(),
    )


@pytest.mark.asyncio
class TestRegistryStore:
    """Test transactions, snapshots and reads."""

    async def test_transaction_commits(self, store, storage):
        async with store.transaction() as tx:
            tx.put_link(_link(store, "one"))

        assert store.get_link_by_slug("one") is not None
        assert storage.save_count == 1
        assert (await storage.load_links())[0]["slug"] == "one"

    async def test_exception_discards_changes(self, store, storage):
        with pytest.raises(RuntimeError):
            async with store.transaction() as tx:
                tx.put_link(_link(store, "lost"))
                raise RuntimeError("abort")

        assert store.get_link_by_slug("lost") is None
        assert storage.save_count == 0

    async def test_failed_persist_keeps_previous_state(self, clock, logger):
        storage = FailingStorage()
        store = RegistryStore(storage, clock=clock, logger=logger)
        await store.open()
        async with store.transaction() as tx:
            tx.put_link(_link(store, "kept"))

        storage.fail = True
        with pytest.raises(IOError):
            async with store.transaction() as tx:
                tx.put_link(_link(store, "never"))

        assert store.get_link_by_slug("kept") is not None
        assert store.get_link_by_slug("never") is None

    async def test_failed_persist_restores_written_collections(self, clock, logger):
        storage = FailingStorage()
        store = RegistryStore(storage, clock=clock, logger=logger)
        await store.open()
        user = User(
            id="user-1", email="u@example.com", name="U", role=UserRole.USER,
            credential="pw", created_at=store.now(),
        )
        async with store.transaction() as tx:
            tx.put_user(user)
            tx.put_link(_link(store, "owned", creator_id=user.id))

        storage.fail = True
        with pytest.raises(IOError):
            async with store.transaction() as tx:
                tx.remove_user(user.id)
                tx.remove_link(store.get_link_by_slug("owned").id)

        assert [row["id"] for row in await storage.load_users()] == ["user-1"]
        assert [row["slug"] for row in await storage.load_links()] == ["owned"]
        assert store.get_user("user-1") is not None

    async def test_reads_return_copies(self, store):
        async with store.transaction() as tx:
            tx.put_link(_link(store, "copy"))

        link = store.get_link_by_slug("copy")
        link.clicks = 99
        link.slug = "changed"

        fresh = store.get_link(link.id)
        assert fresh.clicks == 0
        assert fresh.slug == "copy"

    async def test_slug_index_follows_rename(self, store):
        link = _link(store, "before")
        async with store.transaction() as tx:
            tx.put_link(link)

        async with store.transaction() as tx:
            renamed = tx.get_link(link.id)
            renamed.slug = "after"
            tx.put_link(renamed)

        assert store.get_link_by_slug("before") is None
        assert store.get_link_by_slug("after").id == link.id

    async def test_replace_all(self, store):
        async with store.transaction() as tx:
            tx.put_link(_link(store, "old"))

        user = User(
            id="user-x", email="x@example.com", name="X", role=UserRole.USER,
            credential="pw", created_at=store.now(),
        )
        await store.replace_all([user], [_link(store, "new", creator_id="user-x")])

        assert store.get_link_by_slug("old") is None
        assert store.get_link_by_slug("new") is not None
        assert store.find_user_by_email("x@example.com").id == "user-x"

    async def test_new_id_format(self, store):
        link_id = store.new_id("link")
        prefix, millis, suffix = link_id.split("-")
        assert prefix == "link"
        assert int(millis) == int(store.now().timestamp() * 1000)
        assert len(suffix) == 6

    async def test_closed_store_rejects_reads(self, clock):
        store = RegistryStore(InMemoryStorage(), clock=clock)
        with pytest.raises(RuntimeError, match="not open"):
            store.links()

    async def test_open_loads_existing_collections(self, clock):
        storage = InMemoryStorage(
            users=[{"id": "u1", "email": "a@b.c", "name": "A", "role": "ADMIN",
                    "password": "pw", "createdAt": "2024-01-01T00:00:00.000Z"}],
            links=[{"id": "l1", "originalUrl": "https://a.b", "slug": "ab",
                    "creatorId": "u1", "clicks": 3, "createdAt": "2024-01-01T00:00:00.000Z",
                    "history": [{"date": "2024-01-01", "count": 3}]}],
        )
        async with RegistryStore(storage, clock=clock) as store:
            assert store.get_user("u1").role == UserRole.ADMIN
            assert store.get_link_by_slug("ab").clicks == 3
            assert await store.health_check()


@pytest.mark.asyncio
class TestJsonFileStorage:

    async def test_survives_restart(self, tmp_path, clock, logger):
        store = RegistryStore(JsonFileStorage(str(tmp_path), logger=logger), clock=clock)
        await store.open()
        async with store.transaction() as tx:
            tx.put_link(_link(store, "persisted"))
        await store.close()

        data = json.loads((tmp_path / "links.json").read_text(encoding="utf-8"))
        assert data[0]["slug"] == "persisted"

        reopened = RegistryStore(JsonFileStorage(str(tmp_path), logger=logger), clock=clock)
        await reopened.open()
        assert reopened.get_link_by_slug("persisted") is not None
        assert reopened.users() == []

    async def test_rejects_non_list_file(self, tmp_path):
        (tmp_path / "users.json").write_text('{"not": "a list"}', encoding="utf-8")
        storage = JsonFileStorage(str(tmp_path))
        await storage.open()
        with pytest.raises(ValueError):
            await storage.load_users()


@pytest.mark.asyncio
class TestRedisStorage:

    async def test_collections_are_stored_under_prefixed_keys(self, clock):
        client = FakeRedis()
        storage = RedisStorage("redis://unused", key_prefix="test", client=client)
        store = RegistryStore(storage, clock=clock)
        await store.open()

        async with store.transaction() as tx:
            tx.put_link(_link(store, "cached"))

        assert "test:links" in client.data
        assert "test:users" not in client.data
        assert json.loads(client.data["test:links"])[0]["slug"] == "cached"
        assert await storage.health_check()

        await store.close()
        assert client.closed


class FakeConnection:
    """Records SQL against an in-memory table of collections."""

    def __init__(self, table):
        self.table = table

    async def execute(self, sql, *args):
        if args:
            name, payload = args
            self.table[name] = payload
        return "OK"

    async def fetchrow(self, sql, *args):
        if not args:
            return {"?column?": 1}
        payload = self.table.get(args[0])
        return {"payload": payload} if payload is not None else None


class FakePool:

    def __init__(self):
        self.table = {}
        self.closed = False

    def acquire(self):
        pool = self

        class _Acquire:
            async def __aenter__(self):
                return FakeConnection(pool.table)

            async def __aexit__(self, *exc):
                return False

        return _Acquire()

    async def close(self):
        self.closed = True


@pytest.mark.asyncio
class TestPostgresStorage:

    async def test_collections_round_trip_through_pool(self, monkeypatch, clock):
        from linkcore.database import postgres

        pool = FakePool()

        async def fake_create_pool(**kwargs):
            assert kwargs["database"] == "links"
            return pool

        monkeypatch.setattr(postgres.asyncpg, "create_pool", fake_create_pool)

        storage = postgres.PostgresStorage("postgresql://app:pw@db:5432/links")
        store = RegistryStore(storage, clock=clock)
        await store.open()
        async with store.transaction() as tx:
            tx.put_link(_link(store, "pg"))

        assert json.loads(pool.table["links"])[0]["slug"] == "pg"
        assert await storage.load_users() == []
        assert await storage.health_check()

        await store.close()
        assert pool.closed
