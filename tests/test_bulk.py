"""Tests for bulk creation, snapshots and demo data."""

import random
import pytest

from linkcore import parse_bulk_text, seed_demo_data
from linkcore.exceptions import InvalidFormatError
from linkcore.models import BulkItem, UserRole


def _snapshot_user(index, role="USER"):
    return {
        "id": f"user-{index}",
        "email": f"u{index}@import.io",
        "name": f"User {index}",
        "role": role,
        "password": f"pw{index}",
        "createdAt": f"2024-01-0{index}T00:00:00.000Z",
    }


def _snapshot_link(index, creator="user-1"):
    return {
        "id": f"link-{index}",
        "originalUrl": f"https://import.io/{index}",
        "slug": f"imp{index}",
        "creatorId": creator,
        "clicks": index,
        "createdAt": f"2024-02-0{index}T00:00:00.000Z",
        "history": [{"date": "2024-02-10", "count": index}],
    }


class TestParseBulkText:

    def test_url_and_optional_slug(self):
        items = parse_bulk_text("https://a.com,first\n\nhttps://b.com\n  https://c.com , \n")

        assert items == [
            BulkItem(url="https://a.com", slug="first"),
            BulkItem(url="https://b.com", slug=None),
            BulkItem(url="https://c.com", slug=None),
        ]

    def test_empty_text(self):
        with pytest.raises(InvalidFormatError):
            parse_bulk_text("\n \n")
        with pytest.raises(InvalidFormatError):
            parse_bulk_text(",only-slug")


@pytest.mark.asyncio
class TestBulkCreate:

    async def test_partial_success(self, bulk, member, store):
        result = await bulk.bulk_create(
            [
                {"url": "https://a.com", "slug": "ok"},
                {"url": "", "slug": ""},
                {"url": "https://b.com", "slug": "ok"},
            ],
            member.id,
        )

        # The empty row counts as neither success nor error
        assert result.success_count == 1
        assert len(result.errors) == 1
        assert result.errors[0].startswith('Error on URL "https://b.com"')
        assert "already exists" in result.errors[0]
        assert store.get_link_by_slug("ok").original_url == "https://a.com"

    async def test_generated_slugs_and_invalid_urls(self, bulk, member, store):
        items = parse_bulk_text("https://a.com\nhttps://b.com\nnot-a-url")

        result = await bulk.bulk_create(items, member.id)

        assert result.success_count == 2
        assert "Invalid URL" in result.errors[0]
        assert all(link.creator_id == member.id for link in store.links())


@pytest.mark.asyncio
class TestSnapshots:

    async def test_import_replaces_everything(self, bulk, identity, links, member):
        await links.create_link("https://before.com", slug="before", creator_id=member.id)

        await bulk.import_snapshot({
            "users": [_snapshot_user(i) for i in (1, 2, 3)],
            "links": [_snapshot_link(i) for i in (1, 2, 3, 4, 5)],
        })

        assert [link.slug for link in links.list_all()] == ["imp1", "imp2", "imp3", "imp4", "imp5"]
        assert [user.email for user in identity.list_users()] == [
            "u1@import.io", "u2@import.io", "u3@import.io",
        ]
        # Imported plain-text credentials still log in
        assert (await identity.authenticate("u2@import.io", "pw2")).id == "user-2"

    async def test_export_then_import(self, bulk, store, links, member, clicks):
        link = await links.create_link("https://a.com", slug="keep", creator_id=member.id)
        await clicks.record_click(link.id)

        snapshot = bulk.export_snapshot()
        assert snapshot["users"][0]["password"]
        await links.delete_link(link.id)

        await bulk.import_snapshot(snapshot)

        restored = store.get_link_by_slug("keep")
        assert restored.clicks == 1
        assert restored.history[0].count == 1
        assert store.get_user(member.id).role == UserRole.USER

    @pytest.mark.parametrize("payload", [
        None,
        [],
        {"users": []},
        {"users": {}, "links": []},
        {"users": [{"email": "no-id@x.io"}], "links": []},
        {"users": [], "links": [_snapshot_link(1), dict(_snapshot_link(2), slug="imp1")]},
    ])
    async def test_import_rejects_bad_snapshots(self, bulk, links, member, payload):
        await links.create_link("https://a.com", slug="survivor", creator_id=member.id)

        with pytest.raises(InvalidFormatError):
            await bulk.import_snapshot(payload)

        assert links.get_by_slug("survivor") is not None


@pytest.mark.asyncio
class TestSeedDemoData:

    async def test_seeds_empty_registry_once(self, store, identity, logger):
        assert await seed_demo_data(store, logger=logger, rng=random.Random(7))

        users = {user.email: user for user in identity.list_users()}
        assert users["admin@shortai.com"].role == UserRole.ADMIN
        assert (await identity.authenticate("user@shortai.com", "user123")).role == UserRole.USER

        links = {link.slug: link for link in store.links()}
        assert set(links) == {"react-search", "tailwind-docs"}
        for link in links.values():
            assert link.clicks == sum(stat.count for stat in link.history)

        assert not await seed_demo_data(store, logger=logger)
        assert len(store.links()) == 2
