"""Tests for accounts and role checks."""

import pytest

from linkcore.exceptions import (
    DuplicateEmailError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidInputError,
    NotFoundError,
)
from linkcore.identity import can_create_role, can_grant_role, can_manage_user
from linkcore.models import Actor, User, UserRole


class TestRoleRules:
    """Capability matrix for OWNER / ADMIN / USER."""

    def _user(self, user_id, role):
        return User(id=user_id, email=f"{user_id}@x.io", name="", role=role, credential="", created_at=None)

    def test_create_rules(self):
        owner = Actor("o", UserRole.OWNER)
        admin = Actor("a", UserRole.ADMIN)
        user = Actor("u", UserRole.USER)

        assert can_create_role(owner, UserRole.OWNER)
        assert can_create_role(admin, UserRole.USER)
        assert not can_create_role(admin, UserRole.ADMIN)
        assert not can_create_role(user, UserRole.USER)

    def test_grant_rules(self):
        admin = Actor("a", UserRole.ADMIN)
        assert can_grant_role(admin, UserRole.ADMIN)
        assert not can_grant_role(admin, UserRole.OWNER)

    def test_manage_rules(self):
        owner = Actor("o", UserRole.OWNER)
        admin = Actor("a", UserRole.ADMIN)

        assert can_manage_user(owner, self._user("x", UserRole.ADMIN))
        assert not can_manage_user(owner, self._user("o", UserRole.OWNER))
        assert can_manage_user(admin, self._user("x", UserRole.USER))
        assert not can_manage_user(admin, self._user("y", UserRole.ADMIN))
        assert not can_manage_user(admin, self._user("z", UserRole.OWNER))


@pytest.mark.asyncio
class TestIdentityService:
    """Test registration, authentication and administration."""

    async def test_register_creates_user_role(self, identity, store):
        user = await identity.register("new@example.com", "pw", "New")

        assert user.role == UserRole.USER
        assert user.credential == ""
        stored = store.get_user(user.id)
        assert stored.email == "new@example.com"
        assert stored.credential not in ("", "pw")

    async def test_register_duplicate_email(self, identity):
        await identity.register("dup@example.com", "pw", "One")

        with pytest.raises(DuplicateEmailError):
            await identity.register("dup@example.com", "other", "Two")

    async def test_register_requires_credentials(self, identity):
        with pytest.raises(InvalidInputError):
            await identity.register("", "pw", "No email")
        with pytest.raises(InvalidInputError):
            await identity.register("a@b.c", "", "No password")

    async def test_authenticate(self, identity):
        user = await identity.register("login@example.com", "correct", "L")

        assert (await identity.authenticate("login@example.com", "correct")).id == user.id
        with pytest.raises(InvalidCredentialsError):
            await identity.authenticate("login@example.com", "wrong")
        with pytest.raises(InvalidCredentialsError):
            await identity.authenticate("nobody@example.com", "correct")

    async def test_admin_cannot_create_admin(self, identity, admin):
        with pytest.raises(ForbiddenError):
            await identity.admin_create_user("x@example.com", "pw", "X", UserRole.ADMIN, admin)

        user = await identity.admin_create_user("y@example.com", "pw", "Y", UserRole.USER, admin)
        assert user.role == UserRole.USER

    async def test_owner_creates_any_role(self, identity, owner):
        user = await identity.admin_create_user("o2@example.com", "pw", "O2", UserRole.OWNER, owner)
        assert user.role == UserRole.OWNER

    async def test_update_profile_keeps_credential_when_blank(self, identity, admin):
        user = await identity.register("edit@example.com", "original", "Before")

        updated = await identity.update_profile(
            user.id, name="After", email="edited@example.com", role=UserRole.USER, actor=admin,
        )

        assert updated.name == "After"
        assert (await identity.authenticate("edited@example.com", "original")).id == user.id

    async def test_update_profile_replaces_credential(self, identity, owner):
        user = await identity.register("pw@example.com", "old", "P")

        await identity.update_profile(
            user.id, name="P", email="pw@example.com", role=UserRole.USER, actor=owner, credential="new",
        )

        with pytest.raises(InvalidCredentialsError):
            await identity.authenticate("pw@example.com", "old")
        assert await identity.authenticate("pw@example.com", "new")

    async def test_update_profile_email_conflict(self, identity, owner):
        await identity.register("taken@example.com", "pw", "T")
        user = await identity.register("mine@example.com", "pw", "M")

        with pytest.raises(DuplicateEmailError):
            await identity.update_profile(
                user.id, name="M", email="taken@example.com", role=UserRole.USER, actor=owner,
            )

    async def test_admin_cannot_grant_owner(self, identity, admin):
        user = await identity.register("climb@example.com", "pw", "C")

        with pytest.raises(ForbiddenError):
            await identity.update_role(user.id, UserRole.OWNER, admin)

        promoted = await identity.update_role(user.id, UserRole.ADMIN, admin)
        assert promoted.role == UserRole.ADMIN

    async def test_admin_cannot_edit_admin(self, identity, admin, make_user):
        other = await make_user("peer@example.com", UserRole.ADMIN)

        with pytest.raises(ForbiddenError):
            await identity.update_profile(other.id, "Peer", other.email, UserRole.USER, admin)

    async def test_owner_cannot_delete_self(self, identity, owner):
        with pytest.raises(ForbiddenError):
            await identity.delete_user(owner.id, owner)

    async def test_delete_cascades_links(self, identity, links, owner, member, store):
        await links.create_link("https://example.com/a", slug="mine-a", creator_id=member.id)
        await links.create_link("https://example.com/b", slug="mine-b", creator_id=member.id)
        await links.create_link("https://example.com/c", slug="theirs", creator_id=owner.id)

        removed = await identity.delete_user(member.id, owner)

        assert removed == 2
        assert store.get_user(member.id) is None
        assert [link.slug for link in store.links()] == ["theirs"]

    async def test_delete_unknown_user(self, identity, owner):
        with pytest.raises(NotFoundError):
            await identity.delete_user("user-missing", owner)

    async def test_recover_password(self, identity):
        await identity.register("lost@example.com", "pw", "L")

        await identity.recover_password("lost@example.com")
        with pytest.raises(NotFoundError):
            await identity.recover_password("ghost@example.com")

    async def test_list_users_oldest_first(self, identity, clock):
        await identity.register("first@example.com", "pw", "1")
        clock.advance(minutes=1)
        await identity.register("second@example.com", "pw", "2")

        assert [user.email for user in identity.list_users()] == [
            "first@example.com", "second@example.com",
        ]

    async def test_reads_never_expose_credentials(self, identity, owner):
        user = await identity.register("hidden@example.com", "pw", "H")
        created = await identity.admin_create_user("made@example.com", "pw", "M", UserRole.USER, owner)
        updated = await identity.update_profile(
            user.id, name="H2", email="hidden@example.com", role=UserRole.USER, actor=owner,
        )

        assert user.credential == ""
        assert created.credential == ""
        assert updated.credential == ""
        assert (await identity.authenticate("hidden@example.com", "pw")).credential == ""
        assert identity.get_user(user.id).credential == ""
        assert all(listed.credential == "" for listed in identity.list_users())
