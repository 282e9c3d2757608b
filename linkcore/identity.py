"""Identity store: user accounts and role-based capability checks."""

import logging
from dataclasses import replace
from typing import List, Optional

from .store import RegistryStore
from .models import Actor, User, UserRole
from .exceptions import (
    DuplicateEmailError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidInputError,
    NotFoundError,
)
from .common.passwords import hash_password, verify_password


def can_create_role(actor: Actor, role: UserRole) -> bool:
    """OWNER may create any role; ADMIN only plain users."""
    if actor.role == UserRole.OWNER:
        return True
    if actor.role == UserRole.ADMIN:
        return role == UserRole.USER
    return False


def can_grant_role(actor: Actor, role: UserRole) -> bool:
    """Role changes on existing accounts: ADMIN may promote to ADMIN but never to OWNER."""
    if actor.role == UserRole.OWNER:
        return True
    if actor.role == UserRole.ADMIN:
        return role in (UserRole.USER, UserRole.ADMIN)
    return False


def _public(user: User) -> User:
    """Copy of an account with the stored credential blanked."""
    return replace(user, credential="")


def can_manage_user(actor: Actor, target: User) -> bool:
    """Edit/delete rule: OWNER manages everyone but themselves, ADMIN manages USERs."""
    if actor.role == UserRole.OWNER:
        return target.id != actor.id
    if actor.role == UserRole.ADMIN:
        return target.role == UserRole.USER
    return False


class IdentityService:
    """Service layer for user accounts."""

    def __init__(self, store: RegistryStore, logger: Optional[logging.Logger] = None):
        """Initialize identity service.

        Args:
            store: Registry store
            logger: Optional logger
        """
        self.store = store
        self.logger = logger or logging.getLogger(__name__)

    async def register(self, email: str, credential: str, name: str) -> User:
        """Self-registration; the new account always gets role USER.

        Raises:
            DuplicateEmailError: If the email is already registered
        """
        user = await self._create(email, credential, name, UserRole.USER)
        self.logger.info(f"Registered user {user.id} ({email})")
        return user

    async def admin_create_user(
        self,
        email: str,
        credential: str,
        name: str,
        role: UserRole,
        actor: Actor,
    ) -> User:
        """Create an account on behalf of an ADMIN or OWNER.

        Raises:
            ForbiddenError: If the actor may not create an account of this role
            DuplicateEmailError: If the email is already registered
        """
        role = UserRole(role)
        if not can_create_role(actor, role):
            raise ForbiddenError(
                f"Role {actor.role.value} cannot create {role.value} accounts",
                actor_role=actor.role.value,
            )
        user = await self._create(email, credential, name, role)
        self.logger.info(f"{actor.id} created user {user.id} ({email}) with role {role.value}")
        return user

    async def _create(self, email: str, credential: str, name: str, role: UserRole) -> User:
        if not email:
            raise InvalidInputError("Email is required", field="email")
        if not credential:
            raise InvalidInputError("Password is required", field="credential")

        hashed = hash_password(credential)
        async with self.store.transaction() as tx:
            if tx.find_user_by_email(email):
                raise DuplicateEmailError(email)
            user = User(
                id=self.store.new_id("user"),
                email=email,
                name=name,
                role=role,
                credential=hashed,
                created_at=tx.now,
            )
            tx.put_user(user)
        return _public(user)

    async def authenticate(self, email: str, credential: str) -> User:
        """Check email/password.

        Raises:
            InvalidCredentialsError: If no account matches
        """
        user = self.store.find_user_by_email(email)
        if not user or not verify_password(credential, user.credential):
            self.logger.warning(f"Failed login for {email}")
            raise InvalidCredentialsError()
        self.logger.debug(f"Authenticated {user.id}")
        return _public(user)

    async def update_profile(
        self,
        user_id: str,
        name: str,
        email: str,
        role: UserRole,
        actor: Actor,
        credential: Optional[str] = None,
    ) -> User:
        """Replace name, email and role; replace the credential only if a new one is given.

        Raises:
            NotFoundError: If the user does not exist
            ForbiddenError: If the actor may not edit this account or grant this role
            DuplicateEmailError: If the email belongs to another user
        """
        role = UserRole(role)
        hashed = hash_password(credential) if credential else None
        async with self.store.transaction() as tx:
            user = tx.get_user(user_id)
            if not user:
                raise NotFoundError("User", user_id)
            self._check_manage(actor, user)
            if role != user.role and not can_grant_role(actor, role):
                raise ForbiddenError(
                    f"Role {actor.role.value} cannot grant {role.value}",
                    actor_role=actor.role.value,
                )
            other = tx.find_user_by_email(email)
            if other and other.id != user_id:
                raise DuplicateEmailError(email)

            user.name = name
            user.email = email
            user.role = role
            if hashed:
                user.credential = hashed
            tx.put_user(user)

        self.logger.info(f"{actor.id} updated user {user_id}")
        return _public(user)

    async def update_role(self, user_id: str, role: UserRole, actor: Actor) -> User:
        """Change only the role of an account."""
        user = self.store.get_user(user_id)
        if not user:
            raise NotFoundError("User", user_id)
        return await self.update_profile(user_id, user.name, user.email, role, actor)

    async def delete_user(self, user_id: str, actor: Actor) -> int:
        """Delete an account together with every link it created.

        Returns:
            Number of links removed by the cascade

        Raises:
            NotFoundError: If the user does not exist
            ForbiddenError: If the actor may not delete this account
        """
        async with self.store.transaction() as tx:
            user = tx.get_user(user_id)
            if not user:
                raise NotFoundError("User", user_id)
            self._check_manage(actor, user)
            tx.remove_user(user_id)
            owned = [link.id for link in tx.links() if link.creator_id == user_id]
            for link_id in owned:
                tx.remove_link(link_id)

        self.logger.info(f"{actor.id} deleted user {user_id} and {len(owned)} links")
        return len(owned)

    async def recover_password(self, email: str) -> None:
        """Start password recovery for an email.

        Raises:
            NotFoundError: If no account uses this email
        """
        user = self.store.find_user_by_email(email)
        if not user:
            raise NotFoundError("User", email)
        self.logger.info(f"Password recovery requested for {user.id}")

    def get_user(self, user_id: str) -> Optional[User]:
        user = self.store.get_user(user_id)
        return _public(user) if user else None

    def list_users(self) -> List[User]:
        """All users, oldest first."""
        users = sorted(self.store.users(), key=lambda user: user.created_at)
        return [_public(user) for user in users]

    def _check_manage(self, actor: Actor, target: User) -> None:
        if not can_manage_user(actor, target):
            raise ForbiddenError(
                f"Role {actor.role.value} cannot manage user {target.id}",
                actor_role=actor.role.value,
            )
