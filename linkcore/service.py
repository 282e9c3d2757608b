"""Link registry: slug allocation, expiry and link lifecycle."""

import logging
from typing import Optional, Dict, Any, List
from datetime import datetime, timedelta

from .shortcode import ShortCodeGenerator
from .store import RegistryStore, Transaction
from .models import ShortLink, GUEST_CREATOR_ID
from .exceptions import InvalidInputError, NotFoundError, SlugTakenError
from .common.validators import is_valid_url, is_valid_slug


class LinkRegistryService:
    """Service layer for short-link records."""

    def __init__(
        self,
        store: RegistryStore,
        short_code_generator: Optional[ShortCodeGenerator] = None,
        logger: Optional[logging.Logger] = None,
        max_collision_retries: int = 5,
        guest_link_ttl: timedelta = timedelta(hours=24),
    ):
        """Initialize link registry service.

        Args:
            store: Registry store
            short_code_generator: Optional slug generator
            logger: Optional logger
            max_collision_retries: Maximum random slugs tried before the UUID fallback
            guest_link_ttl: Lifetime forced onto guest links
        """
        self.store = store
        self.generator = short_code_generator or ShortCodeGenerator()
        self.logger = logger or logging.getLogger(__name__)
        self.max_collision_retries = max_collision_retries
        self.guest_link_ttl = guest_link_ttl

    async def create_link(
        self,
        original_url: str,
        slug: Optional[str] = None,
        creator_id: str = GUEST_CREATOR_ID,
        expires_at: Optional[datetime] = None,
    ) -> ShortLink:
        """Create a new short link.

        Args:
            original_url: The original long URL
            slug: Optional custom slug (random if omitted)
            creator_id: Creating user id, or "guest"
            expires_at: Optional expiry; ignored for guests, who always get the guest TTL

        Returns:
            The created link

        Raises:
            InvalidInputError: If the URL or custom slug is malformed
            SlugTakenError: If the slug is already in use
        """
        is_valid, error = is_valid_url(original_url)
        if not is_valid:
            raise InvalidInputError(f"Invalid URL: {error}", field="original_url")

        if slug:
            is_valid, error = is_valid_slug(slug)
            if not is_valid:
                raise InvalidInputError(f"Invalid slug: {error}", field="slug")

        async with self.store.transaction() as tx:
            if slug:
                if tx.slug_exists(slug):
                    raise SlugTakenError(slug)
            else:
                slug = self._generate_unique_slug(tx)

            if creator_id == GUEST_CREATOR_ID:
                expires_at = tx.now + self.guest_link_ttl

            link = ShortLink(
                id=self.store.new_id("link"),
                original_url=original_url,
                slug=slug,
                creator_id=creator_id,
                created_at=tx.now,
                expires_at=expires_at,
            )
            tx.put_link(link)

        self.logger.info(f"Created short link: {slug} -> {original_url} (creator {creator_id})")
        return link.copy()

    async def update_link(self, link_id: str, new_slug: str, new_original_url: str) -> ShortLink:
        """Replace slug and destination together.

        Raises:
            NotFoundError: If the link does not exist
            InvalidInputError: If the URL or slug is malformed
            SlugTakenError: If the new slug belongs to another link
        """
        is_valid, error = is_valid_url(new_original_url)
        if not is_valid:
            raise InvalidInputError(f"Invalid URL: {error}", field="original_url")

        async with self.store.transaction() as tx:
            link = tx.get_link(link_id)
            if not link:
                raise NotFoundError("Link", link_id)

            if new_slug != link.slug:
                is_valid, error = is_valid_slug(new_slug)
                if not is_valid:
                    raise InvalidInputError(f"Invalid slug: {error}", field="slug")
                if tx.slug_exists(new_slug):
                    raise SlugTakenError(new_slug)

            old_slug = link.slug
            link.slug = new_slug
            link.original_url = new_original_url
            tx.put_link(link)

        self.logger.info(f"Updated link {link_id}: {old_slug} -> {new_slug}, url {new_original_url}")
        return link.copy()

    async def update_expiry(self, link_id: str, expires_at: Optional[datetime]) -> ShortLink:
        """Set or clear a link's expiry. Applies to guest links too.

        Raises:
            NotFoundError: If the link does not exist
        """
        async with self.store.transaction() as tx:
            link = tx.get_link(link_id)
            if not link:
                raise NotFoundError("Link", link_id)
            link.expires_at = expires_at
            tx.put_link(link)

        self.logger.info(f"Set expiry of {link_id} to {expires_at.isoformat() if expires_at else 'never'}")
        return link.copy()

    async def delete_link(self, link_id: str) -> bool:
        """Delete a link; deleting an absent id is a no-op.

        Returns:
            True if a link was removed
        """
        async with self.store.transaction() as tx:
            removed = tx.remove_link(link_id)

        if removed:
            self.logger.info(f"Deleted link {link_id}")
        return removed

    def get_by_slug(self, slug: str) -> Optional[ShortLink]:
        return self.store.get_link_by_slug(slug)

    def get_by_id(self, link_id: str) -> Optional[ShortLink]:
        return self.store.get_link(link_id)

    def list_by_creator(self, creator_id: str) -> List[ShortLink]:
        """Links created by one user, newest first."""
        links = [link for link in self.store.links() if link.creator_id == creator_id]
        return sorted(links, key=lambda link: link.created_at, reverse=True)

    def list_all(self) -> List[ShortLink]:
        """Every link, oldest first."""
        return sorted(self.store.links(), key=lambda link: link.created_at)

    def search_links(self, term: str, creator_id: Optional[str] = None) -> List[ShortLink]:
        """Case-insensitive substring search over slug and destination.

        Args:
            term: Search text; empty matches everything
            creator_id: Optionally restrict to one creator
        """
        needle = (term or "").lower()
        links = self.list_by_creator(creator_id) if creator_id else self.list_all()
        return [
            link for link in links
            if needle in link.slug.lower() or needle in link.original_url.lower()
        ]

    def is_expired(self, link: ShortLink) -> bool:
        return link.is_expired(self.store.now())

    def get_statistics(self) -> Dict[str, Any]:
        """Registry-wide totals."""
        now = self.store.now()
        links = self.store.links()
        return {
            "total_links": len(links),
            "total_clicks": sum(link.clicks for link in links),
            "total_users": len(self.store.users()),
            "guest_links": sum(1 for link in links if link.is_guest),
            "expired_links": sum(1 for link in links if link.is_expired(now)),
        }

    def _generate_unique_slug(self, tx: Transaction) -> str:
        """Generate a slug not present in the transaction's state.

        Raises:
            SlugTakenError: If every attempt collided
        """
        for attempt in range(self.max_collision_retries):
            code = self.generator.generate_random()
            if not tx.slug_exists(code):
                if attempt:
                    self.logger.debug(f"Generated slug after {attempt + 1} attempts: {code}")
                return code

        # Last resort: UUID-based code (highly unlikely to collide)
        code = self.generator.generate_from_uuid(length=8)
        if not tx.slug_exists(code):
            return code

        raise SlugTakenError(code)
