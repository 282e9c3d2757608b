"""Bulk link creation and whole-store snapshot export/import."""

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from .store import RegistryStore
from .service import LinkRegistryService
from .models import BulkItem, BulkResult, ShortLink, User
from .exceptions import InvalidFormatError, LinkcoreError


def parse_bulk_text(text: str) -> List[BulkItem]:
    """Parse ``url,slug`` lines (slug optional, no header row).

    Blank lines and rows without a url are dropped.

    Raises:
        InvalidFormatError: If no usable row is found
    """
    items = []
    for line in (text or "").splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        parts = [part.strip() for part in stripped.split(",")]
        url = parts[0]
        slug = parts[1] if len(parts) > 1 and parts[1] else None
        if url:
            items.append(BulkItem(url=url, slug=slug))

    if not items:
        raise InvalidFormatError("File is empty or not in url,slug format")
    return items


class BulkService:
    """Batch creation plus backup/restore of the whole registry."""

    def __init__(
        self,
        store: RegistryStore,
        registry: LinkRegistryService,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.registry = registry
        self.logger = logger or logging.getLogger(__name__)

    async def bulk_create(
        self,
        items: Iterable[Union[BulkItem, Dict[str, Any]]],
        creator_id: str,
    ) -> BulkResult:
        """Create links one by one, collecting failures instead of raising.

        Rows with an empty url are skipped and counted neither as success nor
        as error. Earlier successes are kept when later rows fail.
        """
        result = BulkResult()
        for raw in items:
            item = raw if isinstance(raw, BulkItem) else BulkItem(url=raw.get("url") or "", slug=raw.get("slug"))
            if not item.url:
                continue
            try:
                await self.registry.create_link(item.url, slug=item.slug or None, creator_id=creator_id)
                result.success_count += 1
            except LinkcoreError as e:
                self.logger.warning(f"Bulk row failed for {item.url}: {e}")
                result.errors.append(f'Error on URL "{item.url}": {e}')

        self.logger.info(
            f"Bulk create by {creator_id}: {result.success_count} created, {len(result.errors)} failed"
        )
        return result

    def export_snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        """Full dump of users (including credentials) and links."""
        users = sorted(self.store.users(), key=lambda user: user.created_at)
        links = sorted(self.store.links(), key=lambda link: link.created_at)
        self.logger.warning(f"Exported snapshot with {len(users)} users and {len(links)} links")
        return {
            "users": [user.to_dict(include_credential=True) for user in users],
            "links": [link.to_dict() for link in links],
        }

    async def import_snapshot(self, data: Any) -> None:
        """Replace every user and link with the snapshot's contents.

        Raises:
            InvalidFormatError: If ``users``/``links`` are missing, not lists,
                contain malformed records or duplicate slugs
        """
        if not isinstance(data, dict):
            raise InvalidFormatError("Snapshot must be an object with users and links")
        raw_users = data.get("users")
        raw_links = data.get("links")
        if not isinstance(raw_users, list) or not isinstance(raw_links, list):
            raise InvalidFormatError("Snapshot must contain 'users' and 'links' arrays")

        try:
            users = [User.from_dict(item) for item in raw_users]
            links = [ShortLink.from_dict(item) for item in raw_links]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise InvalidFormatError(f"Malformed snapshot record: {e}") from e

        if len({link.slug for link in links}) != len(links):
            raise InvalidFormatError("Snapshot contains duplicate slugs")
        if len({link.id for link in links}) != len(links) or len({user.id for user in users}) != len(users):
            raise InvalidFormatError("Snapshot contains duplicate ids")

        await self.store.replace_all(users, links)
