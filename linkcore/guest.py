"""Guest session policy: one live link per anonymous session."""

import asyncio
import logging
import secrets
from typing import Dict, Optional

from .service import LinkRegistryService
from .models import ShortLink, GUEST_CREATOR_ID
from .exceptions import GuestLinkExistsError


class GuestSessionPolicy:
    """Tracks which link each anonymous session currently holds.

    The mapping is process-local client state, not part of the registry; any
    number of guest links may exist system-wide.
    """

    def __init__(self, registry: LinkRegistryService, logger: Optional[logging.Logger] = None):
        self.registry = registry
        self.logger = logger or logging.getLogger(__name__)
        self._sessions: Dict[str, str] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    @staticmethod
    def new_session_token() -> str:
        return secrets.token_urlsafe(16)

    def current_link(self, session_token: str) -> Optional[ShortLink]:
        """The link this session references; stale references are dropped."""
        link_id = self._sessions.get(session_token)
        if link_id is None:
            return None
        link = self.registry.get_by_id(link_id)
        if link is None:
            self._sessions.pop(session_token, None)
            self.logger.debug(f"Guest session dropped stale link {link_id}")
        return link

    def owns(self, session_token: Optional[str], link_id: str) -> bool:
        return bool(session_token) and self._sessions.get(session_token) == link_id

    async def create(
        self,
        session_token: str,
        original_url: str,
        slug: Optional[str] = None,
        replace_existing: bool = False,
    ) -> ShortLink:
        """Create a guest link for this session.

        The previous link, if any, is abandoned rather than deleted; it runs
        out on its own 24-hour expiry.

        Raises:
            GuestLinkExistsError: If the session already holds a link and
                replacement was not confirmed
        """
        async with self._locks.setdefault(session_token, asyncio.Lock()):
            existing = self.current_link(session_token)
            if existing is not None and not replace_existing:
                raise GuestLinkExistsError(existing.id)

            link = await self.registry.create_link(
                original_url, slug=slug, creator_id=GUEST_CREATOR_ID
            )
            self._sessions[session_token] = link.id
        if existing is not None:
            self.logger.info(f"Guest session replaced link {existing.id} with {link.id}")
        return link

    async def discard(self, session_token: str, delete_link: bool = True) -> bool:
        """Forget the session's link, deleting it by default.

        Returns:
            True if the session held a link
        """
        self._locks.pop(session_token, None)
        link_id = self._sessions.pop(session_token, None)
        if link_id is None:
            return False
        if delete_link:
            await self.registry.delete_link(link_id)
        return True
