"""Click accounting: lifetime counters and per-day history."""

import logging
from datetime import date, datetime
from typing import List, Optional, Tuple

from .store import RegistryStore
from .models import DailyStat, RedirectOutcome, ShortLink
from .exceptions import NotFoundError


def local_day(moment: datetime) -> str:
    """Calendar day of ``moment`` in the host's local timezone (YYYY-MM-DD)."""
    return moment.astimezone().date().isoformat()


class ClickAccountingEngine:
    """Records visits against links."""

    def __init__(self, store: RegistryStore, logger: Optional[logging.Logger] = None):
        self.store = store
        self.logger = logger or logging.getLogger(__name__)

    async def record_click(self, link_id: str) -> None:
        """Count one visit.

        Absent and expired links are ignored without error. Counter, last-click
        time and the day bucket change together in one transaction.

        Args:
            link_id: Id of the visited link
        """
        async with self.store.transaction() as tx:
            link = tx.get_link(link_id)
            if link is None:
                self.logger.debug(f"Click on unknown link {link_id} ignored")
                return
            if link.is_expired(tx.now):
                self.logger.debug(f"Click on expired link {link_id} ignored")
                return

            link.clicks += 1
            link.last_clicked_at = tx.now
            today = local_day(tx.now)
            for stat in link.history:
                if stat.date == today:
                    stat.count += 1
                    break
            else:
                link.history.append(DailyStat(date=today, count=1))
                link.history.sort(key=lambda stat: stat.date)
            tx.put_link(link)

        self.logger.debug(f"Recorded click on {link.slug} ({link.clicks} total)")

    def get_history(
        self,
        link_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[DailyStat]:
        """Daily counts of a link within an inclusive date range, sorted by date.

        Raises:
            NotFoundError: If the link does not exist
        """
        link = self.store.get_link(link_id)
        if link is None:
            raise NotFoundError("Link", link_id)

        history = link.history
        if start:
            history = [stat for stat in history if stat.date >= start.isoformat()]
        if end:
            history = [stat for stat in history if stat.date <= end.isoformat()]
        return sorted(history, key=lambda stat: stat.date)

    async def resolve_redirect(self, slug: str) -> Tuple[RedirectOutcome, Optional[ShortLink]]:
        """Decide what a visitor of ``slug`` gets, recording the click on success.

        Returns:
            Tuple of (outcome, link); link is None when not found
        """
        link = self.store.get_link_by_slug(slug)
        if link is None:
            self.logger.warning(f"Slug not found: {slug}")
            return RedirectOutcome.NOT_FOUND, None

        if link.is_expired(self.store.now()):
            self.logger.info(f"Slug expired: {slug}")
            return RedirectOutcome.EXPIRED, link

        await self.record_click(link.id)
        return RedirectOutcome.REDIRECT, link
