"""Demo data for an empty registry."""

import logging
import random
from datetime import timedelta
from typing import List, Optional

from .store import RegistryStore
from .models import DailyStat, ShortLink, User, UserRole
from .clicks import local_day
from .common.passwords import hash_password


DEMO_USERS = [
    ("admin@shortai.com", "admin", "Administrator", UserRole.ADMIN),
    ("user@shortai.com", "user123", "Demo User", UserRole.USER),
]

DEMO_LINKS = [
    ("https://www.google.com/search?q=react+typescript", "react-search", 0, 7),
    ("https://tailwindcss.com/docs", "tailwind-docs", 1, 10),
]


def _mock_history(store: RegistryStore, days: int, rng: random.Random) -> List[DailyStat]:
    now = store.now()
    return [
        DailyStat(date=local_day(now - timedelta(days=offset)), count=rng.randint(0, 9))
        for offset in range(days, -1, -1)
    ]


async def seed_demo_data(
    store: RegistryStore,
    logger: Optional[logging.Logger] = None,
    rng: Optional[random.Random] = None,
) -> bool:
    """Add demo accounts and links when the registry is empty.

    Returns:
        True if anything was added
    """
    logger = logger or logging.getLogger(__name__)
    rng = rng or random.Random()
    seeded = False

    async with store.transaction() as tx:
        users = list(tx.state.users.values())
        if not users:
            for email, password, name, role in DEMO_USERS:
                user = User(
                    id=store.new_id("user"),
                    email=email,
                    name=name,
                    role=role,
                    credential=hash_password(password),
                    created_at=tx.now,
                )
                tx.put_user(user)
                users.append(user)
            seeded = True

        if not tx.state.links:
            for url, slug, owner_index, days in DEMO_LINKS:
                history = _mock_history(store, days, rng)
                tx.put_link(ShortLink(
                    id=store.new_id("link"),
                    original_url=url,
                    slug=slug,
                    creator_id=users[owner_index % len(users)].id,
                    created_at=tx.now - timedelta(days=days),
                    clicks=sum(stat.count for stat in history),
                    last_clicked_at=tx.now,
                    history=history,
                ))
            seeded = True

    if seeded:
        logger.info("Seeded demo users and links")
    return seeded
