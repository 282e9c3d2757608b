"""Service wiring shared by the app factory and the routes."""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from linkcore import (
    BulkService,
    ClickAccountingEngine,
    GuestSessionPolicy,
    IdentityService,
    LinkRegistryService,
    RegistryStore,
    ShortCodeGenerator,
)

from .sessions import SessionManager


@dataclass
class Services:
    """Every component the routes need, sharing one store."""

    store: RegistryStore
    identity: IdentityService
    links: LinkRegistryService
    clicks: ClickAccountingEngine
    guests: GuestSessionPolicy
    bulk: BulkService
    sessions: SessionManager


def build_services(store: RegistryStore, config, logger: Optional[logging.Logger] = None) -> Services:
    """Wire the components around an (opened or not yet opened) store.

    Args:
        store: Registry store
        config: Configuration instance
        logger: Optional logger shared by all components
    """
    links = LinkRegistryService(
        store=store,
        short_code_generator=ShortCodeGenerator(default_length=config.short_code_length),
        logger=logger,
        max_collision_retries=config.max_collision_retries,
        guest_link_ttl=timedelta(hours=config.guest_link_ttl_hours),
    )
    return Services(
        store=store,
        identity=IdentityService(store, logger=logger),
        links=links,
        clicks=ClickAccountingEngine(store, logger=logger),
        guests=GuestSessionPolicy(links, logger=logger),
        bulk=BulkService(store, links, logger=logger),
        sessions=SessionManager(),
    )
