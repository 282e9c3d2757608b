"""Core business logic for the link registry."""

from .store import RegistryStore
from .shortcode import ShortCodeGenerator
from .identity import IdentityService
from .service import LinkRegistryService
from .clicks import ClickAccountingEngine
from .guest import GuestSessionPolicy
from .bulk import BulkService, parse_bulk_text
from .seed import seed_demo_data

__all__ = [
    "RegistryStore",
    "ShortCodeGenerator",
    "IdentityService",
    "LinkRegistryService",
    "ClickAccountingEngine",
    "GuestSessionPolicy",
    "BulkService",
    "parse_bulk_text",
    "seed_demo_data",
]
