"""Common utilities for the link registry."""

from .validators import is_valid_url, is_valid_slug
from .urls import public_base_url, build_short_url
from .logging_config import setup_logging

__all__ = [
    "is_valid_url",
    "is_valid_slug",
    "public_base_url",
    "build_short_url",
    "setup_logging",
]
