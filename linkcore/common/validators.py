"""Validation utilities for the link registry."""

import re
from urllib.parse import urlparse
from typing import Tuple


MAX_URL_LENGTH = 2048
MAX_SLUG_LENGTH = 64

# Path segments served by the web app itself
RESERVED_SLUGS = {
    "api", "health", "docs", "redoc", "static", "favicon", "robots",
}

SLUG_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')


def is_valid_url(url: str) -> Tuple[bool, str]:
    """Validate a URL.

    Args:
        url: The URL to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not url or not isinstance(url, str):
        return False, "URL is required"

    if len(url) > MAX_URL_LENGTH:
        return False, f"URL is too long (max {MAX_URL_LENGTH} characters)"

    try:
        result = urlparse(url)
    except ValueError as e:
        return False, f"Invalid URL format: {str(e)}"

    if result.scheme not in ["http", "https"]:
        return False, "URL must use http or https protocol"

    if not result.netloc:
        return False, "URL must have a valid domain"

    return True, ""


def is_valid_slug(slug: str, max_length: int = MAX_SLUG_LENGTH) -> Tuple[bool, str]:
    """Validate a custom slug.

    Args:
        slug: The slug to validate
        max_length: Maximum length for the slug

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not slug or not isinstance(slug, str):
        return False, "Slug is required"

    if len(slug) > max_length:
        return False, f"Slug must be at most {max_length} characters"

    if not SLUG_PATTERN.match(slug):
        return False, "Slug can only contain letters, numbers, hyphens, and underscores"

    if slug.lower() in RESERVED_SLUGS:
        return False, f"'{slug}' is a reserved word and cannot be used"

    return True, ""
