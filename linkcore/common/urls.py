"""Public short-URL construction behind reverse proxies."""

from typing import Mapping, Optional


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup; comma-separated proxy chains yield the first hop."""
    for key, value in headers.items():
        if key.lower() == name and value:
            return value.split(",")[0].strip()
    return None


def public_base_url(
    headers: Mapping[str, str],
    fallback_base_url: str,
    request_scheme: Optional[str] = None,
    request_host: Optional[str] = None,
) -> str:
    """Scheme and host visitors use to reach the service.

    ``X-Forwarded-Proto``/``X-Forwarded-Host`` win over the request's own
    scheme and host, which win over the configured base URL.
    """
    proto = _header(headers, "x-forwarded-proto")
    host = _header(headers, "x-forwarded-host")
    if proto and host:
        return f"{proto}://{host}"
    if request_scheme and request_host:
        return f"{request_scheme}://{request_host}"
    return fallback_base_url.rstrip("/")


def build_short_url(slug: str, base_url: str, path_prefix: str = "") -> str:
    """Join base URL, optional path prefix (e.g. ``/s``) and slug."""
    parts = [base_url.rstrip("/"), path_prefix.strip("/"), slug]
    return "/".join(part for part in parts if part)
