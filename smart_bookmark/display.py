"""Derived display fields for bookmark rows (stateless)."""

from __future__ import annotations

from datetime import datetime, timezone
from urllib.parse import urlparse

from .log import logger


def get_domain(url: str) -> str:
    """Return the host of *url* without a leading ``www.``.

    Falls back to the raw string when it can't be parsed or has no host;
    never raises.
    """
    try:
        host = urlparse(url).hostname
    except ValueError:
        logger.debug("Failed to parse URL %s", url, exc_info=True)
        return url
    if not host:
        return url
    if host.startswith("www."):
        host = host[4:]
    return host


def format_age(created_at: datetime, now: datetime | None = None) -> str:
    """Short relative age label: ``just now``, ``5m ago``, ``3h ago``, ``2d ago``.

    Anything 30 days or older shows the calendar date instead.
    """
    now = now or datetime.now(timezone.utc)
    seconds = (now - created_at).total_seconds()
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{int(seconds // 60)}m ago"
    if seconds < 86400:
        return f"{int(seconds // 3600)}h ago"
    days = int(seconds // 86400)
    if days < 30:
        return f"{days}d ago"
    return created_at.strftime("%Y-%m-%d")
