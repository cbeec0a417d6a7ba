"""Shared helpers for worker job handlers."""

from __future__ import annotations

import logging
from urllib.parse import urlsplit
from uuid import UUID

logger = logging.getLogger(__name__)


def safe_url(url: str | None) -> str:
    """Drop credentials and query string from a URL before logging it."""
    if not url:
        return ""
    parts = urlsplit(url)
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return f"{parts.scheme}://{host}{parts.path}"


def coerce_uuid(raw_id: str | None) -> UUID | None:
    if not raw_id:
        return None
    try:
        return UUID(str(raw_id))
    except (TypeError, ValueError):
        logger.warning("Invalid UUID value '%s' in job payload", raw_id)
        return None
