"""Notification job handlers."""

from __future__ import annotations

import logging

from legalpro.services import notification_service

logger = logging.getLogger(__name__)


async def process_notification(db, job) -> None:
    """Deliver one queued status/assignment notification."""
    logger.info("Processing notification job %s", job.id)
    await notification_service.deliver_notification(db, job.payload or {})
