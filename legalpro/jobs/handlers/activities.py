"""Activity retention job handlers."""

from __future__ import annotations

import logging

from legalpro.services import activity_service

logger = logging.getLogger(__name__)


async def process_activity_retention(db, job) -> None:
    payload = job.payload or {}
    result = activity_service.cleanup_old_activities(db, payload.get("days_to_keep"))
    logger.info(
        "Retention job %s hid %s activities", job.id, result["hidden_activities"]
    )
