"""Reminder job handlers."""

from __future__ import annotations

import logging

from legalpro.jobs.utils import coerce_uuid
from legalpro.services import workflow_hooks

logger = logging.getLogger(__name__)


async def process_reminder(db, job) -> None:
    """Remind assigned advocates about a case left on hold."""
    logger.info("Processing reminder job %s", job.id)
    payload = job.payload or {}
    case_id = coerce_uuid(payload.get("case_id"))
    actor_id = coerce_uuid(payload.get("actor_id"))
    if not case_id or not actor_id:
        raise ValueError("Missing case_id or actor_id in reminder payload")

    queued = workflow_hooks.send_on_hold_reminder(db, case_id, actor_id)
    logger.info("Queued %s on-hold reminder notifications", queued)
