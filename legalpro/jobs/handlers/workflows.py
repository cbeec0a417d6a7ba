"""Workflow follow-up job handlers."""

from __future__ import annotations

import logging

from legalpro.jobs.utils import coerce_uuid
from legalpro.services import workflow_hooks

logger = logging.getLogger(__name__)


async def process_workflow_hook(db, job) -> None:
    """Run the closure report or archival hook queued by a status change."""
    payload = job.payload or {}
    hook = payload.get("hook")
    case_id = coerce_uuid(payload.get("case_id"))
    actor_id = coerce_uuid(payload.get("actor_id"))
    if not case_id or not actor_id:
        raise ValueError("Missing case_id or actor_id in workflow hook payload")

    if hook == workflow_hooks.HOOK_CLOSURE_REPORT:
        workflow_hooks.generate_closure_report(db, case_id, actor_id)
    elif hook == workflow_hooks.HOOK_ARCHIVAL:
        workflow_hooks.archive_case(db, case_id, actor_id)
    else:
        raise ValueError(f"Unknown workflow hook: {hook}")
    logger.info("Workflow hook %s completed for job %s", hook, job.id)
