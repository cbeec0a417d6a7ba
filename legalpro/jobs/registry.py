"""Job handler registry."""

from __future__ import annotations

from typing import Awaitable, Callable, Mapping

from legalpro.db.enums import JobType
from legalpro.jobs.handlers import activities, notifications, reminders, workflows

JobHandler = Callable[[object, object], Awaitable[None]]

JOB_HANDLERS: Mapping[str, JobHandler] = {
    JobType.NOTIFICATION.value: notifications.process_notification,
    JobType.WORKFLOW_HOOK.value: workflows.process_workflow_hook,
    JobType.REMINDER.value: reminders.process_reminder,
    JobType.ACTIVITY_RETENTION.value: activities.process_activity_retention,
}


def resolve_job_handler(job_type: str) -> JobHandler:
    handler = JOB_HANDLERS.get(job_type)
    if not handler:
        raise ValueError(f"Unknown job type: {job_type}")
    return handler
