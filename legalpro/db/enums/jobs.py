"""Job-related enums."""

from enum import Enum


class JobType(str, Enum):
    """Types of background jobs."""

    NOTIFICATION = "notification"  # Deliver one status/assignment notification
    WORKFLOW_HOOK = "workflow_hook"  # Status follow-up (closure, archival, on hold)
    REMINDER = "reminder"  # Delayed on-hold reminder
    ACTIVITY_RETENTION = "activity_retention"  # Soft-hide old activities


class JobStatus(str, Enum):
    """Status of background jobs."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
