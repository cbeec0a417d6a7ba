"""Enum definitions for application constants."""

from legalpro.db.enums.activities import (
    ActivityCategory,
    ActivityPriority,
    ActivitySource,
    ActivityType,
    NotificationDeliveryStatus,
    NotificationMethod,
)
from legalpro.db.enums.auth import Role
from legalpro.db.enums.cases import CasePriority, CaseStatus, CaseType, WorkloadLevel
from legalpro.db.enums.jobs import JobStatus, JobType

DEFAULT_CASE_STATUS = CaseStatus.DRAFT
DEFAULT_CASE_PRIORITY = CasePriority.MEDIUM
DEFAULT_JOB_STATUS = JobStatus.PENDING

# Statuses counted as active caseload for an advocate
ACTIVE_CASE_STATUSES: frozenset[CaseStatus] = frozenset(
    {CaseStatus.OPEN, CaseStatus.IN_REVIEW, CaseStatus.PENDING}
)

# Roles that can hold an advocate assignment
ADVOCATE_ROLES: tuple[Role, ...] = (Role.ADVOCATE, Role.ADMIN, Role.SUPER_ADMIN)
ADMIN_ROLES: tuple[Role, ...] = (Role.ADMIN, Role.SUPER_ADMIN)

__all__ = [
    "ACTIVE_CASE_STATUSES",
    "ADMIN_ROLES",
    "ADVOCATE_ROLES",
    "ActivityCategory",
    "ActivityPriority",
    "ActivitySource",
    "ActivityType",
    "CasePriority",
    "CaseStatus",
    "CaseType",
    "DEFAULT_CASE_PRIORITY",
    "DEFAULT_CASE_STATUS",
    "DEFAULT_JOB_STATUS",
    "JobStatus",
    "JobType",
    "NotificationDeliveryStatus",
    "NotificationMethod",
    "Role",
    "WorkloadLevel",
]
