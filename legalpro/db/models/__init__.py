"""SQLAlchemy ORM models."""

from legalpro.db.models.activities import ActivityNotificationRecipient, CaseActivity
from legalpro.db.models.auth import User
from legalpro.db.models.cases import Case, case_secondary_advocates
from legalpro.db.models.jobs import Job

__all__ = [
    "ActivityNotificationRecipient",
    "Case",
    "CaseActivity",
    "Job",
    "User",
    "case_secondary_advocates",
]
