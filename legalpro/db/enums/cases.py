"""Case-related enums."""

from enum import Enum


class CaseStatus(str, Enum):
    """Case lifecycle status. Transitions are defined in core.status_rules."""

    DRAFT = "draft"
    OPEN = "open"
    IN_REVIEW = "in_review"
    ON_HOLD = "on_hold"
    PENDING = "pending"
    CLOSED = "closed"
    DISMISSED = "dismissed"
    ARCHIVED = "archived"


class CasePriority(str, Enum):
    """Informational priority; does not gate workflow."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class CaseType(str, Enum):
    CIVIL = "civil"
    CRIMINAL = "criminal"
    FAMILY = "family"
    CORPORATE = "corporate"
    PROPERTY = "property"
    EMPLOYMENT = "employment"
    IMMIGRATION = "immigration"
    INTELLECTUAL_PROPERTY = "intellectual_property"
    TAX = "tax"
    CONSTITUTIONAL = "constitutional"
    ADMINISTRATIVE = "administrative"
    OTHER = "other"


class WorkloadLevel(str, Enum):
    """Ordinal advocate workload band (declaration order is the ordering)."""

    NONE = "none"
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"
    OVERLOADED = "overloaded"

    @property
    def rank(self) -> int:
        return list(WorkloadLevel).index(self)
