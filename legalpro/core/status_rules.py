"""Case status transitions, role gating and per-status action profiles."""

from dataclasses import dataclass, field

from legalpro.db.enums import CaseStatus, Role

STATUS_TRANSITIONS: dict[CaseStatus, tuple[CaseStatus, ...]] = {
    CaseStatus.DRAFT: (CaseStatus.OPEN, CaseStatus.DISMISSED),
    CaseStatus.OPEN: (
        CaseStatus.IN_REVIEW,
        CaseStatus.ON_HOLD,
        CaseStatus.PENDING,
        CaseStatus.CLOSED,
        CaseStatus.DISMISSED,
    ),
    CaseStatus.IN_REVIEW: (
        CaseStatus.OPEN,
        CaseStatus.ON_HOLD,
        CaseStatus.PENDING,
        CaseStatus.CLOSED,
        CaseStatus.DISMISSED,
    ),
    CaseStatus.ON_HOLD: (
        CaseStatus.OPEN,
        CaseStatus.IN_REVIEW,
        CaseStatus.PENDING,
        CaseStatus.DISMISSED,
    ),
    CaseStatus.PENDING: (
        CaseStatus.OPEN,
        CaseStatus.IN_REVIEW,
        CaseStatus.ON_HOLD,
        CaseStatus.CLOSED,
        CaseStatus.DISMISSED,
    ),
    CaseStatus.CLOSED: (CaseStatus.ARCHIVED,),
    CaseStatus.DISMISSED: (CaseStatus.ARCHIVED,),
    CaseStatus.ARCHIVED: (),
}

_WORKING_ROLES = (Role.ADVOCATE, Role.ADMIN, Role.SUPER_ADMIN)
_ADMIN_ROLES = (Role.ADMIN, Role.SUPER_ADMIN)

# Roles allowed to move a case INTO each status
STATUS_PERMISSIONS: dict[CaseStatus, tuple[Role, ...]] = {
    status: (_ADMIN_ROLES if status == CaseStatus.ARCHIVED else _WORKING_ROLES)
    for status in CaseStatus
}

TERMINAL_STATUSES: frozenset[CaseStatus] = frozenset(
    {CaseStatus.CLOSED, CaseStatus.DISMISSED, CaseStatus.ARCHIVED}
)


@dataclass(frozen=True)
class ActionProfile:
    """Side effects applied when a case enters a status."""

    progress: int | None = None
    date_field: str | None = None
    requires_reason: bool = False
    requires_outcome: bool = False
    requires_approval: bool = False
    notify: tuple[str, ...] = field(default_factory=tuple)

    def to_requirements(self) -> dict:
        return {
            "requires_reason": self.requires_reason,
            "requires_outcome": self.requires_outcome,
            "requires_approval": self.requires_approval,
            "notifications": list(self.notify),
            "auto_updates": {"progress": self.progress, "date_field": self.date_field},
        }


STATUS_ACTIONS: dict[CaseStatus, ActionProfile] = {
    CaseStatus.OPEN: ActionProfile(
        progress=10, date_field="date_assigned", notify=("advocate", "client")
    ),
    CaseStatus.IN_REVIEW: ActionProfile(progress=75, notify=("advocate", "admin")),
    CaseStatus.ON_HOLD: ActionProfile(requires_reason=True, notify=("advocate", "client")),
    CaseStatus.PENDING: ActionProfile(requires_reason=True, notify=("client",)),
    CaseStatus.CLOSED: ActionProfile(
        progress=100,
        date_field="actual_completion",
        requires_outcome=True,
        notify=("advocate", "client", "admin"),
    ),
    CaseStatus.DISMISSED: ActionProfile(
        progress=0,
        date_field="actual_completion",
        requires_reason=True,
        notify=("advocate", "client", "admin"),
    ),
    CaseStatus.ARCHIVED: ActionProfile(requires_approval=True, notify=("admin",)),
}

EMPTY_PROFILE = ActionProfile()

STATUS_LABELS: dict[CaseStatus, str] = {
    CaseStatus.DRAFT: "Draft",
    CaseStatus.OPEN: "Open",
    CaseStatus.IN_REVIEW: "In Review",
    CaseStatus.ON_HOLD: "On Hold",
    CaseStatus.PENDING: "Pending",
    CaseStatus.CLOSED: "Closed",
    CaseStatus.DISMISSED: "Dismissed",
    CaseStatus.ARCHIVED: "Archived",
}

STATUS_DESCRIPTIONS: dict[CaseStatus, str] = {
    CaseStatus.DRAFT: "Case is being prepared and not yet active",
    CaseStatus.OPEN: "Case is active and work is in progress",
    CaseStatus.IN_REVIEW: "Case is under review or awaiting decision",
    CaseStatus.ON_HOLD: "Case is temporarily paused",
    CaseStatus.PENDING: "Case is awaiting client action or external input",
    CaseStatus.CLOSED: "Case has been completed successfully",
    CaseStatus.DISMISSED: "Case has been dismissed or withdrawn",
    CaseStatus.ARCHIVED: "Case has been archived for long-term storage",
}


def coerce_status(value: str | CaseStatus) -> CaseStatus | None:
    """Return the CaseStatus for value, or None for unknown strings."""
    if isinstance(value, CaseStatus):
        return value
    try:
        return CaseStatus(value)
    except ValueError:
        return None


def is_valid_transition(current: str | CaseStatus, target: str | CaseStatus) -> bool:
    current_status = coerce_status(current)
    target_status = coerce_status(target)
    if current_status is None or target_status is None:
        return False
    return target_status in STATUS_TRANSITIONS.get(current_status, ())


def can_role_set_status(role: str | Role, target: str | CaseStatus) -> bool:
    target_status = coerce_status(target)
    if target_status is None:
        return False
    return role in STATUS_PERMISSIONS.get(target_status, ())


def get_action_profile(target: str | CaseStatus) -> ActionProfile:
    target_status = coerce_status(target)
    if target_status is None:
        return EMPTY_PROFILE
    return STATUS_ACTIONS.get(target_status, EMPTY_PROFILE)
