"""Errors raised by the case workflow services.

All are raised before anything is persisted; the API maps them to HTTP
status codes in one place (see legalpro.main).
"""


class CaseServiceError(Exception):
    """Base error for case workflow and assignment operations."""

    pass


class NotFoundError(CaseServiceError):
    pass


class CaseNotFoundError(NotFoundError):
    def __init__(self, case_id) -> None:
        super().__init__(f"Case {case_id} not found")
        self.case_id = case_id


class AdvocateNotFoundError(NotFoundError):
    def __init__(self, advocate_id) -> None:
        super().__init__(f"Advocate {advocate_id} not found")
        self.advocate_id = advocate_id


class ActivityNotFoundError(NotFoundError):
    def __init__(self, activity_id) -> None:
        super().__init__(f"Activity {activity_id} not found")
        self.activity_id = activity_id


class InvalidTransitionError(CaseServiceError):
    """The requested status is not reachable from the current one."""

    def __init__(self, current_status: str, target_status: str) -> None:
        super().__init__(f"Invalid status transition from {current_status} to {target_status}")
        self.current_status = current_status
        self.target_status = target_status


class ForbiddenError(CaseServiceError):
    """The actor's role or assignment does not permit the operation."""

    pass


class CaseValidationError(CaseServiceError):
    """Required input missing or a case invariant would be broken."""

    pass


class CapacityExceededError(CaseServiceError):
    def __init__(self, advocate_id, active_cases: int, max_cases: int) -> None:
        super().__init__(
            f"Advocate {advocate_id} has reached maximum case capacity "
            f"({active_cases}/{max_cases})"
        )
        self.advocate_id = advocate_id
        self.active_cases = active_cases
        self.max_cases = max_cases


class NoCandidatesError(CaseServiceError):
    """Auto-assignment found no advocate matching the criteria."""

    pass


class AlreadyAssignedError(CaseServiceError):
    pass


class NotAssignedError(CaseServiceError):
    pass


class InvalidRoleError(CaseServiceError):
    """The user cannot hold an advocate assignment."""

    pass


class ConcurrentModificationError(CaseServiceError):
    """The case row changed between load and commit."""

    pass
