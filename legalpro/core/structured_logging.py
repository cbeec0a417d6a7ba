"""Structured logging helpers (client-confidential safe)."""

from typing import Any


def build_log_context(
    *,
    user_id: str | None = None,
    case_id: str | None = None,
    job_id: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict carrying identifiers only, never case content."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = user_id
    if case_id:
        context["case_id"] = case_id
    if job_id:
        context["job_id"] = job_id
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
