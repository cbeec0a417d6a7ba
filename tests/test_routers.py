"""
API tests for the case, workflow, assignment and activity routers.

Service behaviour is covered in the service tests; these check wiring,
auth and the error-to-status mapping.
"""
import uuid

import pytest
from httpx import AsyncClient

from legalpro.db.enums import CaseStatus, Role
from legalpro.core.security import create_session_token


# =============================================================================
# Auth
# =============================================================================

@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_requires_authentication(client: AsyncClient, make_case):
    case = make_case()
    response = await client.get(f"/cases/{case.id}")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_invalid_token_rejected(client: AsyncClient, make_case):
    case = make_case()
    response = await client.get(
        f"/cases/{case.id}", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_revoked_token_rejected(client: AsyncClient, db, make_case, advocate):
    case = make_case(primary=advocate)
    token = create_session_token(advocate.id, advocate.role, token_version=advocate.token_version)
    advocate.token_version += 1
    db.commit()

    response = await client.get(f"/cases/{case.id}", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_cookie_mutation_requires_csrf_header(client: AsyncClient, admin_auth):
    response = await client.post(
        "/cases",
        json={"title": "Tenancy dispute"},
        headers={"Cookie": f"{admin_auth.cookie_name}={admin_auth.token}"},
    )
    assert response.status_code == 403


# =============================================================================
# Cases
# =============================================================================

@pytest.mark.asyncio
async def test_create_and_get_case(authed_client: AsyncClient):
    response = await authed_client.post(
        "/cases",
        json={"title": "Tenancy dispute", "case_type": "property", "priority": "high"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "draft"
    assert data["case_number"].startswith("CASE-")
    assert data["version"] >= 1

    response = await authed_client.get(f"/cases/{data['id']}")
    assert response.status_code == 200
    assert response.json()["title"] == "Tenancy dispute"


@pytest.mark.asyncio
async def test_client_cannot_create_case(client: AsyncClient, client_user, auth_headers):
    response = await client.post(
        "/cases", json={"title": "Self-filed"}, headers=auth_headers(client_user)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_case_hidden_from_other_clients(
    client: AsyncClient, make_case, make_user, client_user, auth_headers
):
    case = make_case(client=client_user)
    stranger = make_user(Role.CLIENT)

    assert (await client.get(f"/cases/{case.id}", headers=auth_headers(client_user))).status_code == 200
    assert (await client.get(f"/cases/{case.id}", headers=auth_headers(stranger))).status_code == 404


# =============================================================================
# Workflow
# =============================================================================

@pytest.mark.asyncio
async def test_change_status(client: AsyncClient, make_case, advocate, auth_headers):
    case = make_case(primary=advocate)

    response = await client.post(
        f"/cases/{case.id}/status",
        json={"status": "open"},
        headers={**auth_headers(advocate), "User-Agent": "legalpro-tests"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["previous_status"] == "draft"
    assert data["new_status"] == "open"
    assert data["case"]["progress"] == 10

    history = await client.get(
        f"/cases/{case.id}/status-history", headers=auth_headers(advocate)
    )
    assert history.status_code == 200
    assert history.json()[0]["new_status"] == "open"


@pytest.mark.asyncio
async def test_status_errors_map_to_http_codes(
    client: AsyncClient, make_case, advocate, other_advocate, auth_headers
):
    draft = make_case()
    open_case = make_case(primary=advocate, status=CaseStatus.OPEN)

    missing_primary = await client.post(
        f"/cases/{draft.id}/status", json={"status": "open"}, headers=auth_headers(advocate)
    )
    invalid = await client.post(
        f"/cases/{open_case.id}/status", json={"status": "draft"}, headers=auth_headers(advocate)
    )
    forbidden = await client.post(
        f"/cases/{open_case.id}/status",
        json={"status": "in_review"},
        headers=auth_headers(other_advocate),
    )
    not_found = await client.post(
        f"/cases/{uuid.uuid4()}/status", json={"status": "open"}, headers=auth_headers(advocate)
    )

    # Advocate not assigned to the draft case
    assert missing_primary.status_code == 403
    assert invalid.status_code == 409
    assert invalid.json()["error"] == "InvalidTransitionError"
    assert forbidden.status_code == 403
    assert not_found.status_code == 404


@pytest.mark.asyncio
async def test_missing_requirement_is_unprocessable(authed_client: AsyncClient, make_case, advocate):
    case = make_case(primary=advocate, status=CaseStatus.OPEN)

    response = await authed_client.post(f"/cases/{case.id}/status", json={"status": "closed"})

    assert response.status_code == 422
    assert "outcome" in response.json()["detail"]


@pytest.mark.asyncio
async def test_transitions_endpoint(authed_client: AsyncClient, make_case, advocate):
    case = make_case(primary=advocate, status=CaseStatus.CLOSED)

    response = await authed_client.get(f"/cases/{case.id}/transitions")

    assert response.status_code == 200
    assert [t["status"] for t in response.json()] == ["archived"]


@pytest.mark.asyncio
async def test_bulk_status_is_admin_only(
    client: AsyncClient, authed_client: AsyncClient, make_case, advocate, auth_headers
):
    cases = [make_case(primary=advocate) for _ in range(2)]
    body = {"case_ids": [str(c.id) for c in cases], "status": "open"}

    denied = await client.post("/workflow/bulk-status", json=body, headers=auth_headers(advocate))
    assert denied.status_code == 403

    response = await authed_client.post("/workflow/bulk-status", json=body)
    assert response.status_code == 200
    assert len(response.json()["successful"]) == 2
    assert response.json()["total"] == 2


@pytest.mark.asyncio
async def test_workflow_config_and_statistics(authed_client: AsyncClient, make_case, advocate):
    make_case(primary=advocate, status=CaseStatus.OPEN)

    config = await authed_client.get("/workflow/config")
    stats = await authed_client.get("/workflow/statistics")

    assert config.status_code == 200
    assert len(config.json()["statuses"]) == 8
    assert stats.status_code == 200
    assert stats.json()["total_cases"] == 1


# =============================================================================
# Assignments
# =============================================================================

@pytest.mark.asyncio
async def test_assign_and_remove_advocates(
    authed_client: AsyncClient, make_case, advocate, other_advocate
):
    case = make_case()

    primary = await authed_client.post(
        f"/cases/{case.id}/advocates/primary", json={"advocate_id": str(advocate.id)}
    )
    assert primary.status_code == 200
    assert primary.json()["case"]["primary_advocate_id"] == str(advocate.id)
    assert primary.json()["advocate"]["name"] == advocate.full_name

    duplicate = await authed_client.post(
        f"/cases/{case.id}/advocates/primary", json={"advocate_id": str(advocate.id)}
    )
    assert duplicate.status_code == 409

    secondary = await authed_client.post(
        f"/cases/{case.id}/advocates/secondary", json={"advocate_id": str(other_advocate.id)}
    )
    assert secondary.status_code == 200
    assert secondary.json()["case"]["secondary_advocate_ids"] == [str(other_advocate.id)]

    no_replacement = await authed_client.post(
        f"/cases/{case.id}/advocates/remove", json={"advocate_id": str(advocate.id)}
    )
    assert no_replacement.status_code == 422

    history = await authed_client.get(f"/cases/{case.id}/assignment-history")
    assert len(history.json()) == 2


@pytest.mark.asyncio
async def test_auto_assign_endpoint(authed_client: AsyncClient, make_case, advocate):
    case = make_case()

    response = await authed_client.post(f"/cases/{case.id}/auto-assign", json={})

    assert response.status_code == 200
    data = response.json()
    assert data["auto_assignment"] is True
    assert data["advocate"]["id"] == str(advocate.id)


@pytest.mark.asyncio
async def test_auto_assign_without_candidates(authed_client: AsyncClient, make_case):
    case = make_case()

    response = await authed_client.post(
        f"/cases/{case.id}/auto-assign", json={"preferred_specialization": "maritime"}
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_transfer_endpoint(authed_client: AsyncClient, make_case, advocate, other_advocate):
    case = make_case(primary=advocate, status=CaseStatus.OPEN)

    response = await authed_client.post(
        f"/cases/{case.id}/transfer",
        json={"from_advocate_id": str(advocate.id), "to_advocate_id": str(other_advocate.id)},
    )

    assert response.status_code == 200
    assert response.json()["previous_advocate_id"] == str(advocate.id)


@pytest.mark.asyncio
async def test_primary_assignment_respects_max_cases(
    authed_client: AsyncClient, make_case, advocate
):
    make_case(primary=advocate, status=CaseStatus.OPEN)
    case = make_case()

    response = await authed_client.post(
        f"/cases/{case.id}/advocates/primary",
        json={"advocate_id": str(advocate.id), "max_cases": 1},
    )

    assert response.status_code == 409
    assert response.json()["error"] == "CapacityExceededError"


@pytest.mark.asyncio
async def test_unassigned_advocate_cannot_take_over_case(
    client: AsyncClient, make_case, advocate, other_advocate, auth_headers
):
    case = make_case(primary=advocate, status=CaseStatus.OPEN)
    headers = auth_headers(other_advocate)
    base = f"/cases/{case.id}"

    responses = [
        await client.post(
            f"{base}/advocates/primary",
            json={"advocate_id": str(other_advocate.id)},
            headers=headers,
        ),
        await client.post(
            f"{base}/advocates/secondary",
            json={"advocate_id": str(other_advocate.id)},
            headers=headers,
        ),
        await client.post(
            f"{base}/advocates/remove",
            json={
                "advocate_id": str(advocate.id),
                "replacement_advocate_id": str(other_advocate.id),
            },
            headers=headers,
        ),
        await client.post(
            f"{base}/transfer",
            json={"from_advocate_id": str(advocate.id), "to_advocate_id": str(other_advocate.id)},
            headers=headers,
        ),
        await client.post(
            f"{base}/status", json={"status": "closed", "outcome": "Settled"}, headers=headers
        ),
    ]

    assert [r.status_code for r in responses] == [403] * 5
    detail = await client.get(base, headers=auth_headers(advocate))
    assert detail.json()["primary_advocate_id"] == str(advocate.id)
    assert detail.json()["status"] == "open"


@pytest.mark.asyncio
async def test_primary_advocate_adds_secondary(
    client: AsyncClient, make_case, advocate, other_advocate, auth_headers
):
    case = make_case(primary=advocate)

    response = await client.post(
        f"/cases/{case.id}/advocates/secondary",
        json={"advocate_id": str(other_advocate.id)},
        headers=auth_headers(advocate),
    )

    assert response.status_code == 200
    assert response.json()["case"]["secondary_advocate_ids"] == [str(other_advocate.id)]


@pytest.mark.asyncio
async def test_workload_visibility(
    client: AsyncClient, make_case, advocate, other_advocate, auth_headers
):
    make_case(primary=advocate, status=CaseStatus.OPEN)

    own = await client.get(f"/advocates/{advocate.id}/workload", headers=auth_headers(advocate))
    other = await client.get(
        f"/advocates/{advocate.id}/workload", headers=auth_headers(other_advocate)
    )

    assert own.status_code == 200
    assert own.json()["active_cases"] == 1
    assert own.json()["workload_level"] == "light"
    assert other.status_code == 403


@pytest.mark.asyncio
async def test_available_advocates(authed_client: AsyncClient, advocate, other_advocate):
    response = await authed_client.get(
        "/advocates/available", params={"specialization": "criminal"}
    )

    assert response.status_code == 200
    assert [a["id"] for a in response.json()] == [str(advocate.id)]


@pytest.mark.asyncio
async def test_assignment_statistics_admin_only(
    client: AsyncClient, authed_client: AsyncClient, advocate, auth_headers
):
    assert (await authed_client.get("/assignments/statistics")).status_code == 200
    denied = await client.get("/assignments/statistics", headers=auth_headers(advocate))
    assert denied.status_code == 403


# =============================================================================
# Activities
# =============================================================================

@pytest.mark.asyncio
async def test_log_and_list_activities(client: AsyncClient, make_case, advocate, auth_headers):
    case = make_case(primary=advocate)
    headers = auth_headers(advocate)

    created = await client.post(
        f"/cases/{case.id}/activities",
        json={
            "activity_type": "note_added",
            "action": "Note Added",
            "description": "Hearing moved to Friday",
            "tags": ["hearing"],
        },
        headers=headers,
    )
    assert created.status_code == 201
    assert created.json()["performed_by_id"] == str(advocate.id)

    timeline = await client.get(
        f"/cases/{case.id}/activities",
        params={"activity_types": ["note_added"], "limit": 10},
        headers=headers,
    )
    assert timeline.status_code == 200
    body = timeline.json()
    assert body["pagination"]["total"] == 1
    assert body["items"][0]["description"] == "Hearing moved to Friday"


@pytest.mark.asyncio
async def test_mark_important_and_hide(authed_client: AsyncClient, make_case, advocate):
    case = make_case(primary=advocate)
    timeline = await authed_client.get(f"/cases/{case.id}/activities")
    activity_id = timeline.json()["items"][0]["id"]

    important = await authed_client.post(f"/activities/{activity_id}/important")
    hidden = await authed_client.post(f"/activities/{activity_id}/hide")

    assert important.json()["is_important"] is True
    assert hidden.json()["is_visible"] is False
    timeline = await authed_client.get(f"/cases/{case.id}/activities")
    assert timeline.json()["pagination"]["total"] == 0


@pytest.mark.asyncio
async def test_mark_important_requires_case_access(
    client: AsyncClient, make_case, advocate, other_advocate, auth_headers
):
    case = make_case(primary=advocate)
    timeline = await client.get(f"/cases/{case.id}/activities", headers=auth_headers(advocate))
    activity_id = timeline.json()["items"][0]["id"]

    denied = await client.post(
        f"/activities/{activity_id}/important", headers=auth_headers(other_advocate)
    )
    allowed = await client.post(
        f"/activities/{activity_id}/important", headers=auth_headers(advocate)
    )
    missing = await client.post(
        f"/activities/{uuid.uuid4()}/important", headers=auth_headers(advocate)
    )

    assert denied.status_code == 403
    assert allowed.status_code == 200
    assert allowed.json()["is_important"] is True
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_export_csv(authed_client: AsyncClient, make_case):
    make_case()

    response = await authed_client.get("/activities/export", params={"format": "csv"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.text.splitlines()[0].startswith("id,case_id,case_number")


@pytest.mark.asyncio
async def test_summary_and_user_activity(
    client: AsyncClient, make_case, advocate, other_advocate, auth_headers
):
    make_case(primary=advocate)

    summary = await client.get("/activities/summary", headers=auth_headers(advocate))
    own = await client.get(f"/users/{advocate.id}/activities", headers=auth_headers(advocate))
    other = await client.get(
        f"/users/{advocate.id}/activities", headers=auth_headers(other_advocate)
    )

    assert summary.status_code == 200
    assert summary.json()["today"] == 1
    assert own.status_code == 200
    assert other.status_code == 403


@pytest.mark.asyncio
async def test_statistics_and_cleanup(authed_client: AsyncClient, make_case):
    make_case()

    stats = await authed_client.get("/activities/statistics")
    cleanup = await authed_client.post("/activities/cleanup", params={"days_to_keep": 30})

    assert stats.json()["total"] == 1
    assert cleanup.status_code == 200
    assert cleanup.json()["hidden_activities"] == 0
