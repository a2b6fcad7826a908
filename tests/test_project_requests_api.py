from tests.conftest import auth_headers


LEAD = {
    "customer_name": "Murat Aydın",
    "customer_email": "murat@example.com",
    "location": "Kırklareli",
    "project_type": "AGRICULTURAL",
    "estimated_capacity_kw": "50",
    "source": "PHONE",
}


async def _create_lead(client, user, **overrides):
    response = await client.post("/api/project-requests", json={**LEAD, **overrides}, headers=auth_headers(user))
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_lead_starts_open(client, company_user):
    lead = await _create_lead(client, company_user)

    assert lead["status"] == "OPEN"
    assert lead["status_label"] == "Açık"
    assert lead["priority"] == "MEDIUM"
    assert sorted(lead["valid_transitions"]) == ["ASSIGNED", "CONTACTED", "LOST"]
    assert len(lead["status_history"]) == 1
    assert lead["status_history"][0]["user_name"] == company_user.full_name


async def test_customer_can_submit_a_lead(client, customer_user):
    lead = await _create_lead(client, customer_user)

    assert lead["status"] == "OPEN"


async def test_valid_status_change(client, company_user):
    lead = await _create_lead(client, company_user)
    headers = auth_headers(company_user)

    response = await client.patch(
        f"/api/project-requests/{lead['id']}/status", json={"status": "ASSIGNED"}, headers=headers
    )
    assert response.status_code == 200
    response = await client.patch(
        f"/api/project-requests/{lead['id']}/status",
        json={"status": "CONVERTED_TO_PROJECT", "note": "Sözleşme imzalandı"},
        headers=headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "CONVERTED_TO_PROJECT"
    assert body["valid_transitions"] == ["SITE_VISIT"]
    assert len(body["status_history"]) == 3
    newest = body["status_history"][0]
    assert newest["status"] == "CONVERTED_TO_PROJECT"
    assert newest["previous_status"] == "ASSIGNED"
    assert newest["note"] == "Sözleşme imzalandı"


async def test_invalid_status_change_returns_400(client, company_user):
    lead = await _create_lead(client, company_user)

    response = await client.patch(
        f"/api/project-requests/{lead['id']}/status", json={"status": "SITE_VISIT"}, headers=auth_headers(company_user)
    )

    assert response.status_code == 400
    assert response.json() == {
        "error": "invalid_transition",
        "message": "Invalid status transition from OPEN to SITE_VISIT",
        "details": {"from": "OPEN", "to": "SITE_VISIT"},
    }
    fetched = await client.get(f"/api/project-requests/{lead['id']}", headers=auth_headers(company_user))
    assert fetched.json()["status"] == "OPEN"
    assert len(fetched.json()["status_history"]) == 1


async def test_unknown_status_value_is_rejected(client, company_user):
    lead = await _create_lead(client, company_user)

    response = await client.patch(
        f"/api/project-requests/{lead['id']}/status", json={"status": "ARCHIVED"}, headers=auth_headers(company_user)
    )

    assert response.status_code == 422


async def test_installation_team_cannot_change_status(client, company_user, installer_user):
    lead = await _create_lead(client, company_user)

    view = await client.get(f"/api/project-requests/{lead['id']}", headers=auth_headers(installer_user))
    change = await client.patch(
        f"/api/project-requests/{lead['id']}/status", json={"status": "CONTACTED"}, headers=auth_headers(installer_user)
    )

    assert view.status_code == 200
    assert change.status_code == 403


async def test_transition_hint_endpoint(client, customer_user):
    response = await client.get("/api/project-requests/statuses/LOST/transitions", headers=auth_headers(customer_user))

    assert response.status_code == 200
    assert response.json() == {
        "status": "LOST",
        "valid_transitions": ["OPEN", "CONTACTED", "ASSIGNED", "SITE_VISIT"],
    }


async def test_add_note(client, company_user):
    lead = await _create_lead(client, company_user)

    response = await client.post(
        f"/api/project-requests/{lead['id']}/notes", json={"note": "Çatı ölçüsü alındı"}, headers=auth_headers(company_user)
    )

    assert response.status_code == 200
    notes = response.json()["notes"]
    assert len(notes) == 1
    assert notes[0].endswith(f"{company_user.full_name}: Çatı ölçüsü alındı")


async def test_blank_note_is_rejected(client, company_user):
    lead = await _create_lead(client, company_user)

    response = await client.post(
        f"/api/project-requests/{lead['id']}/notes", json={"note": "   "}, headers=auth_headers(company_user)
    )

    assert response.status_code == 422


async def test_update_assigns_engineer(client, admin_user, company_user):
    lead = await _create_lead(client, admin_user)

    response = await client.patch(
        f"/api/project-requests/{lead['id']}",
        json={"assigned_engineer_id": company_user.id, "priority": "HIGH"},
        headers=auth_headers(admin_user),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["assigned_engineer_name"] == company_user.full_name
    assert body["priority"] == "HIGH"
    assert body["status"] == "OPEN"


async def test_list_filters_by_status(client, company_user):
    open_lead = await _create_lead(client, company_user)
    lost_lead = await _create_lead(client, company_user, customer_name="Kaybedilen")
    await client.patch(
        f"/api/project-requests/{lost_lead['id']}/status", json={"status": "LOST"}, headers=auth_headers(company_user)
    )

    response = await client.get("/api/project-requests", params={"status": "OPEN"}, headers=auth_headers(company_user))

    assert [r["id"] for r in response.json()] == [open_lead["id"]]


async def test_missing_request_returns_404(client, company_user):
    response = await client.get("/api/project-requests/missing", headers=auth_headers(company_user))

    assert response.status_code == 404
    assert response.json()["error"] == "project_request_not_found"
