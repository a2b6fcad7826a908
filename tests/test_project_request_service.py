import pytest

from app.core.exceptions import InvalidTransition, ProjectRequestNotFound, ValidationFailed
from app.models.project_request import ProjectRequestStatus
from app.schemas.project_request import ProjectRequestCreate, ProjectRequestUpdate
from app.services.event_dispatcher import EventType, subscribe
from app.services.project_request import ProjectRequestService
from tests.conftest import _make_user


def _payload(**overrides) -> ProjectRequestCreate:
    data = {
        "customer_name": "Hasan Demir",
        "customer_email": "Hasan.Demir@Example.com",
        "customer_phone": "+90 532 000 00 00",
        "location": "Edirne",
        "project_type": "ROOFTOP",
        "estimated_capacity_kw": "10",
    }
    data.update(overrides)
    return ProjectRequestCreate(**data)


async def test_create_writes_initial_history(db, company, company_user):
    service = ProjectRequestService(db)
    request = await service.create_request(company.id, _payload(), actor=company_user)

    assert request.status == ProjectRequestStatus.OPEN
    assert request.request_number.startswith("PR-")
    assert request.customer_email == "hasan.demir@example.com"
    assert len(request.status_history) == 1
    entry = request.status_history[0]
    assert entry.status == ProjectRequestStatus.OPEN
    assert entry.previous_status is None
    assert entry.user_id == company_user.id
    assert entry.note == "Proje talebi oluşturuldu"


async def test_open_to_site_visit_is_rejected(db, company):
    service = ProjectRequestService(db)
    request = await service.create_request(company.id, _payload())
    request_id = request.id

    with pytest.raises(InvalidTransition) as excinfo:
        await service.transition_status(company.id, request_id, "SITE_VISIT")

    assert excinfo.value.message == "Invalid status transition from OPEN to SITE_VISIT"
    await db.rollback()
    reloaded = await service.get_request(company.id, request_id)
    assert reloaded.status == ProjectRequestStatus.OPEN
    assert len(reloaded.status_history) == 1


async def test_assigned_to_converted_appends_one_history_entry(db, company, company_user):
    service = ProjectRequestService(db)
    request = await service.create_request(company.id, _payload())
    request = await service.transition_status(company.id, request.id, "ASSIGNED", actor=company_user)
    before = len(request.status_history)

    request = await service.transition_status(
        company.id, request.id, ProjectRequestStatus.CONVERTED_TO_PROJECT, actor=company_user
    )

    assert request.status == ProjectRequestStatus.CONVERTED_TO_PROJECT
    assert len(request.status_history) == before + 1
    latest = max(request.status_history, key=lambda h: h.timestamp)
    assert latest.status == ProjectRequestStatus.CONVERTED_TO_PROJECT
    assert latest.previous_status == ProjectRequestStatus.ASSIGNED
    assert latest.user_name == company_user.full_name
    assert latest.note == "Durum Projeye Dönüştürüldü olarak güncellendi"


async def test_same_status_is_not_a_transition(db, company):
    service = ProjectRequestService(db)
    request = await service.create_request(company.id, _payload())

    with pytest.raises(InvalidTransition):
        await service.transition_status(company.id, request.id, "OPEN")


async def test_transition_without_actor_is_recorded_as_system(db, company):
    service = ProjectRequestService(db)
    request = await service.create_request(company.id, _payload())

    request = await service.transition_status(company.id, request.id, "LOST", note="Bütçe yetersiz")

    latest = max(request.status_history, key=lambda h: h.timestamp)
    assert latest.user_id is None
    assert latest.user_name == "System"
    assert latest.note == "Bütçe yetersiz"


async def test_transition_emits_status_changed(db, company, company_user):
    received = []

    async def handler(event):
        received.append(event)

    subscribe(EventType.PROJECT_REQUEST_STATUS_CHANGED, handler)
    service = ProjectRequestService(db)
    request = await service.create_request(company.id, _payload(assigned_engineer_id=company_user.id))

    await service.transition_status(company.id, request.id, "CONTACTED")

    assert len(received) == 1
    assert received[0].data["previous_status"] == "OPEN"
    assert received[0].data["status"] == "CONTACTED"
    assert received[0].target_user_id == company_user.id


async def test_unknown_request_raises_not_found(db, company):
    service = ProjectRequestService(db)
    with pytest.raises(ProjectRequestNotFound):
        await service.transition_status(company.id, "missing", "CONTACTED")


async def test_requests_are_scoped_to_company(db, company, other_company):
    service = ProjectRequestService(db)
    request = await service.create_request(company.id, _payload())

    with pytest.raises(ProjectRequestNotFound):
        await service.get_request(other_company.id, request.id)


async def test_add_note_appends_entry(db, company, company_user):
    service = ProjectRequestService(db)
    request = await service.create_request(company.id, _payload())

    request = await service.add_note(company.id, request.id, "İlk görüşme yapıldı", actor=company_user)
    request = await service.add_note(company.id, request.id, "Teklif hazırlanacak", actor=company_user)

    assert len(request.notes) == 2
    assert request.notes[0].endswith(f"{company_user.full_name}: İlk görüşme yapıldı")
    assert request.notes[1].endswith("Teklif hazırlanacak")


async def test_add_blank_note_fails(db, company):
    service = ProjectRequestService(db)
    request = await service.create_request(company.id, _payload())

    with pytest.raises(ValidationFailed):
        await service.add_note(company.id, request.id, "   ")


async def test_update_rejects_engineer_from_other_company(db, company, other_company):
    outsider = await _make_user(other_company.id, "COMPANY", "Zeynep")
    service = ProjectRequestService(db)
    request = await service.create_request(company.id, _payload())

    with pytest.raises(ValidationFailed):
        await service.update_request(
            company.id, request.id, ProjectRequestUpdate(assigned_engineer_id=outsider.id)
        )


async def test_list_orders_by_priority_then_newest(db, company):
    service = ProjectRequestService(db)
    low = await service.create_request(company.id, _payload(customer_name="Düşük", priority="LOW"))
    high = await service.create_request(company.id, _payload(customer_name="Yüksek", priority="HIGH"))
    medium = await service.create_request(company.id, _payload(customer_name="Orta"))

    requests = await service.list_requests(company.id)

    assert [r.id for r in requests] == [high.id, medium.id, low.id]


async def test_company_staff_see_own_and_unassigned(db, company, company_user, admin_user):
    service = ProjectRequestService(db)
    mine = await service.create_request(company.id, _payload(assigned_engineer_id=company_user.id))
    pool = await service.create_request(company.id, _payload())
    theirs = await service.create_request(company.id, _payload(assigned_engineer_id=admin_user.id))

    visible = {r.id for r in await service.list_requests(company.id, viewer=company_user)}
    everything = {r.id for r in await service.list_requests(company.id, viewer=admin_user)}

    assert visible == {mine.id, pool.id}
    assert everything == {mine.id, pool.id, theirs.id}


async def test_list_filters_by_status_and_search(db, company):
    service = ProjectRequestService(db)
    lost = await service.create_request(company.id, _payload(customer_name="Ali Kaya", location="Tekirdağ"))
    await service.transition_status(company.id, lost.id, "LOST")
    await service.create_request(company.id, _payload(customer_name="Veli Kaya"))

    assert [r.id for r in await service.list_requests(company.id, status="LOST")] == [lost.id]
    assert [r.id for r in await service.list_requests(company.id, search="Tekirdağ")] == [lost.id]


async def test_to_response_lists_history_newest_first(db, company):
    service = ProjectRequestService(db)
    request = await service.create_request(company.id, _payload())
    request = await service.transition_status(company.id, request.id, "CONTACTED")

    response = service.to_response(request)

    assert response.status == "CONTACTED"
    assert response.status_label == "İletişime Geçildi"
    assert set(response.valid_transitions) == {"ASSIGNED", "SITE_VISIT", "LOST", "OPEN"}
    assert [h.status for h in response.status_history] == ["CONTACTED", "OPEN"]
