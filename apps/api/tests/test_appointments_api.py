"""End-to-end tests for the appointment endpoints."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from petcare.core.errors import BackendUnavailable, BookingRejected
from petcare.main import create_app
from petcare.models.enums import AppointmentStatus
from petcare.models.veterinarian import VeterinarianSummary
from petcare.repositories.appointments import HttpAppointmentRepository

OWNER_HEADERS = {"X-Actor-Id": "owner-1", "X-Actor-Role": "owner"}
VET_HEADERS = {"X-Actor-Id": "vet-1", "X-Actor-Role": "vet"}


@pytest.fixture
def app(repository):
    return create_app(repository=repository)


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http


def _booking_body(**overrides) -> dict[str, object]:
    tomorrow = datetime.now(timezone.utc) + timedelta(days=2)
    body: dict[str, object] = {
        "petId": "pet-1",
        "vetId": "vet-1",
        "type": "dental",
        "reason": "Bad breath",
        "preferredDate": tomorrow.date().isoformat(),
        "preferredTime": "09:30",
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_list_types(client) -> None:
    response = await client.get("/api/appointments/types")

    assert response.status_code == 200
    types = {item["value"]: item["duration_minutes"] for item in response.json()}
    assert types["vaccination"] == 15
    assert len(types) == 7


@pytest.mark.asyncio
async def test_book_appointment(client, repository) -> None:
    response = await client.post("/api/appointments", json=_booking_body(), headers=OWNER_HEADERS)

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["estimatedDurationMinutes"] == 45
    assert repository.created[0].reason == "Bad breath"
    assert repository.created[0].owner_id == "owner-1"


@pytest.mark.asyncio
async def test_invalid_booking_returns_field_errors(client, repository) -> None:
    response = await client.post(
        "/api/appointments",
        json=_booking_body(petId="", type="boarding", preferredDate="2020-01-01"),
        headers=OWNER_HEADERS,
    )

    assert response.status_code == 422
    codes = {error["code"] for error in response.json()["errors"]}
    assert codes == {"MissingPet", "MissingOrInvalidType", "DateNotInFuture"}
    assert repository.created == []


@pytest.mark.asyncio
async def test_veterinarian_cannot_book(client) -> None:
    response = await client.post("/api/appointments", json=_booking_body(), headers=VET_HEADERS)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_backend_rejection_keeps_status(client, repository) -> None:
    repository.fail_create_with = BookingRejected("Time slot is already booked", status_code=409)

    response = await client.post("/api/appointments", json=_booking_body(), headers=OWNER_HEADERS)

    assert response.status_code == 409
    assert response.json()["detail"] == "Time slot is already booked"


@pytest.mark.asyncio
async def test_missing_actor_headers(client) -> None:
    response = await client.get("/api/appointments")

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_role_is_rejected(client) -> None:
    response = await client.get("/api/appointments", headers={"X-Actor-Id": "x", "X-Actor-Role": "admin"})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_owner_listing_with_filters(client, repository, make_appointment) -> None:
    repository.add(make_appointment(id="a1"))
    repository.add(make_appointment(id="a2", status=AppointmentStatus.CONFIRMED))

    response = await client.get(
        "/api/appointments", params={"status": "confirmed", "limit": 5}, headers=OWNER_HEADERS
    )

    assert response.status_code == 200
    body = response.json()
    assert body["kind"] == "appointments"
    assert [item["id"] for item in body["appointments"]] == ["a2"]
    assert body["stats"]["confirmed"] == 1
    assert repository.list_calls[0][1].limit == 5


@pytest.mark.asyncio
async def test_veterinarian_listing_is_directory(client, repository) -> None:
    repository.veterinarians = [
        VeterinarianSummary(id="vet-1", name="Dr. Ada"),
        VeterinarianSummary(id="vet-2", name="Dr. Bea"),
    ]

    response = await client.get("/api/appointments", headers=VET_HEADERS)

    body = response.json()
    assert body["kind"] == "veterinarian_directory"
    assert [vet["id"] for vet in body["veterinarians"]] == ["vet-2"]


@pytest.mark.asyncio
async def test_get_appointment_requires_participant(client, repository, make_appointment) -> None:
    repository.add(make_appointment())

    allowed = await client.get("/api/appointments/appt-1", headers=OWNER_HEADERS)
    denied = await client.get(
        "/api/appointments/appt-1", headers={"X-Actor-Id": "owner-2", "X-Actor-Role": "owner"}
    )

    assert allowed.status_code == 200
    assert allowed.json()["petId"] == "pet-1"
    assert denied.status_code == 403


@pytest.mark.asyncio
async def test_missing_appointment_is_404(client) -> None:
    response = await client.get("/api/appointments/nope", headers=OWNER_HEADERS)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_summary_endpoint(client, repository, make_appointment) -> None:
    repository.add(make_appointment(scheduled_at=datetime(2026, 10, 20, 10, 0, tzinfo=timezone.utc)))

    response = await client.get("/api/appointments/appt-1/summary", headers=VET_HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["date_label"] == "Tuesday, October 20, 2026"
    assert body["end_time_label"] == "10:30 AM"


@pytest.mark.asyncio
async def test_confirm_then_complete(client, repository, make_appointment) -> None:
    repository.add(make_appointment())

    confirmed = await client.post("/api/appointments/appt-1/confirm", headers=VET_HEADERS)
    completed = await client.post(
        "/api/appointments/appt-1/complete",
        json={"diagnosis": "Healthy", "followUpDate": "2027-04-20"},
        headers=VET_HEADERS,
    )

    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "confirmed"
    assert completed.status_code == 200
    assert completed.json()["diagnosis"] == "Healthy"
    assert completed.json()["followUpDate"] == "2027-04-20"


@pytest.mark.asyncio
async def test_owner_cannot_confirm(client, repository, make_appointment) -> None:
    repository.add(make_appointment())

    response = await client.post("/api/appointments/appt-1/confirm", headers=OWNER_HEADERS)

    assert response.status_code == 403
    assert repository.updates == []


@pytest.mark.asyncio
async def test_cancel_flow(client, repository, make_appointment) -> None:
    repository.add(make_appointment())

    missing = await client.post("/api/appointments/appt-1/cancel", json={"reason": " "}, headers=OWNER_HEADERS)
    cancelled = await client.post(
        "/api/appointments/appt-1/cancel", json={"reason": "Moving away"}, headers=OWNER_HEADERS
    )
    repeated = await client.post(
        "/api/appointments/appt-1/cancel", json={"reason": "Moving away"}, headers=OWNER_HEADERS
    )
    confirm = await client.post("/api/appointments/appt-1/confirm", headers=VET_HEADERS)

    assert missing.status_code == 422
    assert cancelled.status_code == 200
    assert cancelled.json()["cancellationReason"] == "Moving away"
    assert repeated.status_code == 200
    assert confirm.status_code == 409
    assert len(repository.updates) == 1


@pytest.mark.asyncio
async def test_backend_outage_maps_to_503(client, repository, make_appointment) -> None:
    repository.add(make_appointment())
    repository.fail_updates_with = BackendUnavailable("connection refused")

    response = await client.post("/api/appointments/appt-1/confirm", headers=VET_HEADERS)

    assert response.status_code == 503
    assert repository.records["appt-1"].status is AppointmentStatus.PENDING


@pytest.mark.asyncio
async def test_propose_time(client, repository, make_appointment) -> None:
    repository.add(make_appointment())
    proposed = (datetime.now(timezone.utc) + timedelta(days=5)).replace(microsecond=0)

    response = await client.post(
        "/api/appointments/appt-1/propose-time",
        json={"proposedAt": proposed.isoformat(), "reason": "Work trip"},
        headers=OWNER_HEADERS,
    )

    assert response.status_code == 200
    [proposal] = response.json()["proposedTimeChanges"]
    assert proposal["proposedBy"] == "owner-1"
    assert proposal["status"] == "pending"


BACKEND_RECORD = {
    "_id": "appt-9",
    "pet": {"_id": "pet-1", "name": "Biscuit"},
    "owner": {"_id": "owner-1", "name": "Sam Rivera"},
    "vet": {"_id": "vet-1", "name": "Dr. Lee"},
    "type": "checkup",
    "reason": "Annual checkup",
    "appointmentDate": "2026-11-04T15:00:00.000Z",
    "status": "cancelled",
    "notes": "Cancelled by Sam Rivera: Pet recovered",
}


def _backend_client(record: dict[str, object]):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "data": [record]})

    backend = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://backend.test/api")
    app = create_app(repository=HttpAppointmentRepository(backend))
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver"), backend


@pytest.mark.asyncio
async def test_owner_listing_reads_reason_from_cancellation_note() -> None:
    http, backend = _backend_client(BACKEND_RECORD)
    async with http, backend:
        response = await http.get("/api/appointments", headers=OWNER_HEADERS)

    assert response.status_code == 200
    [item] = response.json()["appointments"]
    assert item["status"] == "cancelled"
    assert item["cancellationReason"] == "Pet recovered"


@pytest.mark.asyncio
async def test_malformed_backend_record_maps_to_502() -> None:
    http, backend = _backend_client({**BACKEND_RECORD, "type": "boarding"})
    async with http, backend:
        response = await http.get("/api/appointments", headers=OWNER_HEADERS)

    assert response.status_code == 502
    assert "malformed" in response.json()["detail"]
