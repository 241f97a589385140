"""Access to the remote appointment store.

The backend owns persistence and authorization. This module only maps the
scheduling operations onto its REST endpoints and translates failures into
``BackendError`` subclasses.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..core.config import Settings
from ..core.errors import BackendError, BackendUnavailable, BookingRejected, TransitionRejected
from ..models.actor import Actor
from ..models.appointment import Appointment, TimeChangeProposal
from ..models.veterinarian import VeterinarianSummary
from ..schemas.appointments import AppointmentFilters
from ..schemas.booking import BookingPayload
from ..services.transitions import StatusChange

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class AppointmentRepository(Protocol):
    """Operations the scheduling core needs from the backend."""

    async def create_appointment(
        self, payload: BookingPayload, *, actor: Actor | None = None
    ) -> Appointment: ...

    async def list_appointments(self, owner_id: str, filters: AppointmentFilters) -> list[Appointment]: ...

    async def get_appointment(self, appointment_id: str) -> Appointment: ...

    async def update_status(
        self, appointment_id: str, change: StatusChange, *, actor: Actor | None = None
    ) -> Appointment: ...

    async def list_veterinarians(self) -> list[VeterinarianSummary]: ...

    async def propose_time_change(
        self, appointment_id: str, proposal: TimeChangeProposal, *, actor: Actor | None = None
    ) -> Appointment: ...


class HttpAppointmentRepository:
    """``AppointmentRepository`` backed by the platform REST API."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, config: Settings) -> "HttpAppointmentRepository":
        headers = {"Accept": "application/json"}
        if config.backend_api_token:
            headers["Authorization"] = f"Bearer {config.backend_api_token}"
        client = httpx.AsyncClient(
            base_url=config.backend_base_url,
            timeout=config.backend_timeout_seconds,
            headers=headers,
        )
        return cls(client)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def create_appointment(self, payload: BookingPayload, *, actor: Actor | None = None) -> Appointment:
        body = payload.model_dump(by_alias=True, mode="json", exclude_none=True)
        data = await self._request(
            "POST",
            "/appointments",
            json=body,
            headers=_actor_headers(actor),
            rejection=BookingRejected,
        )
        return _parse(Appointment, data)

    async def list_appointments(self, owner_id: str, filters: AppointmentFilters) -> list[Appointment]:
        data = await self._request("GET", "/appointments", params=filters.to_query_params(owner_id))
        return [_parse(Appointment, item) for item in data or []]

    async def get_appointment(self, appointment_id: str) -> Appointment:
        data = await self._request("GET", f"/appointments/{appointment_id}")
        return _parse(Appointment, data)

    async def update_status(
        self, appointment_id: str, change: StatusChange, *, actor: Actor | None = None
    ) -> Appointment:
        data = await self._request(
            "PATCH",
            f"/appointments/{appointment_id}",
            json=change.to_payload(),
            headers=_actor_headers(actor),
            rejection=TransitionRejected,
        )
        return _parse(Appointment, data)

    async def list_veterinarians(self) -> list[VeterinarianSummary]:
        data = await self._request("GET", "/users/vets")
        return [_parse(VeterinarianSummary, item) for item in data or []]

    async def propose_time_change(
        self, appointment_id: str, proposal: TimeChangeProposal, *, actor: Actor | None = None
    ) -> Appointment:
        body = proposal.model_dump(by_alias=True, mode="json", exclude_none=True)
        data = await self._request(
            "PUT",
            f"/appointments/{appointment_id}/propose-time",
            json=body,
            headers=_actor_headers(actor),
            rejection=TransitionRejected,
        )
        return _parse(Appointment, data)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        rejection: type[BackendError] = BackendError,
        **kwargs: Any,
    ) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("Backend %s %s timed out", method, url)
            raise BackendUnavailable(f"{method} {url} timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("Backend %s %s failed: %s", method, url, exc)
            raise BackendUnavailable(f"{method} {url} failed: {exc}") from exc

        if response.status_code >= 500:
            logger.warning("Backend %s %s returned %s", method, url, response.status_code)
            raise BackendUnavailable(_error_detail(response), status_code=response.status_code)
        if response.is_error:
            raise rejection(_error_detail(response), status_code=response.status_code)
        return _unwrap(response)


def _unwrap(response: httpx.Response) -> Any:
    """Strip the ``{"success": ..., "data": ...}`` envelope when present."""

    body = response.json()
    if isinstance(body, dict) and "data" in body and "success" in body:
        return body["data"]
    return body


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        for key in ("error", "detail", "message"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase


def _actor_headers(actor: Actor | None) -> dict[str, str] | None:
    """Forward the acting user so the backend can apply its own ownership rules."""

    if actor is None:
        return None
    return {"X-Actor-Id": actor.id, "X-Actor-Role": actor.role.value}


def _parse(model: type[RecordT], data: Any) -> RecordT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        logger.warning("Backend returned a malformed %s record: %s", model.__name__, exc)
        raise BackendError(f"Backend returned a malformed {model.__name__} record") from exc
