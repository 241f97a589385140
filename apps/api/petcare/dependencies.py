"""FastAPI dependencies for the scheduling endpoints."""
from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request, status

from .models.actor import Actor
from .models.enums import ActorRole
from .repositories.appointments import AppointmentRepository
from .services.lifecycle import AppointmentLifecycle
from .services.queries import AppointmentQueryService


def get_repository(request: Request) -> AppointmentRepository:
    return request.app.state.repository


def get_lifecycle(request: Request) -> AppointmentLifecycle:
    return request.app.state.lifecycle


def get_query_service(
    repository: AppointmentRepository = Depends(get_repository),
) -> AppointmentQueryService:
    return AppointmentQueryService(repository)


async def get_actor(
    x_actor_id: str = Header(..., description="Identifier of the authenticated user"),
    x_actor_role: str = Header(..., description="owner or veterinarian"),
) -> Actor:
    """Read the acting user forwarded by the authentication layer."""

    try:
        role = ActorRole(x_actor_role)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unsupported role: {x_actor_role}"
        ) from exc
    if not x_actor_id.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing actor id")
    return Actor(id=x_actor_id.strip(), role=role)
