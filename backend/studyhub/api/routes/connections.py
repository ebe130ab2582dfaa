"""
Teacher-student connection routes.

Endpoints:
- POST /connections/request - Open a connection (either role)
- PATCH /connections/{id}/respond - Accept or reject as the non-initiating party
- GET /connections - List the caller's connections (filter=pending|accepted|all)
- DELETE /connections/{id} - Teacher removes a connection
"""

from uuid import UUID

from fastapi import APIRouter, status

from studyhub.api.deps import CurrentActor, DbSession, TeacherActor
from studyhub.db.models import Connection
from studyhub.schemas.connections import ConnectionRead, ConnectionRequest, ConnectionRespond
from studyhub.schemas.user import UserSummary
from studyhub.services.actors import Actor
from studyhub.services.connections import connection_service, counterparty_of

router = APIRouter(prefix="/connections", tags=["connections"])


def _to_read(actor: Actor, connection: Connection) -> ConnectionRead:
    read = ConnectionRead.model_validate(connection)
    read.counterparty = UserSummary.model_validate(counterparty_of(actor, connection))
    return read


@router.post("/request", response_model=ConnectionRead, status_code=status.HTTP_201_CREATED)
async def request_connection(
    data: ConnectionRequest,
    actor: CurrentActor,
    db: DbSession,
) -> ConnectionRead:
    """
    Ask to connect with a teacher or student.

    `counterparty` is the other account's id, or (for students) a teacher
    join code such as "XK9M2L".
    """
    connection = await connection_service.request_connection(db, actor, data.counterparty)
    return _to_read(actor, connection)


@router.patch("/{connection_id}/respond", response_model=ConnectionRead)
async def respond_to_connection(
    connection_id: UUID,
    data: ConnectionRespond,
    actor: CurrentActor,
    db: DbSession,
) -> ConnectionRead:
    """Accept or reject a pending connection."""
    connection = await connection_service.respond_to_connection(
        db, actor, connection_id, data.action
    )
    return _to_read(actor, connection)


@router.get("", response_model=list[ConnectionRead])
async def list_connections(
    actor: CurrentActor,
    db: DbSession,
    filter: str = "all",
) -> list[ConnectionRead]:
    """List the caller's connections, newest first."""
    connections = await connection_service.list_connections(db, actor, filter)
    return [_to_read(actor, c) for c in connections]


@router.delete("/{connection_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_connection(
    connection_id: UUID,
    actor: TeacherActor,
    db: DbSession,
) -> None:
    """Remove a connection (teacher only)."""
    await connection_service.remove_connection(db, actor, connection_id)
