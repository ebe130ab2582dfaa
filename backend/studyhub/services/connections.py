"""
Connection state machine between one teacher and one student.

Either side may open the handshake; only the side that did NOT open it may
accept or reject:

    initiated_by    may respond
    ------------    -----------
    teacher         the student
    student         the teacher
    NULL            either party (rows created before initiated_by existed)

Status moves pending -> accepted | rejected exactly once. The flip is a
conditional UPDATE on status = 'pending', so two racing responses cannot
both win. Connected-student / connected-teacher lists are read from
accepted rows (see TeacherProfile.connected_students), so accepting or
deleting a row updates both sides in the same write.
"""

import logging
from typing import Literal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studyhub.db.models import (
    Connection,
    ConnectionStatus,
    NotificationType,
    Priority,
    RelatedType,
    TeacherProfile,
    User,
    utcnow,
)
from studyhub.services.actors import Actor, Student, Teacher, counterpart_role
from studyhub.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidOperationError,
    NotFoundError,
    UnprocessableError,
)
from studyhub.services.notifications import notify
from studyhub.services.teacher_codes import normalize_code

logger = logging.getLogger(__name__)

ConnectionAction = Literal["accept", "reject"]
ConnectionFilter = Literal["pending", "accepted", "all"]

_ACTION_TO_STATUS = {
    "accept": ConnectionStatus.ACCEPTED,
    "reject": ConnectionStatus.REJECTED,
}


def _parse_uuid(value: str) -> UUID | None:
    try:
        return UUID(str(value).strip())
    except ValueError:
        return None


def _pair(actor: Actor, counterparty_id: UUID) -> tuple[UUID, UUID]:
    """(teacher_id, student_id) for an actor and the account on the other side."""
    match actor:
        case Teacher(user_id=teacher_id):
            return teacher_id, counterparty_id
        case Student(user_id=student_id):
            return counterparty_id, student_id
    raise TypeError(f"Unknown actor: {actor!r}")


def _is_party(actor: Actor, connection: Connection) -> bool:
    match actor:
        case Teacher(user_id=user_id):
            return connection.teacher_id == user_id
        case Student(user_id=user_id):
            return connection.student_id == user_id
    return False


def may_respond(actor: Actor, connection: Connection) -> bool:
    """True when actor is the party allowed to accept/reject this connection."""
    if not _is_party(actor, connection):
        return False
    if connection.initiated_by is None:
        return True
    return connection.initiated_by != actor.role.value


class ConnectionService:
    """Request / respond / list / remove for teacher-student connections."""

    async def _load(self, db: AsyncSession, connection_id: UUID) -> Connection | None:
        result = await db.execute(
            select(Connection)
            .options(selectinload(Connection.teacher), selectinload(Connection.student))
            .where(Connection.id == connection_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _find_pair(self, db: AsyncSession, teacher_id: UUID, student_id: UUID) -> Connection | None:
        result = await db.execute(
            select(Connection).where(
                Connection.teacher_id == teacher_id,
                Connection.student_id == student_id,
            )
        )
        return result.scalar_one_or_none()

    async def resolve_counterparty(
        self,
        db: AsyncSession,
        actor: Actor,
        identifier: str,
    ) -> User:
        """
        Resolve an account id or a teacher join code to the counterpart user.

        Codes are only meaningful for students looking up a teacher. Raises
        InvalidOperationError for the caller's own id and NotFoundError when
        nothing of the counterpart role matches.
        """
        wanted = counterpart_role(actor.role)
        user_id = _parse_uuid(identifier)

        if user_id is not None:
            if user_id == actor.user_id:
                raise InvalidOperationError("Cannot connect with yourself", code="SELF_CONNECTION")
            result = await db.execute(
                select(User).where(User.id == user_id, User.role == wanted.value)
            )
            user = result.scalar_one_or_none()
            if user is None:
                raise NotFoundError(wanted.value.capitalize(), user_id)
            return user

        if isinstance(actor, Student):
            result = await db.execute(
                select(User)
                .join(TeacherProfile, TeacherProfile.user_id == User.id)
                .where(TeacherProfile.code == normalize_code(identifier))
            )
            user = result.scalar_one_or_none()
            if user is None:
                raise NotFoundError("Teacher code", message="Teacher code not found")
            return user

        raise NotFoundError(wanted.value.capitalize(), message=f"{wanted.value.capitalize()} not found")

    async def request_connection(
        self,
        db: AsyncSession,
        actor: Actor,
        counterparty: str,
    ) -> Connection:
        """
        Open a pending connection from actor to the resolved counterparty.

        Raises ConflictError (with the existing status) when any connection
        already exists for the pair, whichever side created it.
        """
        other = await self.resolve_counterparty(db, actor, counterparty)
        if other.id == actor.user_id:
            raise InvalidOperationError("Cannot connect with yourself", code="SELF_CONNECTION")

        teacher_id, student_id = _pair(actor, other.id)

        existing = await self._find_pair(db, teacher_id, student_id)
        if existing is not None:
            raise ConflictError(
                "Connection already exists",
                code="CONNECTION_EXISTS",
                details={"status": existing.status, "connection_id": str(existing.id)},
            )

        connection = Connection(
            teacher_id=teacher_id,
            student_id=student_id,
            status=ConnectionStatus.PENDING.value,
            initiated_by=actor.role.value,
        )
        db.add(connection)
        try:
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent request for the same pair
            await db.rollback()
            existing = await self._find_pair(db, teacher_id, student_id)
            raise ConflictError(
                "Connection already exists",
                code="CONNECTION_EXISTS",
                details={"status": existing.status if existing else None},
            )

        initiator = await db.get(User, actor.user_id)
        initiator_name = initiator.name if initiator else "Someone"
        if isinstance(actor, Teacher):
            title, message = "New Teacher Invite", f"{initiator_name} invited you to connect"
        else:
            title, message = "New Connection Request", f"{initiator_name} wants to connect with you"
        await notify(
            db,
            user_id=other.id,
            type=NotificationType.CONNECTION_REQUEST,
            title=title,
            message=message,
            related_id=connection.id,
            related_type=RelatedType.CONNECTION,
            priority=Priority.MEDIUM,
        )
        await db.commit()

        logger.info(
            "Connection %s requested by %s %s (teacher=%s student=%s)",
            connection.id, actor.role.value, actor.user_id, teacher_id, student_id,
        )
        return await self._load(db, connection.id)

    async def respond_to_connection(
        self,
        db: AsyncSession,
        actor: Actor,
        connection_id: UUID,
        action: str,
    ) -> Connection:
        """
        Accept or reject a pending connection as the non-initiating party.

        Raises NotFoundError, ForbiddenError (not a party, or the initiator
        trying to answer their own request) and InvalidOperationError
        (unknown action, or the connection is no longer pending).
        """
        new_status = _ACTION_TO_STATUS.get(action)
        if new_status is None:
            raise InvalidOperationError(
                "Invalid action. Must be accept or reject",
                code="INVALID_ACTION",
                details={"action": action},
            )

        connection = await self._load(db, connection_id)
        if connection is None:
            raise NotFoundError("Connection", connection_id)

        if not _is_party(actor, connection):
            raise ForbiddenError(
                f"Only the {actor.role.value} in this connection can respond to it",
                code="NOT_CONNECTION_PARTY",
            )
        if not may_respond(actor, connection):
            other = counterpart_role(actor.role).value
            raise ForbiddenError(
                f"This request must be answered by the {other}",
                code="INITIATOR_CANNOT_RESPOND",
                details={"initiated_by": connection.initiated_by},
            )
        if connection.status != ConnectionStatus.PENDING.value:
            raise InvalidOperationError(
                f"Connection is already {connection.status}",
                code="CONNECTION_NOT_PENDING",
                details={"current_status": connection.status},
            )

        # Check-and-set: only one responder can move the row out of pending
        result = await db.execute(
            update(Connection)
            .where(
                Connection.id == connection_id,
                Connection.status == ConnectionStatus.PENDING.value,
            )
            .values(status=new_status.value, responded_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await db.rollback()
            current = await self._load(db, connection_id)
            current_status = current.status if current else None
            raise InvalidOperationError(
                f"Connection is already {current_status}",
                code="CONNECTION_NOT_PENDING",
                details={"current_status": current_status},
            )

        if new_status == ConnectionStatus.ACCEPTED:
            await self._notify_accepted(db, actor, connection)

        await db.commit()
        logger.info(
            "Connection %s %s by %s %s",
            connection_id, new_status.value, actor.role.value, actor.user_id,
        )
        return await self._load(db, connection_id)

    async def _notify_accepted(self, db: AsyncSession, actor: Actor, connection: Connection) -> None:
        match actor:
            case Teacher():
                await notify(
                    db,
                    user_id=connection.student_id,
                    type=NotificationType.CONNECTION_ACCEPTED,
                    title="Connection Accepted",
                    message=f"{connection.teacher.name} accepted your connection request",
                    related_id=connection.id,
                    related_type=RelatedType.CONNECTION,
                    priority=Priority.MEDIUM,
                )
            case Student():
                await notify(
                    db,
                    user_id=connection.teacher_id,
                    type=NotificationType.STUDENT_JOINED,
                    title="Student Joined",
                    message=f"{connection.student.name} accepted your invite",
                    related_id=connection.student_id,
                    related_type=RelatedType.USER,
                    priority=Priority.MEDIUM,
                )

    async def list_connections(
        self,
        db: AsyncSession,
        actor: Actor,
        filter: str = "all",
    ) -> list[Connection]:
        """Connections on the actor's side, newest first, with both users loaded."""
        query = select(Connection).options(
            selectinload(Connection.teacher), selectinload(Connection.student)
        )
        match actor:
            case Teacher(user_id=user_id):
                query = query.where(Connection.teacher_id == user_id)
            case Student(user_id=user_id):
                query = query.where(Connection.student_id == user_id)

        if filter == "pending":
            query = query.where(Connection.status == ConnectionStatus.PENDING.value)
        elif filter == "accepted":
            query = query.where(Connection.status == ConnectionStatus.ACCEPTED.value)
        elif filter != "all":
            raise UnprocessableError(
                "filter must be pending, accepted or all",
                code="INVALID_FILTER",
                details={"filter": filter},
            )

        query = query.order_by(Connection.created_at.desc())
        result = await db.execute(query)
        return list(result.scalars())

    async def remove_connection(
        self,
        db: AsyncSession,
        actor: Actor,
        connection_id: UUID,
    ) -> None:
        """Delete a connection (any status). Only its teacher may do this."""
        if not isinstance(actor, Teacher):
            raise ForbiddenError("Only teachers can remove connections", code="TEACHER_ONLY")

        connection = await db.get(Connection, connection_id)
        if connection is None:
            raise NotFoundError("Connection", connection_id)
        if connection.teacher_id != actor.user_id:
            raise ForbiddenError(
                "Only the teacher can remove this connection",
                code="NOT_CONNECTION_TEACHER",
            )

        await db.delete(connection)
        await db.commit()
        logger.info(
            "Connection %s removed by teacher %s (student=%s)",
            connection_id, actor.user_id, connection.student_id,
        )

    async def is_connected(self, db: AsyncSession, teacher_id: UUID, student_id: UUID) -> bool:
        """True when the pair has an accepted connection."""
        connection = await self._find_pair(db, teacher_id, student_id)
        return connection is not None and connection.status == ConnectionStatus.ACCEPTED.value


connection_service = ConnectionService()


def counterparty_of(actor: Actor, connection: Connection) -> User:
    """The user on the other side of a connection from the actor."""
    return connection.student if isinstance(actor, Teacher) else connection.teacher
