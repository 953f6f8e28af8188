"""Training session routes."""

import logging

from fastapi import APIRouter, Depends, status

from ...db.repositories import Store
from ...errors import NotFound, Unauthorized, ValidationFailed
from ...models.session import SessionStatus, TrainingSession, completion_reason
from ...models.user import Role
from ...services.policy import Action, Caller, Resource, require
from ..deps import get_caller, get_store
from ..responses import no_content, success
from ..schemas import SessionCreate, SessionStatusUpdate, SessionUpdate
from ..serializers import expand_session, expand_sessions
from .clients import load_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])

PARTICIPANT_ONLY_COMPLETE = "You can only mark sessions as completed."


async def load_session(store: Store, session_id: int) -> TrainingSession:
    session = await store.sessions.get(session_id)
    if session is None:
        raise NotFound("No session found with that ID")
    return session


async def _check_coach(store: Store, coach_id: int) -> None:
    coach = await store.users.get(coach_id)
    if coach is None or coach.role != Role.COACH:
        raise ValidationFailed(f"User {coach_id} is not a coach")


def _complete(session: TrainingSession, caller: Caller, reason: str | None) -> None:
    """Participant transition: pending -> completed, nothing else."""
    if session.status.is_terminal:
        raise ValidationFailed(f"Session is already {session.status.value}")
    session.set_status(
        SessionStatus.COMPLETED,
        changed_by=caller.id,
        reason=reason or completion_reason(caller.role.value),
    )


@router.get("")
async def list_sessions(caller: Caller = Depends(get_caller), store: Store = Depends(get_store)):
    """List sessions. Coaches only see their own."""
    require(caller, Resource.SESSION, Action.LIST)
    if caller.role == Role.COACH:
        sessions = await store.sessions.list_by_coach(caller.id)
    else:
        sessions = await store.sessions.list_all()
    return success(results=len(sessions), sessions=await expand_sessions(store, sessions))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_session(
    body: SessionCreate,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    """Schedule a session and link it to the client's private plan."""
    require(caller, Resource.SESSION, Action.CREATE)

    client = await load_client(store, body.client)
    await _check_coach(store, body.coach)

    session = TrainingSession(
        client=client.id, coach=body.coach, date=body.date, notes=body.notes
    )
    if body.status != SessionStatus.PENDING:
        session.set_status(body.status, changed_by=caller.id)
    await store.sessions.create(session)

    if client.private_plan is not None:
        client.private_plan.sessions.append(session.id)
        await store.clients.update(client)

    logger.info(f"Session {session.id} created by {caller.id} for client {client.client_id}")
    return success(session=await expand_session(store, session))


# /client/{client_id} must be registered before /{session_id}


@router.get("/client/{client_id}")
async def sessions_for_client(
    client_id: int,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    client = await load_client(store, client_id)
    require(caller, Resource.CLIENT, Action.READ, target=client)

    sessions = await store.sessions.list_by_client(client.id)
    return success(results=len(sessions), sessions=await expand_sessions(store, sessions))


@router.get("/{session_id}")
async def get_session(
    session_id: int,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    session = await load_session(store, session_id)
    require(caller, Resource.SESSION, Action.READ, target=session)
    return success(session=await expand_session(store, session))


@router.patch("/{session_id}")
async def update_session(
    session_id: int,
    body: SessionUpdate,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    """General update.

    Administrators may edit any field. The session's coach and client may
    only send ``{"status": "completed"}`` (optionally with a reason).
    """
    changes = body.model_dump(exclude_unset=True)
    reason = changes.pop("reason", None)
    session = await load_session(store, session_id)

    if caller.is_admin:
        require(caller, Resource.SESSION, Action.UPDATE, target=session)
        if changes.get("client") is not None:
            session.client = (await load_client(store, changes["client"])).id
        if changes.get("coach") is not None:
            await _check_coach(store, changes["coach"])
            session.coach = changes["coach"]
        if changes.get("date") is not None:
            session.date = changes["date"]
        if "notes" in changes:
            session.notes = changes["notes"] or ""
        new_status = changes.get("status")
        if new_status is not None and new_status != session.status:
            session.set_status(new_status, changed_by=caller.id, reason=reason)
    else:
        require(caller, Resource.SESSION, Action.COMPLETE, target=session)
        if set(changes) != {"status"} or changes["status"] != SessionStatus.COMPLETED:
            logger.warning(f"{caller.role.value} {caller.id} tried to edit session {session.id}")
            raise Unauthorized(PARTICIPANT_ONLY_COMPLETE)
        _complete(session, caller, reason)

    await store.sessions.update(session)
    logger.info(f"Session {session.id} updated by {caller.id}: {sorted(changes)}")
    return success(session=await expand_session(store, session))


@router.patch("/{session_id}/status")
async def update_session_status(
    session_id: int,
    body: SessionStatusUpdate,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    """Status transition. Participants may only complete a pending session."""
    session = await load_session(store, session_id)
    require(caller, Resource.SESSION, Action.COMPLETE, target=session)

    if caller.is_admin:
        session.set_status(body.status, changed_by=caller.id, reason=body.reason)
    else:
        if body.status != SessionStatus.COMPLETED:
            raise ValidationFailed(PARTICIPANT_ONLY_COMPLETE)
        _complete(session, caller, body.reason)

    await store.sessions.update(session)
    logger.info(
        f"Session {session.id} marked {session.status.value} by "
        f"{caller.role.value} {caller.id}"
    )
    return success(session=await expand_session(store, session))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: int,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    """Delete a session and unlink it from the client's private plan."""
    session = await load_session(store, session_id)
    require(caller, Resource.SESSION, Action.DELETE, target=session)

    await store.sessions.delete(session.id)

    client = await store.clients.get(session.client)
    if client is not None and client.private_plan and session.id in client.private_plan.sessions:
        client.private_plan.sessions.remove(session.id)
        await store.clients.update(client)

    logger.info(f"Session {session.id} deleted by {caller.id}")
    return no_content()
