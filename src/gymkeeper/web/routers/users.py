"""Staff user routes."""

import logging

from fastapi import APIRouter, Depends, status

from ...config import Settings
from ...db.repositories import Store
from ...errors import NotFound, ValidationFailed
from ...models.user import Role, User
from ...security import hash_password
from ...services.identity import generate_unique_id
from ...services.policy import Action, Caller, Resource, require
from ..deps import get_caller, get_settings, get_store
from ..responses import no_content, success
from ..schemas import AdminResetPasswordRequest, DaysOffUpdate, UserCreate, UserUpdate
from ..serializers import expand_clients, expand_sessions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


async def register_user(
    store: Store, settings: Settings, caller: Caller, body: UserCreate
) -> User:
    """Create a staff user with a generated user id.

    Shared by ``POST /users`` and ``POST /auth/register``.
    """
    require(caller, Resource.USER, Action.CREATE, changes={"role": body.role})

    user = User(
        name=body.name,
        phone=body.phone,
        role=body.role,
        user_id=await generate_unique_id(body.phone, body.role, store.users.exists_user_id),
        password_hash=hash_password(body.password, settings.bcrypt_rounds),
        salary=body.salary,
        days_off=list(body.days_off) if body.days_off is not None else None,
    )
    await store.users.create(user)

    logger.info(f"User {user.user_id} ({user.role.value}) created by {caller.id}")
    return user


async def load_user(store: Store, user_id: int) -> User:
    user = await store.users.get(user_id)
    if user is None:
        raise NotFound("No user found with that ID")
    return user


@router.get("")
async def list_users(
    role: Role | None = None,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    """List staff users, optionally filtered by role."""
    require(caller, Resource.USER, Action.LIST)
    users = await store.users.list_all(role)
    return success(results=len(users), users=[u.to_dict() for u in users])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    user = await register_user(store, settings, caller, body)
    return success(user=user.to_dict())


# /me routes must be registered before /{user_id}


@router.get("/me/clients")
async def my_clients(caller: Caller = Depends(get_caller), store: Store = Depends(get_store)):
    """Clients assigned to the calling coach."""
    require(caller, Resource.USER, Action.LIST_OWN)
    clients = await store.clients.list_by_coach(caller.id)
    return success(results=len(clients), clients=await expand_clients(store, clients))


@router.get("/me/sessions")
async def my_sessions(caller: Caller = Depends(get_caller), store: Store = Depends(get_store)):
    """Sessions run by the calling coach."""
    require(caller, Resource.USER, Action.LIST_OWN)
    sessions = await store.sessions.list_by_coach(caller.id)
    return success(results=len(sessions), sessions=await expand_sessions(store, sessions))


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    user = await load_user(store, user_id)
    require(caller, Resource.USER, Action.READ, target=user)
    return success(user=user.to_dict())


@router.patch("/{user_id}")
async def update_user(
    user_id: int,
    body: UserUpdate,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    """Update profile fields. Passwords have dedicated endpoints."""
    changes = body.model_dump(exclude_unset=True)
    user = await load_user(store, user_id)
    require(caller, Resource.USER, Action.UPDATE, target=user, changes=changes)

    editable = ("name", "phone", "salary") if caller.is_admin else ("name", "phone")
    for key in editable:
        if key in changes:
            setattr(user, key, changes[key])
    if changes.get("role") is not None:
        user.role = Role(changes["role"])
    if "days_off" in changes and changes["days_off"] != user.days_off:
        user.set_days_off(changes["days_off"] or [], changed_by=caller.id)

    if user.role == Role.COACH and user.salary is None:
        raise ValidationFailed("Salary is required for coaches")

    await store.users.update(user)
    logger.info(f"User {user.user_id} updated by {caller.id}: {sorted(changes)}")
    return success(user=user.to_dict())


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    user = await load_user(store, user_id)
    require(caller, Resource.USER, Action.DELETE, target=user)

    await store.users.delete(user.id)
    logger.info(f"User {user.user_id} deleted by {caller.id}")
    return no_content()


@router.patch("/{user_id}/days-off")
async def update_days_off(
    user_id: int,
    body: DaysOffUpdate,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    """Replace a coach's days off, recording the change in its history."""
    user = await load_user(store, user_id)
    require(caller, Resource.USER, Action.UPDATE_DAYS_OFF, target=user)
    if not user.is_coach:
        raise ValidationFailed("Days off can only be set for coaches")

    user.set_days_off(list(body.days_off), changed_by=caller.id)
    await store.users.update(user)

    logger.info(f"Days off for {user.user_id} set to {user.days_off} by {caller.id}")
    return success(user=user.to_dict())


@router.patch("/{user_id}/password")
async def reset_user_password(
    user_id: int,
    body: AdminResetPasswordRequest,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Set another user's password (administrators only)."""
    user = await load_user(store, user_id)
    require(caller, Resource.USER, Action.RESET_PASSWORD, target=user)

    user.password_hash = hash_password(body.new_password, settings.bcrypt_rounds)
    user.clear_password_reset()
    await store.users.update(user)

    logger.info(f"Password for {user.user_id} reset by {caller.id}")
    return success(message="Password updated successfully")
