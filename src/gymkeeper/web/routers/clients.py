"""Gym member routes."""

import logging

from fastapi import APIRouter, Depends, status

from ...db.repositories import Store
from ...errors import NotFound, ValidationFailed
from ...models.client import Client
from ...models.user import Role
from ...services.identity import generate_unique_id
from ...services.policy import Action, Caller, Resource, require
from ...services.pricing import derive_pricing, merge_client
from ..deps import get_caller, get_store
from ..responses import no_content, success
from ..schemas import ClientCreate, ClientUpdate
from ..serializers import expand_client, expand_clients, expand_sessions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["clients"])


async def load_client(store: Store, client_id: int) -> Client:
    client = await store.clients.get(client_id)
    if client is None:
        raise NotFound("No client found with that ID")
    return client


async def _check_coach(store: Store, client: Client) -> None:
    """A private plan's coach must be an existing coach."""
    if client.private_plan is None or client.private_plan.coach is None:
        return
    coach = await store.users.get(client.private_plan.coach)
    if coach is None or coach.role != Role.COACH:
        raise ValidationFailed(
            f"User {client.private_plan.coach} is not a coach and cannot be assigned"
        )


@router.get("")
async def list_clients(caller: Caller = Depends(get_caller), store: Store = Depends(get_store)):
    """List clients. Coaches only see the clients assigned to them."""
    require(caller, Resource.CLIENT, Action.LIST)
    if caller.role == Role.COACH:
        clients = await store.clients.list_by_coach(caller.id)
    else:
        clients = await store.clients.list_all()
    return success(results=len(clients), clients=await expand_clients(store, clients))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_client(
    body: ClientCreate,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    """Create a client; plan prices are snapshotted onto the record."""
    require(caller, Resource.CLIENT, Action.CREATE)

    resolved = await derive_pricing(body.model_dump(), store.plans.get)
    resolved["client_id"] = await generate_unique_id(
        body.phone, Role.CLIENT, store.clients.exists_client_id
    )
    client = Client.from_dict(resolved)
    await _check_coach(store, client)
    await store.clients.create(client)

    logger.info(f"Client {client.client_id} created by {caller.id}")
    return success(client=await expand_client(store, client))


@router.get("/{client_id}")
async def get_client(
    client_id: int,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    client = await load_client(store, client_id)
    require(caller, Resource.CLIENT, Action.READ, target=client)
    return success(client=await expand_client(store, client))


@router.patch("/{client_id}")
async def update_client(
    client_id: int,
    body: ClientUpdate,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    """Update a client. The generated client id cannot be changed."""
    existing = await load_client(store, client_id)
    require(caller, Resource.CLIENT, Action.UPDATE, target=existing)

    resolved = await derive_pricing(body.model_dump(exclude_unset=True), store.plans.get)
    client = merge_client(existing, resolved)
    if client.subscription.end_date < client.subscription.start_date:
        raise ValidationFailed("Subscription end date must not be before its start date")
    await _check_coach(store, client)
    await store.clients.update(client)

    logger.info(f"Client {client.client_id} updated by {caller.id}: {sorted(resolved)}")
    return success(client=await expand_client(store, client))


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: int,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    client = await load_client(store, client_id)
    require(caller, Resource.CLIENT, Action.DELETE, target=client)

    await store.clients.delete(client.id)
    logger.info(f"Client {client.client_id} deleted by {caller.id}")
    return no_content()


@router.get("/{client_id}/subscription")
async def get_subscription(
    client_id: int,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    """Subscription details with the number of private sessions left."""
    client = await load_client(store, client_id)
    require(caller, Resource.CLIENT, Action.READ, target=client)

    completed = await store.sessions.count_completed_for_client(client.id)
    return success(
        client=await expand_client(store, client),
        completed_sessions=completed,
        remaining_sessions=client.remaining_sessions(completed),
    )


@router.get("/{client_id}/sessions")
async def get_client_sessions(
    client_id: int,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    client = await load_client(store, client_id)
    require(caller, Resource.CLIENT, Action.READ, target=client)

    sessions = await store.sessions.list_by_client(client.id)
    return success(results=len(sessions), sessions=await expand_sessions(store, sessions))
