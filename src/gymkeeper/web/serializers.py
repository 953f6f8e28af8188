"""Reference expansion for read paths.

Embedded plans show the live catalog entry next to the stored
``price_at_purchase`` snapshot; the snapshot is never replaced.
"""

from ..db.repositories import Store
from ..models.client import Client
from ..models.session import TrainingSession

COACH_FIELDS = ("name", "phone", "days_off")


async def expand_clients(store: Store, clients: list[Client]) -> list[dict]:
    """Serialize clients with their plans and coach summaries embedded."""
    plans = {plan.id: plan for plan in await store.plans.list_all()}
    coach_ids = {c.private_plan.coach for c in clients if c.private_plan and c.private_plan.coach}
    coaches = await store.users.get_many(coach_ids)

    expanded = []
    for client in clients:
        data = client.to_dict()
        subscription_plan = plans.get(client.subscription.plan)
        if subscription_plan:
            data["subscription"]["plan"] = subscription_plan.to_dict()

        if client.private_plan:
            private_plan = plans.get(client.private_plan.plan)
            if private_plan:
                data["private_plan"]["plan"] = private_plan.to_dict()
            coach = coaches.get(client.private_plan.coach)
            if coach:
                data["private_plan"]["coach"] = coach.to_summary(*COACH_FIELDS)
        expanded.append(data)
    return expanded


async def expand_client(store: Store, client: Client) -> dict:
    (data,) = await expand_clients(store, [client])
    return data


async def expand_sessions(store: Store, sessions: list[TrainingSession]) -> list[dict]:
    """Serialize sessions with client and coach summaries embedded."""
    coaches = await store.users.get_many({s.coach for s in sessions})
    clients = {}
    for client_id in {s.client for s in sessions}:
        clients[client_id] = await store.clients.get(client_id)

    expanded = []
    for session in sessions:
        data = session.to_dict()
        client = clients.get(session.client)
        if client:
            data["client"] = {"id": client.id, "name": client.name, "client_id": client.client_id}
        coach = coaches.get(session.coach)
        if coach:
            data["coach"] = coach.to_summary("name", "phone")
        expanded.append(data)
    return expanded


async def expand_session(store: Store, session: TrainingSession) -> dict:
    (data,) = await expand_sessions(store, [session])
    return data
