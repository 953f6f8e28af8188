"""Price snapshots and plan defaults for client payloads.

The plan price is copied onto the client whenever a payload assigns a
plan. Prices supplied by the caller are discarded, and reading the live
plan later never overrides the stored snapshot.
"""

from collections.abc import Awaitable, Callable

from ..errors import InvalidPlanReference, ValidationFailed
from ..models.client import Client
from ..models.plan import PlanType, SubscriptionPlan

PlanLookup = Callable[[int], Awaitable[SubscriptionPlan | None]]


async def _resolve_plan(
    plan_id: int, expected_type: PlanType, get_plan: PlanLookup
) -> SubscriptionPlan:
    plan = await get_plan(plan_id)
    if plan is None:
        raise InvalidPlanReference(f"Subscription plan {plan_id} does not exist")
    if plan.type != expected_type:
        raise ValidationFailed(
            f"Subscription plan '{plan.name}' is a {plan.type.value} plan, "
            f"expected a {expected_type.value} plan"
        )
    return plan


async def derive_pricing(payload: dict, get_plan: PlanLookup) -> dict:
    """Resolve server-controlled fields of a client create/update payload.

    - ``price_at_purchase`` is dropped from the payload and, where the
      payload assigns a plan, replaced by that plan's current price.
    - A private plan without ``total_sessions`` inherits the plan's
      non-zero session count.
    - ``client_id`` is stripped; it is generated once at creation.

    Raises:
        InvalidPlanReference: a referenced plan does not exist
    """
    resolved = dict(payload)
    resolved.pop("client_id", None)

    subscription = resolved.get("subscription")
    if subscription is not None:
        subscription = dict(subscription)
        subscription.pop("price_at_purchase", None)
        if subscription.get("plan") is not None:
            plan = await _resolve_plan(subscription["plan"], PlanType.MAIN, get_plan)
            subscription["price_at_purchase"] = plan.price
        resolved["subscription"] = subscription

    private_plan = resolved.get("private_plan")
    if private_plan is not None:
        private_plan = dict(private_plan)
        private_plan.pop("price_at_purchase", None)
        if private_plan.get("plan") is not None:
            plan = await _resolve_plan(private_plan["plan"], PlanType.PRIVATE, get_plan)
            private_plan["price_at_purchase"] = plan.price
            if private_plan.get("total_sessions") is None and plan.total_sessions:
                private_plan["total_sessions"] = plan.total_sessions
        resolved["private_plan"] = private_plan

    return resolved


def merge_client(existing: Client, resolved: dict) -> Client:
    """Apply a resolved update payload on top of an existing client.

    Embedded documents are merged key by key; an explicit ``None`` for
    ``private_plan`` removes the private plan. The generated client id is
    carried over unchanged.
    """
    data = existing.to_dict()
    for key, value in resolved.items():
        if key == "subscription" and value is not None:
            data["subscription"] = {**data["subscription"], **value}
        elif key == "private_plan" and value is not None:
            data["private_plan"] = {**(data["private_plan"] or {}), **value}
        elif key in ("name", "phone", "national_id", "private_plan"):
            data[key] = value

    return Client.from_dict(
        data,
        id=existing.id,
        created_at=existing.created_at,
        updated_at=existing.updated_at,
    )
