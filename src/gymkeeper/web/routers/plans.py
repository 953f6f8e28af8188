"""Subscription plan catalog routes."""

import logging

from fastapi import APIRouter, Depends, status

from ...db.repositories import Store
from ...errors import NotFound, ValidationFailed
from ...models.plan import PlanType, SubscriptionPlan
from ...services.policy import Action, Caller, Resource, require
from ..deps import get_caller, get_store
from ..responses import no_content, success
from ..schemas import PlanCreate, PlanUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


async def load_plan(store: Store, plan_id: int) -> SubscriptionPlan:
    plan = await store.plans.get(plan_id)
    if plan is None:
        raise NotFound("No subscription plan found with that ID")
    return plan


async def _list(store: Store, plan_type: PlanType | None) -> dict:
    plans = await store.plans.list_all(plan_type)
    return success(results=len(plans), plans=[p.to_dict() for p in plans])


@router.get("")
async def list_plans(
    type: PlanType | None = None,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    """List plans, optionally filtered with ``?type=main|private``."""
    require(caller, Resource.PLAN, Action.LIST)
    return await _list(store, type)


@router.get("/main")
async def list_main_plans(caller: Caller = Depends(get_caller), store: Store = Depends(get_store)):
    require(caller, Resource.PLAN, Action.LIST)
    return await _list(store, PlanType.MAIN)


@router.get("/private")
async def list_private_plans(
    caller: Caller = Depends(get_caller), store: Store = Depends(get_store)
):
    require(caller, Resource.PLAN, Action.LIST)
    return await _list(store, PlanType.PRIVATE)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_plan(
    body: PlanCreate,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    require(caller, Resource.PLAN, Action.CREATE)

    plan = SubscriptionPlan.from_dict(body.model_dump())
    await store.plans.create(plan)

    logger.info(f"Plan '{plan.name}' ({plan.type.value}, {plan.price}) created by {caller.id}")
    return success(plan=plan.to_dict())


@router.get("/{plan_id}")
async def get_plan(
    plan_id: int,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    require(caller, Resource.PLAN, Action.READ)
    plan = await load_plan(store, plan_id)
    return success(plan=plan.to_dict())


@router.patch("/{plan_id}")
async def update_plan(
    plan_id: int,
    body: PlanUpdate,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    """Update a catalog entry.

    Price changes apply to future purchases only; clients keep the price
    they paid.
    """
    require(caller, Resource.PLAN, Action.UPDATE)
    plan = await load_plan(store, plan_id)

    changes = body.model_dump(exclude_unset=True)
    new_type = changes.get("type")
    if new_type is not None and PlanType(new_type) != plan.type:
        if await store.clients.count_referencing_plan(plan.id):
            raise ValidationFailed(
                "Cannot change the type of a subscription plan that is currently "
                "being used by clients"
            )

    for key, value in changes.items():
        if value is not None:
            setattr(plan, key, PlanType(value) if key == "type" else value)
    if plan.type == PlanType.MAIN and plan.duration_days is None:
        raise ValidationFailed("Duration in days is required for main plans")

    await store.plans.update(plan)
    logger.info(f"Plan '{plan.name}' updated by {caller.id}: {sorted(changes)}")
    return success(plan=plan.to_dict())


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plan(
    plan_id: int,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
):
    """Delete a plan that no client references."""
    require(caller, Resource.PLAN, Action.DELETE)
    plan = await load_plan(store, plan_id)

    if await store.clients.count_referencing_plan(plan.id):
        raise ValidationFailed(
            "Cannot delete subscription plan. It is currently being used by clients."
        )

    await store.plans.delete(plan.id)
    logger.info(f"Plan '{plan.name}' deleted by {caller.id}")
    return no_content()
