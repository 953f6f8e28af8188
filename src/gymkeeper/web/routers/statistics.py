"""Dashboard statistics routes (super-admin only)."""

from fastapi import APIRouter, Depends

from ...db.repositories import Store
from ...services.policy import Action, Caller, Resource, require
from ...services.statistics import collect_statistics, quick_statistics
from ..deps import get_caller, get_store
from ..responses import success

router = APIRouter(prefix="/statistics", tags=["statistics"])


@router.get("")
async def get_statistics(caller: Caller = Depends(get_caller), store: Store = Depends(get_store)):
    """Full breakdown over every collection."""
    require(caller, Resource.STATISTICS, Action.READ)
    return success(statistics=await collect_statistics(store))


@router.get("/quick")
async def get_quick_statistics(
    caller: Caller = Depends(get_caller), store: Store = Depends(get_store)
):
    """Headline numbers only."""
    require(caller, Resource.STATISTICS, Action.READ)
    return success(statistics=await quick_statistics(store))
