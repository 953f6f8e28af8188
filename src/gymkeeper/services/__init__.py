"""Business rules layered over the store."""

from .identity import generate_unique_id
from .policy import Action, Caller, Decision, Resource, authorize, require
from .pricing import derive_pricing, merge_client
from .statistics import collect_statistics, compute_statistics, quick_statistics

__all__ = [
    "Action",
    "authorize",
    "Caller",
    "collect_statistics",
    "compute_statistics",
    "Decision",
    "derive_pricing",
    "generate_unique_id",
    "merge_client",
    "quick_statistics",
    "require",
    "Resource",
]
