"""Domain models for gymkeeper."""

from .client import Client, PrivatePlan, Subscription
from .plan import PlanType, SubscriptionPlan
from .session import SessionStatus, StatusChange, TrainingSession
from .user import ADMIN_ROLES, STAFF_ROLES, DaysOffChange, Role, User

__all__ = [
    "ADMIN_ROLES",
    "Client",
    "DaysOffChange",
    "PlanType",
    "PrivatePlan",
    "Role",
    "SessionStatus",
    "STAFF_ROLES",
    "StatusChange",
    "Subscription",
    "SubscriptionPlan",
    "TrainingSession",
    "User",
]
