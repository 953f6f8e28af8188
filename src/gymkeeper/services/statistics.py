"""Cross-entity rollups for the super-admin dashboard."""

import math
from collections import Counter
from datetime import datetime, timedelta

from ..db.repositories import Store
from ..models.client import Client
from ..models.plan import PlanType, SubscriptionPlan
from ..models.session import SessionStatus, TrainingSession
from ..models.user import Role, User

RECENT_WINDOW = timedelta(days=30)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def completion_rate(completed: int, total: int) -> int:
    """Completed share of ``total`` as a rounded integer percentage."""
    if total == 0:
        return 0
    return round_half_up(completed / total * 100)


def _status_counts(sessions: list[TrainingSession]) -> dict:
    counts = Counter(s.status for s in sessions)
    completed = counts[SessionStatus.COMPLETED]
    return {
        "total_sessions": len(sessions),
        "completed_sessions": completed,
        "pending_sessions": counts[SessionStatus.PENDING],
        "canceled_sessions": counts[SessionStatus.CANCELED],
        "completion_rate": completion_rate(completed, len(sessions)),
    }


def compute_statistics(
    users: list[User],
    clients: list[Client],
    plans: list[SubscriptionPlan],
    sessions: list[TrainingSession],
    now: datetime,
) -> dict:
    """Full statistics over complete snapshots of every collection.

    Pure function: nothing is read from or written to the store.
    Missing snapshot prices count as zero. Recency windows are inclusive
    (``created_at >= now - 30 days``).
    """
    role_counts = Counter(u.role for u in users)
    coaches = [u for u in users if u.role == Role.COACH]
    paid_coaches = [c for c in coaches if c.salary]
    total_salaries = sum(c.salary for c in paid_coaches)
    average_salary = total_salaries / len(paid_coaches) if paid_coaches else 0

    main_income = sum(c.subscription.price_at_purchase or 0 for c in clients)
    private_income = sum(
        c.private_plan.price_at_purchase or 0 for c in clients if c.private_plan
    )
    total_income = main_income + private_income
    average_income = total_income / len(clients) if clients else 0

    plan_usage = {}
    for plan in plans:
        usage = sum(1 for c in clients if c.references_plan(plan.id))
        plan_usage[plan.name] = {
            "plan_type": plan.type.value,
            "price": plan.price,
            "usage": usage,
            "revenue": usage * plan.price,
        }

    coach_performance = {}
    for coach in coaches:
        coach_sessions = [s for s in sessions if s.coach == coach.id]
        coach_performance[coach.user_id] = {
            "name": coach.name,
            **_status_counts(coach_sessions),
        }

    since = now - RECENT_WINDOW
    recent_clients = [c for c in clients if c.created_at and c.created_at >= since]
    recent_sessions = [s for s in sessions if s.created_at and s.created_at >= since]

    net_profit = total_income - total_salaries

    return {
        "overview": {
            "total_users": len(users),
            "total_clients": len(clients),
            "total_income": total_income,
            "total_salaries": total_salaries,
            "net_profit": net_profit,
        },
        "user_breakdown": {
            "super_admins": role_counts[Role.SUPER_ADMIN],
            "admins": role_counts[Role.ADMIN],
            "coaches": role_counts[Role.COACH],
            "total_staff": role_counts[Role.ADMIN] + role_counts[Role.COACH],
        },
        "financial": {
            "total_income": total_income,
            "main_subscription_income": main_income,
            "private_subscription_income": private_income,
            "total_salaries": total_salaries,
            "average_salary": round_half_up(average_salary),
            "net_profit": net_profit,
            "average_income_per_client": round_half_up(average_income),
        },
        "subscriptions": {
            "total_plans": len(plans),
            "main_plans": sum(1 for p in plans if p.type == PlanType.MAIN),
            "private_plans": sum(1 for p in plans if p.type == PlanType.PRIVATE),
            "clients_with_private_plans": sum(
                1 for c in clients if c.private_plan and c.private_plan.plan
            ),
            "plan_usage": plan_usage,
        },
        "sessions": _status_counts(sessions),
        "performance": {
            "coach_performance": coach_performance,
            "recent_activity": {
                "new_clients_last_30_days": len(recent_clients),
                "new_sessions_last_30_days": len(recent_sessions),
            },
        },
        "generated_at": now.isoformat(),
    }


async def collect_statistics(store: Store, now: datetime | None = None) -> dict:
    """Load every collection and compute the full statistics."""
    return compute_statistics(
        users=await store.users.list_all(),
        clients=await store.clients.list_all(),
        plans=await store.plans.list_all(),
        sessions=await store.sessions.list_all(),
        now=now or datetime.now(),
    )


async def quick_statistics(store: Store, now: datetime | None = None) -> dict:
    """Headline numbers computed with store-side counts and sums."""
    total_revenue = await store.clients.total_income()
    total_salaries = await store.users.total_coach_salaries()
    return {
        "total_users": await store.users.count(),
        "total_clients": await store.clients.count(),
        "total_revenue": total_revenue,
        "total_salaries": total_salaries,
        "net_profit": total_revenue - total_salaries,
        "generated_at": (now or datetime.now()).isoformat(),
    }
