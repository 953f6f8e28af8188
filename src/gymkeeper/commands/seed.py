"""Sample data command."""

import click

from ..config import Settings
from ..db import Store, init_db
from ..models.plan import PlanType, SubscriptionPlan
from ..models.user import Role, User
from ..security import hash_password
from ..services.identity import generate_unique_id
from .base import async_command, db_path_for, echo_info, echo_success, format_table

SAMPLE_PLANS = [
    SubscriptionPlan(
        name="Monthly Basic",
        type=PlanType.MAIN,
        duration_days=30,
        price=50,
        description="Basic monthly gym membership",
    ),
    SubscriptionPlan(
        name="Yearly Basic",
        type=PlanType.MAIN,
        duration_days=365,
        price=500,
        description="Basic yearly gym membership with discount",
    ),
    SubscriptionPlan(
        name="Private Training - 10 Sessions",
        type=PlanType.PRIVATE,
        total_sessions=10,
        price=300,
        description="10 private training sessions with a coach",
    ),
    SubscriptionPlan(
        name="Private Training - 20 Sessions",
        type=PlanType.PRIVATE,
        total_sessions=20,
        price=550,
        description="20 private training sessions with a coach",
    ),
]

# (name, phone, password, role, salary, days off); super admins come from `init`
SAMPLE_STAFF = [
    ("Admin User", "1234567891", "admin123", Role.ADMIN, None, None),
    ("Coach John", "1234567892", "coach123", Role.COACH, 2500, ["Saturday", "Sunday"]),
    ("Coach Sarah", "1234567893", "coach123", Role.COACH, 2500, ["Friday", "Saturday"]),
]


@click.command()
@click.option("--no-staff", is_flag=True, help="Only seed the plan catalog")
@click.pass_obj
@async_command
async def seed(settings: Settings, no_staff: bool):
    """Insert sample subscription plans and staff.

    Entries that already exist (same plan name or phone) are skipped.
    """
    db_path = db_path_for(settings)
    await init_db(db_path)
    store = Store(db_path)

    rows = []
    for sample in SAMPLE_PLANS:
        if await store.plans.get_by_name(sample.name):
            echo_info(f"Plan '{sample.name}' exists, skipping")
            continue
        plan = SubscriptionPlan.from_dict(sample.to_dict())
        await store.plans.create(plan)
        rows.append([plan.name, plan.type.value, f"{plan.price:g}"])
    if rows:
        click.echo(format_table(["Plan", "Type", "Price"], rows))
    echo_success(f"{len(rows)} plan(s) added")

    if no_staff:
        return

    rows = []
    for name, phone, password, role, salary, days_off in SAMPLE_STAFF:
        if await store.users.get_by_phone(phone):
            echo_info(f"User with phone {phone} exists, skipping")
            continue
        user = User(
            name=name,
            phone=phone,
            role=role,
            user_id=await generate_unique_id(phone, role, store.users.exists_user_id),
            password_hash=hash_password(password, settings.bcrypt_rounds),
            salary=salary,
            days_off=days_off,
        )
        await store.users.create(user)
        rows.append([user.name, user.role.value, user.phone, user.user_id])
    if rows:
        click.echo(format_table(["Name", "Role", "Phone", "User ID"], rows))
    echo_success(f"{len(rows)} staff user(s) added")
