"""Pytest configuration and fixtures."""

import asyncio
import tempfile
from datetime import date, datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from gymkeeper.config import Settings
from gymkeeper.db import Store, init_db
from gymkeeper.models.client import Client, PrivatePlan, Subscription
from gymkeeper.models.plan import PlanType, SubscriptionPlan
from gymkeeper.models.session import SessionStatus, TrainingSession
from gymkeeper.models.user import Role, User
from gymkeeper.security import hash_password
from gymkeeper.web import create_app

TEST_PASSWORD = "secret123"
TEST_ROUNDS = 4  # bcrypt minimum, keeps tests fast


@pytest.fixture
def temp_db_path():
    """Create a temporary database path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
def settings(temp_db_path):
    return Settings(
        data_dir=temp_db_path.parent,
        secret_key="test-secret",
        bcrypt_rounds=TEST_ROUNDS,
    )


@pytest.fixture
def store(temp_db_path):
    """An initialized store on a temporary database."""
    asyncio.run(init_db(temp_db_path))
    return Store(temp_db_path)


@pytest.fixture
def api(settings, store, temp_db_path):
    """HTTP client bound to an app on the temporary database."""
    app = create_app(settings, db_path=temp_db_path)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def make_user(store):
    """Factory inserting a staff user with ``TEST_PASSWORD``."""
    counter = iter(range(100, 1000))

    def _make(role=Role.COACH, name=None, salary=None, phone=None):
        if role == Role.COACH and salary is None:
            salary = 2000
        user = User(
            name=name or f"{role.value} {next(counter)}",
            phone=phone or f"0550000{next(counter)}",
            role=role,
            user_id=f"T{next(counter)}",
            password_hash=hash_password(TEST_PASSWORD, TEST_ROUNDS),
            salary=salary,
        )
        asyncio.run(store.users.create(user))
        return user

    return _make


@pytest.fixture
def make_plan(store):
    def _make(name="Monthly", plan_type=PlanType.MAIN, price=50, total_sessions=0):
        plan = SubscriptionPlan(
            name=name,
            type=plan_type,
            price=price,
            duration_days=30 if plan_type == PlanType.MAIN else None,
            total_sessions=total_sessions,
        )
        asyncio.run(store.plans.create(plan))
        return plan

    return _make


@pytest.fixture
def make_client(store):
    """Factory inserting a client directly (bypassing price derivation)."""
    counter = iter(range(100, 1000))

    def _make(plan, private_plan=None, coach=None, total_sessions=None, phone=None):
        n = next(counter)
        client = Client(
            name=f"Client {n}",
            phone=phone or f"0660000{n}",
            national_id=f"NID{n}",
            client_id=f"CL{n}00",
            subscription=Subscription(
                plan=plan.id,
                start_date=date(2024, 1, 1),
                end_date=date(2024, 1, 31),
                price_at_purchase=plan.price,
            ),
        )
        if private_plan is not None or coach is not None:
            client.private_plan = PrivatePlan(
                plan=private_plan.id if private_plan else None,
                coach=coach.id if coach else None,
                total_sessions=total_sessions,
                price_at_purchase=private_plan.price if private_plan else None,
            )
        asyncio.run(store.clients.create(client))
        return client

    return _make


@pytest.fixture
def make_session(store):
    def _make(client, coach, status=SessionStatus.PENDING):
        session = TrainingSession(
            client=client.id, coach=coach.id, date=datetime(2024, 1, 10, 18, 0)
        )
        if status != SessionStatus.PENDING:
            session.set_status(status, changed_by=coach.id)
        asyncio.run(store.sessions.create(session))
        return session

    return _make


@pytest.fixture
def login(api):
    """Log a staff user in and return request headers."""

    def _login(user: User, password: str = TEST_PASSWORD) -> dict:
        response = api.post(
            "/api/v1/auth/login", json={"phone": user.phone, "password": password}
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['data']['token']}"}

    return _login


@pytest.fixture
def login_client(api):
    """Log a client in with phone and client id and return request headers."""

    def _login(client: Client) -> dict:
        response = api.post(
            "/api/v1/auth/login-client",
            json={"phone": client.phone, "client_id": client.client_id},
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['data']['token']}"}

    return _login
