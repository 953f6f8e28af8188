"""Data access layer for gymkeeper."""

import json
from datetime import datetime
from pathlib import Path

import aiosqlite

from ..errors import DuplicateField
from ..models.client import Client
from ..models.plan import PlanType, SubscriptionPlan
from ..models.session import SessionStatus, TrainingSession
from ..models.user import Role, User
from .engine import get_db_path


def _parse_timestamp(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _duplicate_error(error: aiosqlite.IntegrityError, entity: str) -> Exception:
    """Translate a UNIQUE constraint failure into a field-specific error."""
    message = str(error)
    prefix = "UNIQUE constraint failed: "
    if message.startswith(prefix):
        # e.g. "UNIQUE constraint failed: users.phone"
        column = message[len(prefix):].split(",")[0].split(".")[-1].strip()
        return DuplicateField(entity, column.replace("_", " "))
    return error


class UserRepository:
    """Repository for staff users."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, user: User) -> int:
        """Create a new user."""
        now = datetime.now()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                cursor = await db.execute(
                    """
                    INSERT INTO users
                    (name, phone, password_hash, role, user_id, salary, days_off,
                     days_off_history, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        user.name,
                        user.phone,
                        user.password_hash,
                        user.role.value,
                        user.user_id,
                        user.salary,
                        json.dumps(user.days_off) if user.days_off is not None else None,
                        json.dumps([c.to_dict() for c in user.days_off_history]),
                        now.isoformat(),
                        now.isoformat(),
                    ),
                )
                await db.commit()
                user.id = cursor.lastrowid
        except aiosqlite.IntegrityError as e:
            raise _duplicate_error(e, "User") from e

        user.created_at = user.updated_at = now
        return user.id

    async def get(self, user_id: int) -> User | None:
        """Get a user by ID."""
        return await self._fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))

    async def get_by_phone(self, phone: str) -> User | None:
        return await self._fetch_one("SELECT * FROM users WHERE phone = ?", (phone,))

    async def get_by_reset_token(self, token_digest: str, now: datetime) -> User | None:
        """Get the user holding an unexpired password-reset token."""
        return await self._fetch_one(
            """
            SELECT * FROM users
            WHERE password_reset_token = ? AND password_reset_expires > ?
            """,
            (token_digest, now.isoformat()),
        )

    async def list_all(self, role: Role | None = None) -> list[User]:
        """List users, optionally restricted to one role."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            if role:
                cursor = await db.execute(
                    "SELECT * FROM users WHERE role = ? ORDER BY id", (role.value,)
                )
            else:
                cursor = await db.execute("SELECT * FROM users ORDER BY id")
            rows = await cursor.fetchall()
            return [self._row_to_user(row) for row in rows]

    async def get_many(self, ids: set[int]) -> dict[int, User]:
        """Fetch several users at once, keyed by id."""
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT * FROM users WHERE id IN ({placeholders})", tuple(ids)
            )
            rows = await cursor.fetchall()
            return {row["id"]: self._row_to_user(row) for row in rows}

    async def update(self, user: User) -> None:
        """Update an existing user."""
        if user.id is None:
            raise ValueError("User must have an ID to update")

        now = datetime.now()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    """
                    UPDATE users SET
                        name = ?, phone = ?, password_hash = ?, role = ?, salary = ?,
                        days_off = ?, days_off_history = ?, password_reset_token = ?,
                        password_reset_expires = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        user.name,
                        user.phone,
                        user.password_hash,
                        user.role.value,
                        user.salary,
                        json.dumps(user.days_off) if user.days_off is not None else None,
                        json.dumps([c.to_dict() for c in user.days_off_history]),
                        user.password_reset_token,
                        (
                            user.password_reset_expires.isoformat()
                            if user.password_reset_expires
                            else None
                        ),
                        now.isoformat(),
                        user.id,
                    ),
                )
                await db.commit()
        except aiosqlite.IntegrityError as e:
            raise _duplicate_error(e, "User") from e
        user.updated_at = now

    async def delete(self, user_id: int) -> bool:
        """Delete a user. Returns False when no such user exists."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute("DELETE FROM users WHERE id = ?", (user_id,))
            await db.commit()
            return cursor.rowcount > 0

    async def exists_user_id(self, code: str) -> bool:
        """Whether a generated user id is already taken."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT 1 FROM users WHERE user_id = ? LIMIT 1", (code,)
            )
            return await cursor.fetchone() is not None

    async def count(self) -> int:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM users")
            (total,) = await cursor.fetchone()
            return total

    async def total_coach_salaries(self) -> float:
        """Sum of salaries over coaches that have one."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                SELECT COALESCE(SUM(salary), 0) FROM users
                WHERE role = 'coach' AND salary IS NOT NULL
                """
            )
            (total,) = await cursor.fetchone()
            return total

    async def _fetch_one(self, sql: str, params: tuple) -> User | None:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(sql, params)
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_user(row)

    def _row_to_user(self, row: aiosqlite.Row) -> User:
        """Convert a database row to a User."""
        data = {
            "name": row["name"],
            "phone": row["phone"],
            "role": row["role"],
            "user_id": row["user_id"],
            "password_hash": row["password_hash"],
            "salary": row["salary"],
            "days_off": json.loads(row["days_off"]) if row["days_off"] else None,
            "days_off_history": json.loads(row["days_off_history"] or "[]"),
            "password_reset_token": row["password_reset_token"],
            "password_reset_expires": row["password_reset_expires"],
        }
        return User.from_dict(
            data,
            id=row["id"],
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )


class ClientRepository:
    """Repository for gym members."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, client: Client) -> int:
        """Create a new client."""
        now = datetime.now()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                cursor = await db.execute(
                    """
                    INSERT INTO clients
                    (name, phone, national_id, client_id, subscription, private_plan,
                     created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        client.name,
                        client.phone,
                        client.national_id,
                        client.client_id,
                        json.dumps(client.subscription.to_dict()),
                        (
                            json.dumps(client.private_plan.to_dict())
                            if client.private_plan
                            else None
                        ),
                        now.isoformat(),
                        now.isoformat(),
                    ),
                )
                await db.commit()
                client.id = cursor.lastrowid
        except aiosqlite.IntegrityError as e:
            raise _duplicate_error(e, "Client") from e

        client.created_at = client.updated_at = now
        return client.id

    async def get(self, client_id: int) -> Client | None:
        """Get a client by ID."""
        return await self._fetch_one("SELECT * FROM clients WHERE id = ?", (client_id,))

    async def get_by_login(self, phone: str, client_code: str) -> Client | None:
        """Get a client by phone and generated client id."""
        return await self._fetch_one(
            "SELECT * FROM clients WHERE phone = ? AND client_id = ?",
            (phone, client_code),
        )

    async def list_all(self) -> list[Client]:
        """List all clients."""
        return await self._fetch_all("SELECT * FROM clients ORDER BY id", ())

    async def list_by_coach(self, coach_id: int) -> list[Client]:
        """List clients whose private plan is assigned to a coach."""
        return await self._fetch_all(
            """
            SELECT * FROM clients
            WHERE json_extract(private_plan, '$.coach') = ?
            ORDER BY id
            """,
            (coach_id,),
        )

    async def update(self, client: Client) -> None:
        """Update an existing client. The generated client id never changes."""
        if client.id is None:
            raise ValueError("Client must have an ID to update")

        now = datetime.now()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    """
                    UPDATE clients SET
                        name = ?, phone = ?, national_id = ?, subscription = ?,
                        private_plan = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        client.name,
                        client.phone,
                        client.national_id,
                        json.dumps(client.subscription.to_dict()),
                        (
                            json.dumps(client.private_plan.to_dict())
                            if client.private_plan
                            else None
                        ),
                        now.isoformat(),
                        client.id,
                    ),
                )
                await db.commit()
        except aiosqlite.IntegrityError as e:
            raise _duplicate_error(e, "Client") from e
        client.updated_at = now

    async def delete(self, client_id: int) -> bool:
        """Delete a client. Returns False when no such client exists."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute("DELETE FROM clients WHERE id = ?", (client_id,))
            await db.commit()
            return cursor.rowcount > 0

    async def exists_client_id(self, code: str) -> bool:
        """Whether a generated client id is already taken."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT 1 FROM clients WHERE client_id = ? LIMIT 1", (code,)
            )
            return await cursor.fetchone() is not None

    async def count(self) -> int:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM clients")
            (total,) = await cursor.fetchone()
            return total

    async def count_referencing_plan(self, plan_id: int) -> int:
        """Count clients using a plan as main subscription or private plan."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                SELECT COUNT(*) FROM clients
                WHERE json_extract(subscription, '$.plan') = ?
                   OR json_extract(private_plan, '$.plan') = ?
                """,
                (plan_id, plan_id),
            )
            (total,) = await cursor.fetchone()
            return total

    async def total_income(self) -> float:
        """Sum of snapshot prices over all main and private plans."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                SELECT
                    COALESCE(SUM(json_extract(subscription, '$.price_at_purchase')), 0),
                    COALESCE(SUM(json_extract(private_plan, '$.price_at_purchase')), 0)
                FROM clients
                """
            )
            main_income, private_income = await cursor.fetchone()
            return main_income + private_income

    async def _fetch_one(self, sql: str, params: tuple) -> Client | None:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(sql, params)
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_client(row)

    async def _fetch_all(self, sql: str, params: tuple) -> list[Client]:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
            return [self._row_to_client(row) for row in rows]

    def _row_to_client(self, row: aiosqlite.Row) -> Client:
        """Convert a database row to a Client."""
        data = {
            "name": row["name"],
            "phone": row["phone"],
            "national_id": row["national_id"],
            "client_id": row["client_id"],
            "subscription": json.loads(row["subscription"]),
            "private_plan": json.loads(row["private_plan"]) if row["private_plan"] else None,
        }
        return Client.from_dict(
            data,
            id=row["id"],
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )


class PlanRepository:
    """Repository for the subscription plan catalog."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, plan: SubscriptionPlan) -> int:
        """Create a new plan."""
        now = datetime.now()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                cursor = await db.execute(
                    """
                    INSERT INTO subscription_plans
                    (name, type, duration_days, total_sessions, price, description,
                     created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        plan.name,
                        plan.type.value,
                        plan.duration_days,
                        plan.total_sessions,
                        plan.price,
                        plan.description,
                        now.isoformat(),
                        now.isoformat(),
                    ),
                )
                await db.commit()
                plan.id = cursor.lastrowid
        except aiosqlite.IntegrityError as e:
            raise _duplicate_error(e, "Subscription plan") from e

        plan.created_at = plan.updated_at = now
        return plan.id

    async def get(self, plan_id: int) -> SubscriptionPlan | None:
        """Get a plan by ID."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM subscription_plans WHERE id = ?", (plan_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_plan(row)

    async def get_by_name(self, name: str) -> SubscriptionPlan | None:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM subscription_plans WHERE name = ?", (name,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_plan(row)

    async def list_all(self, plan_type: PlanType | None = None) -> list[SubscriptionPlan]:
        """List plans, optionally filtered by type."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            if plan_type:
                cursor = await db.execute(
                    "SELECT * FROM subscription_plans WHERE type = ? ORDER BY id",
                    (plan_type.value,),
                )
            else:
                cursor = await db.execute("SELECT * FROM subscription_plans ORDER BY id")
            rows = await cursor.fetchall()
            return [self._row_to_plan(row) for row in rows]

    async def update(self, plan: SubscriptionPlan) -> None:
        """Update an existing plan."""
        if plan.id is None:
            raise ValueError("Plan must have an ID to update")

        now = datetime.now()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    """
                    UPDATE subscription_plans SET
                        name = ?, type = ?, duration_days = ?, total_sessions = ?,
                        price = ?, description = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        plan.name,
                        plan.type.value,
                        plan.duration_days,
                        plan.total_sessions,
                        plan.price,
                        plan.description,
                        now.isoformat(),
                        plan.id,
                    ),
                )
                await db.commit()
        except aiosqlite.IntegrityError as e:
            raise _duplicate_error(e, "Subscription plan") from e
        plan.updated_at = now

    async def delete(self, plan_id: int) -> bool:
        """Delete a plan. Returns False when no such plan exists."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "DELETE FROM subscription_plans WHERE id = ?", (plan_id,)
            )
            await db.commit()
            return cursor.rowcount > 0

    def _row_to_plan(self, row: aiosqlite.Row) -> SubscriptionPlan:
        """Convert a database row to a SubscriptionPlan."""
        return SubscriptionPlan.from_dict(
            {
                "name": row["name"],
                "type": row["type"],
                "duration_days": row["duration_days"],
                "total_sessions": row["total_sessions"],
                "price": row["price"],
                "description": row["description"],
            },
            id=row["id"],
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )


class SessionRepository:
    """Repository for training sessions."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, session: TrainingSession) -> int:
        """Create a new session."""
        now = datetime.now()
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO sessions
                (client, coach, date, status, notes, status_change_history,
                 created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.client,
                    session.coach,
                    session.date.isoformat(),
                    session.status.value,
                    session.notes,
                    json.dumps([c.to_dict() for c in session.status_change_history]),
                    now.isoformat(),
                    now.isoformat(),
                ),
            )
            await db.commit()
            session.id = cursor.lastrowid

        session.created_at = session.updated_at = now
        return session.id

    async def get(self, session_id: int) -> TrainingSession | None:
        """Get a session by ID."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM sessions WHERE id = ?", (session_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_session(row)

    async def list_all(self) -> list[TrainingSession]:
        return await self._fetch_all("SELECT * FROM sessions ORDER BY date", ())

    async def list_by_coach(self, coach_id: int) -> list[TrainingSession]:
        return await self._fetch_all(
            "SELECT * FROM sessions WHERE coach = ? ORDER BY date", (coach_id,)
        )

    async def list_by_client(self, client_id: int) -> list[TrainingSession]:
        return await self._fetch_all(
            "SELECT * FROM sessions WHERE client = ? ORDER BY date", (client_id,)
        )

    async def update(self, session: TrainingSession) -> None:
        """Update an existing session, history included."""
        if session.id is None:
            raise ValueError("Session must have an ID to update")

        now = datetime.now()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                UPDATE sessions SET
                    client = ?, coach = ?, date = ?, status = ?, notes = ?,
                    status_change_history = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    session.client,
                    session.coach,
                    session.date.isoformat(),
                    session.status.value,
                    session.notes,
                    json.dumps([c.to_dict() for c in session.status_change_history]),
                    now.isoformat(),
                    session.id,
                ),
            )
            await db.commit()
        session.updated_at = now

    async def delete(self, session_id: int) -> bool:
        """Delete a session. Returns False when no such session exists."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
            await db.commit()
            return cursor.rowcount > 0

    async def count_completed_for_client(self, client_id: int) -> int:
        """Count a client's completed sessions."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT COUNT(*) FROM sessions WHERE client = ? AND status = ?",
                (client_id, SessionStatus.COMPLETED.value),
            )
            (total,) = await cursor.fetchone()
            return total

    async def _fetch_all(self, sql: str, params: tuple) -> list[TrainingSession]:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
            return [self._row_to_session(row) for row in rows]

    def _row_to_session(self, row: aiosqlite.Row) -> TrainingSession:
        """Convert a database row to a TrainingSession."""
        return TrainingSession.from_dict(
            {
                "client": row["client"],
                "coach": row["coach"],
                "date": row["date"],
                "status": row["status"],
                "notes": row["notes"],
                "status_change_history": json.loads(row["status_change_history"] or "[]"),
            },
            id=row["id"],
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )


class Store:
    """Handle on the document store.

    Built once by the process entry point and passed to request handlers;
    each repository opens its own connection per operation.
    """

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()
        self.users = UserRepository(self.db_path)
        self.clients = ClientRepository(self.db_path)
        self.plans = PlanRepository(self.db_path)
        self.sessions = SessionRepository(self.db_path)
