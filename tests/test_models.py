"""Tests for data models."""

from datetime import date, datetime, timedelta

from gymkeeper.models.client import Client, PrivatePlan, Subscription
from gymkeeper.models.plan import PlanType, SubscriptionPlan
from gymkeeper.models.session import (
    DEFAULT_STATUS_REASON,
    SessionStatus,
    TrainingSession,
    completion_reason,
)
from gymkeeper.models.user import Role, User, hash_reset_token


def _client(private_plan=None) -> Client:
    return Client(
        name="Dana",
        phone="0501234567",
        national_id="123456789",
        client_id="CL56712",
        subscription=Subscription(
            plan=1,
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 31),
            price_at_purchase=50,
        ),
        private_plan=private_plan,
    )


class TestTrainingSession:
    """Tests for the session status lifecycle."""

    def test_new_session_is_pending_with_empty_history(self):
        session = TrainingSession(client=1, coach=2, date=datetime(2024, 1, 10))
        assert session.status == SessionStatus.PENDING
        assert session.status_change_history == []

    def test_set_status_appends_history(self):
        session = TrainingSession(client=1, coach=2, date=datetime(2024, 1, 10))
        now = datetime(2024, 1, 10, 19, 0)

        change = session.set_status(SessionStatus.COMPLETED, changed_by=2, now=now)

        assert session.status == SessionStatus.COMPLETED
        assert session.status_change_history == [change]
        assert change.changed_by == 2
        assert change.changed_at == now
        assert change.reason == DEFAULT_STATUS_REASON

    def test_history_is_never_rewritten(self):
        session = TrainingSession(client=1, coach=2, date=datetime(2024, 1, 10))
        session.set_status(SessionStatus.CANCELED, changed_by=9, reason="Sick")
        first = session.status_change_history[0]

        session.set_status(SessionStatus.COMPLETED, changed_by=2)

        assert len(session.status_change_history) == 2
        assert session.status_change_history[0] is first
        assert first.status == SessionStatus.CANCELED
        assert first.reason == "Sick"

    def test_terminal_statuses(self):
        assert not SessionStatus.PENDING.is_terminal
        assert SessionStatus.COMPLETED.is_terminal
        assert SessionStatus.CANCELED.is_terminal

    def test_completion_reason_names_role(self):
        assert completion_reason("coach") == "Marked as completed by coach"

    def test_involves(self):
        session = TrainingSession(client=1, coach=2, date=datetime(2024, 1, 10))
        assert session.involves(coach_id=2)
        assert session.involves(client_id=1)
        assert not session.involves(coach_id=1, client_id=2)

    def test_from_dict_restores_history(self):
        session = TrainingSession(client=1, coach=2, date=datetime(2024, 1, 10))
        session.set_status(SessionStatus.COMPLETED, changed_by=2, reason="Done")

        restored = TrainingSession.from_dict(session.to_dict(), id=7)

        assert restored.id == 7
        assert restored.status == SessionStatus.COMPLETED
        assert restored.status_change_history[0].reason == "Done"
        assert restored.date == datetime(2024, 1, 10)


class TestClientModel:
    """Tests for the Client model."""

    def test_remaining_sessions_without_private_plan(self):
        assert _client().remaining_sessions(3) == 0

    def test_remaining_sessions_without_total(self):
        client = _client(PrivatePlan(plan=3, coach=2))
        assert client.remaining_sessions(0) == 0

    def test_remaining_sessions(self):
        client = _client(PrivatePlan(plan=3, coach=2, total_sessions=10))
        assert client.remaining_sessions(4) == 6

    def test_remaining_sessions_can_go_negative(self):
        client = _client(PrivatePlan(plan=3, coach=2, total_sessions=10))
        assert client.remaining_sessions(12) == -2

    def test_references_plan(self):
        client = _client(PrivatePlan(plan=3, coach=2))
        assert client.references_plan(1)
        assert client.references_plan(3)
        assert not client.references_plan(4)

    def test_is_coached_by(self):
        assert _client(PrivatePlan(coach=2)).is_coached_by(2)
        assert not _client(PrivatePlan(coach=2)).is_coached_by(5)
        assert not _client().is_coached_by(2)

    def test_to_dict_dates(self):
        data = _client().to_dict()
        assert data["subscription"]["start_date"] == "2024-01-01"
        assert data["subscription"]["price_at_purchase"] == 50
        assert data["private_plan"] is None

    def test_from_dict_accepts_date_strings(self):
        data = _client().to_dict()
        client = Client.from_dict(data)
        assert client.subscription.end_date == date(2024, 1, 31)


class TestSubscriptionPlan:
    def test_from_dict_defaults(self):
        plan = SubscriptionPlan.from_dict({"name": "Monthly", "type": "main", "price": 50})
        assert plan.type == PlanType.MAIN
        assert plan.total_sessions == 0
        assert plan.description == ""


class TestUser:
    """Tests for the staff User model."""

    def _coach(self) -> User:
        return User(name="Coach", phone="0501112223", role=Role.COACH, salary=2500)

    def test_to_dict_hides_secrets(self):
        user = self._coach()
        user.password_hash = "hash"
        user.create_password_reset_token(600)

        data = user.to_dict()

        assert "password_hash" not in data
        assert "password_reset_token" not in data
        assert data["role"] == "coach"

    def test_set_days_off_records_history(self):
        user = self._coach()
        now = datetime(2024, 3, 1, 9, 0)

        user.set_days_off(["Friday", "Saturday"], changed_by=1, now=now)
        user.set_days_off(["Sunday"], changed_by=user.id or 5, now=now)

        assert user.days_off == ["Sunday"]
        assert [c.days_off for c in user.days_off_history] == [
            ["Friday", "Saturday"],
            ["Sunday"],
        ]
        assert user.days_off_history[0].changed_by == 1

    def test_reset_token_stores_digest(self):
        user = self._coach()
        now = datetime(2024, 3, 1, 9, 0)

        token = user.create_password_reset_token(600, now=now)

        assert user.password_reset_token == hash_reset_token(token)
        assert user.password_reset_token != token
        assert user.password_reset_expires == now + timedelta(minutes=10)

        user.clear_password_reset()
        assert user.password_reset_token is None
        assert user.password_reset_expires is None

    def test_to_summary(self):
        user = self._coach()
        user.id = 4
        assert user.to_summary("name", "phone") == {
            "id": 4,
            "name": "Coach",
            "phone": "0501112223",
        }
