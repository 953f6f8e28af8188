"""End-to-end tests through the HTTP API."""

import pytest

from gymkeeper.models.plan import PlanType
from gymkeeper.models.session import SessionStatus
from gymkeeper.models.user import Role

API = "/api/v1"


@pytest.fixture
def super_admin(make_user):
    return make_user(Role.SUPER_ADMIN, name="Boss")


@pytest.fixture
def admin(make_user):
    return make_user(Role.ADMIN, name="Desk")


@pytest.fixture
def coach(make_user):
    return make_user(Role.COACH, name="Coach A", salary=2500)


@pytest.fixture
def other_coach(make_user):
    return make_user(Role.COACH, name="Coach B", salary=2000)


@pytest.fixture
def coached_client(make_plan, make_client, coach):
    monthly = make_plan("Monthly", price=50)
    private = make_plan("Ten", PlanType.PRIVATE, price=300, total_sessions=10)
    return make_client(monthly, private_plan=private, coach=coach, total_sessions=10)


def _data(response) -> dict:
    body = response.json()
    assert body["status"] == "success", body
    return body["data"]


class TestEnvelope:
    def test_health(self, api):
        assert api.get("/health").json()["status"] == "healthy"

    def test_missing_token(self, api):
        response = api.get(f"{API}/users")
        assert response.status_code == 401
        assert response.json()["status"] == "error"
        assert "not logged in" in response.json()["message"]

    def test_tampered_token(self, api):
        response = api.get(f"{API}/users", headers={"Authorization": "Bearer abc.def"})
        assert response.status_code == 401

    def test_unknown_document(self, api, admin, login):
        response = api.get(f"{API}/clients/999", headers=login(admin))
        assert response.status_code == 404
        assert response.json() == {
            "status": "error",
            "message": "No client found with that ID",
        }

    def test_body_validation_is_400(self, api, admin, login):
        response = api.post(
            f"{API}/subscriptions",
            json={"name": "Broken", "type": "main", "price": 10},
            headers=login(admin),
        )
        assert response.status_code == 400
        assert response.json()["status"] == "error"


class TestAuth:
    """Tests for the auth routes."""

    def test_login_wrong_password(self, api, admin):
        response = api.post(
            f"{API}/auth/login", json={"phone": admin.phone, "password": "nope-nope"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Incorrect phone or password"

    def test_me(self, api, coach, login):
        user = _data(api.get(f"{API}/auth/me", headers=login(coach)))["user"]
        assert user["id"] == coach.id
        assert "password_hash" not in user

    def test_client_login_and_me(self, api, coached_client, login_client):
        headers = login_client(coached_client)
        client = _data(api.get(f"{API}/auth/me", headers=headers))["client"]
        assert client["client_id"] == coached_client.client_id

    def test_client_login_wrong_code(self, api, coached_client):
        response = api.post(
            f"{API}/auth/login-client",
            json={"phone": coached_client.phone, "client_id": "CL00000"},
        )
        assert response.status_code == 401

    def test_update_password(self, api, coach, login):
        headers = login(coach)
        wrong = api.patch(
            f"{API}/auth/update-password",
            json={"current_password": "wrong-one", "new_password": "brand-new"},
            headers=headers,
        )
        assert wrong.status_code == 401

        ok = api.patch(
            f"{API}/auth/update-password",
            json={"current_password": "secret123", "new_password": "brand-new"},
            headers=headers,
        )
        assert ok.status_code == 200
        assert _data(ok)["token"]
        login(coach, "brand-new")

    def test_forgot_password_hides_token_by_default(self, api, super_admin):
        response = api.post(f"{API}/auth/forgot-password", json={"phone": super_admin.phone})
        assert response.status_code == 200
        data = _data(response)
        assert "reset_token" not in data
        assert data["message"] == "Reset token issued"

    def test_forgot_and_reset_password(self, api, settings, coach, login):
        settings.expose_reset_token = True
        issued = _data(api.post(f"{API}/auth/forgot-password", json={"phone": coach.phone}))

        reset = api.patch(
            f"{API}/auth/reset-password",
            json={"token": issued["reset_token"], "new_password": "after-reset"},
        )
        assert reset.status_code == 200
        login(coach, "after-reset")

        reused = api.patch(
            f"{API}/auth/reset-password",
            json={"token": issued["reset_token"], "new_password": "again-reset"},
        )
        assert reused.status_code == 400
        assert reused.json()["message"] == "Token is invalid or has expired"

    def test_forgot_password_unknown_phone(self, api):
        response = api.post(f"{API}/auth/forgot-password", json={"phone": "000"})
        assert response.status_code == 404

    def test_register_requires_admin(self, api, coach, login):
        response = api.post(
            f"{API}/auth/register",
            json={"name": "X", "phone": "0521111111", "password": "secret1", "role": "coach",
                  "salary": 100},
            headers=login(coach),
        )
        assert response.status_code == 403


class TestUsers:
    """Tests for the user routes."""

    def _create(self, api, headers, role, phone="0527654321", **extra):
        body = {"name": "New", "phone": phone, "password": "secret1", "role": role, **extra}
        return api.post(f"{API}/users", json=body, headers=headers)

    def test_admin_creates_coach_with_generated_id(self, api, admin, login):
        response = self._create(api, login(admin), "coach", salary=1800)
        assert response.status_code == 201
        user = _data(response)["user"]
        assert user["user_id"].startswith("CO321")
        assert len(user["user_id"]) == 7

    def test_coach_requires_salary(self, api, admin, login):
        response = self._create(api, login(admin), "coach")
        assert response.status_code == 400

    def test_admin_cannot_create_admin(self, api, admin, login):
        response = self._create(api, login(admin), "admin")
        assert response.status_code == 403
        assert response.json()["message"] == "Only super admin can create admin users."

    def test_super_admin_creates_admin(self, api, super_admin, login):
        response = self._create(api, login(super_admin), "admin")
        assert response.status_code == 201
        assert _data(response)["user"]["user_id"].startswith("AD")

    def test_duplicate_phone(self, api, admin, coach, login):
        response = self._create(api, login(admin), "coach", phone=coach.phone, salary=10)
        assert response.status_code == 400
        assert response.json()["message"] == "User with this phone already exists"

    def test_admin_cannot_change_roles(self, api, admin, coach, login):
        response = api.patch(
            f"{API}/users/{coach.id}", json={"role": "admin"}, headers=login(admin)
        )
        assert response.status_code == 403

    def test_super_admin_changes_roles(self, api, super_admin, coach, login):
        response = api.patch(
            f"{API}/users/{coach.id}", json={"role": "admin"}, headers=login(super_admin)
        )
        assert response.status_code == 200
        assert _data(response)["user"]["role"] == "admin"

    def test_coach_updates_own_profile_only(self, api, coach, other_coach, login):
        headers = login(coach)
        own = api.patch(f"{API}/users/{coach.id}", json={"name": "A."}, headers=headers)
        other = api.patch(f"{API}/users/{other_coach.id}", json={"name": "B."}, headers=headers)
        assert own.status_code == 200
        assert other.status_code == 403

    def test_coach_cannot_raise_own_salary(self, api, coach, login):
        response = api.patch(
            f"{API}/users/{coach.id}",
            json={"name": "Richer", "salary": 99999},
            headers=login(coach),
        )
        assert response.status_code == 200
        user = _data(response)["user"]
        assert user["name"] == "Richer"
        assert user["salary"] == 2500

    def test_admin_sets_salary(self, api, admin, coach, login):
        response = api.patch(
            f"{API}/users/{coach.id}", json={"salary": 3000}, headers=login(admin)
        )
        assert _data(response)["user"]["salary"] == 3000

    def test_self_delete_denied(self, api, super_admin, login):
        response = api.delete(f"{API}/users/{super_admin.id}", headers=login(super_admin))
        assert response.status_code == 403

    def test_delete_user(self, api, admin, coach, login):
        headers = login(admin)
        assert api.delete(f"{API}/users/{coach.id}", headers=headers).status_code == 204
        assert api.get(f"{API}/users/{coach.id}", headers=headers).status_code == 404

    def test_days_off_history(self, api, admin, coach, login):
        api.patch(
            f"{API}/users/{coach.id}/days-off",
            json={"days_off": ["Friday"]},
            headers=login(coach),
        )
        response = api.patch(
            f"{API}/users/{coach.id}/days-off",
            json={"days_off": ["Saturday", "Sunday"]},
            headers=login(admin),
        )
        user = _data(response)["user"]
        assert user["days_off"] == ["Saturday", "Sunday"]
        assert [h["changed_by"] for h in user["days_off_history"]] == [coach.id, admin.id]

    def test_days_off_rejects_unknown_day(self, api, coach, login):
        response = api.patch(
            f"{API}/users/{coach.id}/days-off",
            json={"days_off": ["Funday"]},
            headers=login(coach),
        )
        assert response.status_code == 400

    def test_admin_resets_password(self, api, admin, coach, login):
        response = api.patch(
            f"{API}/users/{coach.id}/password",
            json={"new_password": "reset-by-admin"},
            headers=login(admin),
        )
        assert response.status_code == 200
        login(coach, "reset-by-admin")

    def test_admin_cannot_reset_super_admin_password(self, api, admin, super_admin, login):
        headers = login(admin)
        reset = api.patch(
            f"{API}/users/{super_admin.id}/password",
            json={"new_password": "taken-over"},
            headers=headers,
        )
        assert reset.status_code == 403

        update = api.patch(
            f"{API}/users/{super_admin.id}", json={"name": "Renamed"}, headers=headers
        )
        assert update.status_code == 403
        assert api.delete(f"{API}/users/{super_admin.id}", headers=headers).status_code == 403
        login(super_admin)

    def test_my_clients(self, api, coach, other_coach, coached_client, login):
        mine = _data(api.get(f"{API}/users/me/clients", headers=login(coach)))
        theirs = _data(api.get(f"{API}/users/me/clients", headers=login(other_coach)))
        assert [c["id"] for c in mine["clients"]] == [coached_client.id]
        assert theirs["results"] == 0


class TestClients:
    """Tests for the client routes, including price snapshots."""

    def _create_plan(self, api, headers, **body):
        response = api.post(f"{API}/subscriptions", json=body, headers=headers)
        assert response.status_code == 201, response.text
        return _data(response)["plan"]

    def test_price_snapshot_on_create(self, api, admin, login):
        headers = login(admin)
        plan = self._create_plan(
            api, headers, name="Monthly", type="main", price=50, duration_days=30
        )

        response = api.post(
            f"{API}/clients",
            json={
                "name": "Dana",
                "phone": "0541234567",
                "national_id": "302000111",
                "subscription": {
                    "plan": plan["id"],
                    "start_date": "2024-01-01",
                    "end_date": "2024-01-31",
                },
            },
            headers=headers,
        )

        assert response.status_code == 201
        client = _data(response)["client"]
        assert client["subscription"]["price_at_purchase"] == 50
        assert client["subscription"]["plan"]["name"] == "Monthly"
        assert client["client_id"].startswith("CL567")

        # A later catalog price change does not touch the snapshot
        api.patch(f"{API}/subscriptions/{plan['id']}", json={"price": 80}, headers=headers)
        reread = _data(api.get(f"{API}/clients/{client['id']}", headers=headers))["client"]
        assert reread["subscription"]["price_at_purchase"] == 50
        assert reread["subscription"]["plan"]["price"] == 80

    def test_caller_price_and_client_id_ignored(self, api, admin, coach, login):
        headers = login(admin)
        main = self._create_plan(
            api, headers, name="Monthly", type="main", price=50, duration_days=30
        )
        private = self._create_plan(
            api, headers, name="Ten", type="private", price=300, total_sessions=10
        )

        response = api.post(
            f"{API}/clients",
            json={
                "name": "Dana",
                "phone": "0541234567",
                "national_id": "302000111",
                "client_id": "CL00001",
                "subscription": {
                    "plan": main["id"],
                    "start_date": "2024-01-01",
                    "end_date": "2024-01-31",
                    "price_at_purchase": 1,
                },
                "private_plan": {"plan": private["id"], "coach": coach.id},
            },
            headers=headers,
        )

        client = _data(response)["client"]
        assert client["client_id"] != "CL00001"
        assert client["subscription"]["price_at_purchase"] == 50
        assert client["private_plan"]["price_at_purchase"] == 300
        assert client["private_plan"]["total_sessions"] == 10
        assert client["private_plan"]["coach"]["name"] == "Coach A"

    def test_unknown_plan(self, api, admin, login):
        response = api.post(
            f"{API}/clients",
            json={
                "name": "Dana",
                "phone": "0541234567",
                "national_id": "302000111",
                "subscription": {"plan": 42, "start_date": "2024-01-01", "end_date": "2024-01-31"},
            },
            headers=login(admin),
        )
        assert response.status_code == 400

    def test_private_plan_coach_must_be_a_coach(self, api, admin, coached_client, login):
        response = api.patch(
            f"{API}/clients/{coached_client.id}",
            json={"private_plan": {"coach": admin.id}},
            headers=login(admin),
        )
        assert response.status_code == 400

    def test_update_keeps_client_id(self, api, admin, coached_client, login):
        response = api.patch(
            f"{API}/clients/{coached_client.id}",
            json={"client_id": "CL99999", "name": "Renamed"},
            headers=login(admin),
        )
        client = _data(response)["client"]
        assert client["client_id"] == coached_client.client_id
        assert client["name"] == "Renamed"

    def test_unassigned_coach_denied(self, api, other_coach, coached_client, login):
        response = api.get(f"{API}/clients/{coached_client.id}", headers=login(other_coach))
        assert response.status_code == 403

    def test_assigned_coach_allowed(self, api, coach, coached_client, login):
        response = api.get(f"{API}/clients/{coached_client.id}", headers=login(coach))
        assert response.status_code == 200

    def test_client_reads_self(self, api, coached_client, login_client):
        response = api.get(
            f"{API}/clients/{coached_client.id}", headers=login_client(coached_client)
        )
        assert response.status_code == 200

    def test_client_cannot_read_others(
        self, api, coached_client, make_client, make_plan, login_client
    ):
        other = make_client(make_plan("Other"))
        response = api.get(f"{API}/clients/{other.id}", headers=login_client(coached_client))
        assert response.status_code == 403

    def test_coach_cannot_modify_clients(self, api, coach, coached_client, login):
        headers = login(coach)
        patch = api.patch(
            f"{API}/clients/{coached_client.id}", json={"name": "x"}, headers=headers
        )
        delete = api.delete(f"{API}/clients/{coached_client.id}", headers=headers)
        assert patch.status_code == 403
        assert delete.status_code == 403

    def test_coach_list_is_scoped(self, api, coach, coached_client, make_client, make_plan, login):
        make_client(make_plan("Other"))
        clients = _data(api.get(f"{API}/clients", headers=login(coach)))["clients"]
        assert [c["id"] for c in clients] == [coached_client.id]

    def test_remaining_sessions(
        self, api, coach, coached_client, make_session, login_client
    ):
        for _ in range(3):
            make_session(coached_client, coach, SessionStatus.COMPLETED)
        make_session(coached_client, coach, SessionStatus.CANCELED)

        data = _data(
            api.get(
                f"{API}/clients/{coached_client.id}/subscription",
                headers=login_client(coached_client),
            )
        )
        assert data["completed_sessions"] == 3
        assert data["remaining_sessions"] == 7


class TestPlans:
    """Tests for the subscription plan routes."""

    def test_everyone_reads_plans(self, api, coached_client, login_client):
        plans = _data(api.get(f"{API}/subscriptions", headers=login_client(coached_client)))
        assert plans["results"] == 2

    def test_type_filters(self, api, coach, coached_client, login):
        headers = login(coach)
        main = _data(api.get(f"{API}/subscriptions/main", headers=headers))["plans"]
        private = _data(api.get(f"{API}/subscriptions?type=private", headers=headers))["plans"]
        assert [p["type"] for p in main] == ["main"]
        assert [p["type"] for p in private] == ["private"]

    def test_coach_cannot_create_plans(self, api, coach, login):
        response = api.post(
            f"{API}/subscriptions",
            json={"name": "X", "type": "private", "price": 10},
            headers=login(coach),
        )
        assert response.status_code == 403

    def test_delete_referenced_plan_fails(self, api, admin, coached_client, login):
        plan_id = coached_client.private_plan.plan
        response = api.delete(f"{API}/subscriptions/{plan_id}", headers=login(admin))
        assert response.status_code == 400
        assert "currently being used by clients" in response.json()["message"]

    def test_type_change_of_referenced_plan_fails(self, api, admin, coached_client, login):
        plan_id = coached_client.subscription.plan
        response = api.patch(
            f"{API}/subscriptions/{plan_id}", json={"type": "private"}, headers=login(admin)
        )
        assert response.status_code == 400
        assert "Cannot change the type" in response.json()["message"]

    def test_price_change_of_referenced_plan_allowed(self, api, admin, coached_client, login):
        plan_id = coached_client.subscription.plan
        response = api.patch(
            f"{API}/subscriptions/{plan_id}", json={"price": 75}, headers=login(admin)
        )
        assert response.status_code == 200
        assert _data(response)["plan"]["price"] == 75

    def test_delete_unreferenced_plan(self, api, admin, make_plan, login):
        plan = make_plan("Unused")
        response = api.delete(f"{API}/subscriptions/{plan.id}", headers=login(admin))
        assert response.status_code == 204


class TestSessions:
    """Tests for the session routes and the status lifecycle."""

    @pytest.fixture
    def session(self, api, admin, coach, coached_client, login):
        response = api.post(
            f"{API}/sessions",
            json={
                "client": coached_client.id,
                "coach": coach.id,
                "date": "2024-01-10T18:00:00",
            },
            headers=login(admin),
        )
        assert response.status_code == 201, response.text
        return _data(response)["session"]

    def test_created_pending_and_linked(self, api, admin, coached_client, session, login):
        assert session["status"] == "pending"
        assert session["status_change_history"] == []
        assert session["coach"]["name"] == "Coach A"

        client = _data(
            api.get(f"{API}/clients/{coached_client.id}", headers=login(admin))
        )["client"]
        assert client["private_plan"]["sessions"] == [session["id"]]

    def test_delete_unlinks(self, api, admin, coached_client, session, login):
        headers = login(admin)
        assert api.delete(f"{API}/sessions/{session['id']}", headers=headers).status_code == 204
        client = _data(api.get(f"{API}/clients/{coached_client.id}", headers=headers))["client"]
        assert client["private_plan"]["sessions"] == []

    def test_coach_cannot_cancel(self, api, admin, coach, session, login):
        response = api.patch(
            f"{API}/sessions/{session['id']}/status",
            json={"status": "canceled"},
            headers=login(coach),
        )
        assert response.status_code == 400

        current = _data(api.get(f"{API}/sessions/{session['id']}", headers=login(admin)))
        assert current["session"]["status"] == "pending"
        assert current["session"]["status_change_history"] == []

    def test_coach_cannot_edit_fields(self, api, coach, session, login):
        headers = login(coach)
        notes = api.patch(
            f"{API}/sessions/{session['id']}", json={"notes": "moved"}, headers=headers
        )
        cancel = api.patch(
            f"{API}/sessions/{session['id']}", json={"status": "canceled"}, headers=headers
        )
        assert notes.status_code == 403
        assert cancel.status_code == 403
        assert cancel.json()["message"] == "You can only mark sessions as completed."

    def test_coach_completes(self, api, coach, session, login):
        response = api.patch(
            f"{API}/sessions/{session['id']}/status",
            json={"status": "completed"},
            headers=login(coach),
        )
        completed = _data(response)["session"]
        assert completed["status"] == "completed"
        assert completed["status_change_history"][0]["reason"] == "Marked as completed by coach"
        assert completed["status_change_history"][0]["changed_by"] == coach.id

    def test_client_completes_via_patch(self, api, coached_client, session, login_client):
        response = api.patch(
            f"{API}/sessions/{session['id']}",
            json={"status": "completed"},
            headers=login_client(coached_client),
        )
        history = _data(response)["session"]["status_change_history"]
        assert history[0]["reason"] == "Marked as completed by client"

    def test_completed_session_stays_completed(self, api, coach, session, login):
        headers = login(coach)
        url = f"{API}/sessions/{session['id']}/status"
        api.patch(url, json={"status": "completed"}, headers=headers)
        again = api.patch(url, json={"status": "completed"}, headers=headers)
        assert again.status_code == 400

    def test_outsider_coach_denied(self, api, other_coach, session, login):
        response = api.patch(
            f"{API}/sessions/{session['id']}/status",
            json={"status": "completed"},
            headers=login(other_coach),
        )
        assert response.status_code == 403

    def test_history_only_grows(self, api, admin, coach, session, login):
        url = f"{API}/sessions/{session['id']}"
        api.patch(f"{url}/status", json={"status": "completed"}, headers=login(coach))
        headers = login(admin)
        api.patch(url, json={"status": "canceled", "reason": "Double booked"}, headers=headers)
        api.patch(url, json={"notes": "no status change"}, headers=headers)
        api.patch(f"{url}/status", json={"status": "pending"}, headers=headers)

        history = _data(api.get(url, headers=headers))["session"]["status_change_history"]
        assert [h["status"] for h in history] == ["completed", "canceled", "pending"]
        assert history[1]["reason"] == "Double booked"
        assert history[2]["reason"] == "Status updated"

    def test_coach_sees_own_sessions(self, api, coach, other_coach, session, login):
        mine = _data(api.get(f"{API}/sessions", headers=login(coach)))
        theirs = _data(api.get(f"{API}/sessions", headers=login(other_coach)))
        assert mine["results"] == 1
        assert theirs["results"] == 0

    def test_sessions_for_client(self, api, coached_client, session, login_client):
        data = _data(
            api.get(
                f"{API}/sessions/client/{coached_client.id}",
                headers=login_client(coached_client),
            )
        )
        assert [s["id"] for s in data["sessions"]] == [session["id"]]


class TestStatistics:
    def test_super_admin_only(self, api, admin, login):
        assert api.get(f"{API}/statistics", headers=login(admin)).status_code == 403

    def test_completion_rate(self, api, super_admin, coach, coached_client, make_session, login):
        for i in range(10):
            status = SessionStatus.COMPLETED if i < 3 else SessionStatus.PENDING
            make_session(coached_client, coach, status)

        stats = _data(api.get(f"{API}/statistics", headers=login(super_admin)))["statistics"]

        assert stats["sessions"]["completion_rate"] == 30
        assert stats["performance"]["coach_performance"][coach.user_id]["completion_rate"] == 30
        assert stats["financial"]["total_income"] == 350

    def test_quick(self, api, super_admin, coach, coached_client, login):
        quick = _data(api.get(f"{API}/statistics/quick", headers=login(super_admin)))
        assert quick["statistics"]["total_revenue"] == 350
        assert quick["statistics"]["total_salaries"] == 2500
        assert quick["statistics"]["net_profit"] == 350 - 2500
