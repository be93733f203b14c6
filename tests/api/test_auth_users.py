"""API tests for authentication, user profile and admin user management."""
import pytest

from homecare.models.audit import AuditLog
from homecare.models.plan import UserPlan
from homecare.models.user import User, UserRole
from tests.conftest import PASSWORD, auth_headers

pytestmark = pytest.mark.api


class TestRegister:
    def test_register_homeowner_starts_on_free_plan(self, client, db):
        response = client.post("/api/v1/auth/register", json={
            "email": "New@Example.com",
            "password": "supersecret1",
            "full_name": "New Owner",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "new@example.com"
        assert data["role"] == "homeowner"
        assert "hashed_password" not in data

        user_plan = db.get(UserPlan, data["id"])
        assert user_plan.plan_id == 1
        assert user_plan.subscription_status == "free"

    def test_register_provider_has_no_plan(self, client, db):
        response = client.post("/api/v1/auth/register", json={
            "email": "pro2@example.com",
            "password": "supersecret1",
            "full_name": "Pro Two",
            "role": "provider",
        })
        assert response.status_code == 201
        assert response.json()["role"] == "provider"
        assert db.get(UserPlan, response.json()["id"]) is None

    def test_cannot_self_register_as_admin(self, client):
        response = client.post("/api/v1/auth/register", json={
            "email": "evil@example.com",
            "password": "supersecret1",
            "full_name": "Evil",
            "role": "admin",
        })
        assert response.status_code == 422

    def test_duplicate_email_rejected(self, client, homeowner):
        response = client.post("/api/v1/auth/register", json={
            "email": homeowner.email,
            "password": "supersecret1",
            "full_name": "Dup",
        })
        assert response.status_code == 400


class TestLogin:
    def test_login_returns_usable_token(self, client, homeowner):
        response = client.post("/api/v1/auth/login", json={"email": homeowner.email, "password": PASSWORD})
        assert response.status_code == 200
        token = response.json()["access_token"]

        me = client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["email"] == homeowner.email
        assert me.json()["last_login_at"] is not None

    def test_wrong_password(self, client, homeowner):
        response = client.post("/api/v1/auth/login", json={"email": homeowner.email, "password": "wrongpass1"})
        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid credentials", "type": "authentication_error"}
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_unknown_email_same_error(self, client):
        response = client.post("/api/v1/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    def test_inactive_user_cannot_log_in(self, client, db, homeowner):
        homeowner.is_active = False
        db.commit()
        response = client.post("/api/v1/auth/login", json={"email": homeowner.email, "password": PASSWORD})
        assert response.status_code == 401

    def test_refresh(self, client, homeowner_headers):
        response = client.post("/api/v1/auth/refresh", headers=homeowner_headers)
        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"


class TestMe:
    def test_requires_auth(self, client):
        assert client.get("/api/v1/users/me").status_code == 401
        bad = client.get("/api/v1/users/me", headers={"Authorization": "Bearer nope"})
        assert bad.status_code == 401

    def test_me_includes_plan(self, client, homeowner_headers):
        data = client.get("/api/v1/users/me", headers=homeowner_headers).json()
        assert data["plan"]["slug"] == "free"
        assert data["plan"]["max_homes"] == 1
        assert data["subscription_status"] == "free"

    def test_update_me(self, client, homeowner_headers):
        response = client.patch("/api/v1/users/me", headers=homeowner_headers,
                                json={"full_name": "Renamed", "zip_code": "02139"})
        assert response.status_code == 200
        assert response.json()["full_name"] == "Renamed"
        assert response.json()["zip_code"] == "02139"

    def test_delete_me_without_billing(self, client, db, homeowner, homeowner_headers):
        response = client.delete("/api/v1/users/me", headers=homeowner_headers)
        assert response.status_code == 204
        assert db.query(User).filter(User.email == "owner@example.com").count() == 0

    def test_delete_me_cancels_subscription(self, client, db, homeowner, homeowner_headers, fake_stripe):
        user_plan = db.get(UserPlan, homeowner.id)
        user_plan.stripe_subscription_id = "sub_123"
        db.commit()

        response = client.delete("/api/v1/users/me", headers=homeowner_headers)

        assert response.status_code == 204
        fake_stripe.cancel_subscription.assert_called_once_with("sub_123")


class TestAdminUsers:
    def test_non_admin_forbidden(self, client, homeowner_headers):
        response = client.get("/api/v1/admin/users", headers=homeowner_headers)
        assert response.status_code == 403
        assert response.json()["type"] == "permission_denied"

    def test_list_and_filter(self, client, admin_headers, homeowner, provider_user):
        response = client.get("/api/v1/admin/users", headers=admin_headers, params={"role": "provider"})
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["users"][0]["email"] == provider_user.email

    def test_update_role_is_audited(self, client, db, admin_headers, admin_user, homeowner):
        response = client.patch(f"/api/v1/admin/users/{homeowner.id}", headers=admin_headers,
                                json={"is_active": False})
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        log = db.query(AuditLog).filter(AuditLog.target_id == homeowner.id).one()
        assert log.action == "user.update"
        assert log.actor_id == admin_user.id
        assert log.details["after"]["is_active"] is False

    def test_admin_cannot_demote_self(self, client, admin_headers, admin_user):
        response = client.patch(f"/api/v1/admin/users/{admin_user.id}", headers=admin_headers,
                                json={"role": "homeowner"})
        assert response.status_code == 400

    def test_deactivated_token_rejected(self, client, db, homeowner):
        headers = auth_headers(homeowner)
        homeowner.is_active = False
        db.commit()
        assert client.get("/api/v1/users/me", headers=headers).status_code == 401


class TestPublicEndpoints:
    def test_plans_catalogue(self, client):
        plans = client.get("/api/v1/plans").json()
        assert [p["slug"] for p in plans] == ["free", "core", "rivopro"]
        assert plans[1]["price_cents"] == 700
        assert plans[2]["max_homes"] is None

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["database"] == "ok"
        assert "X-Process-Time" in response.headers

    def test_service_types(self, client):
        names = [s["name"] for s in client.get("/api/v1/service-types").json()]
        assert "Plumbing" in names and "HVAC" in names

    def test_user_role_enum_serialized(self, client, admin_headers, admin_user):
        data = client.get("/api/v1/users/me", headers=admin_headers).json()
        assert data["role"] == UserRole.ADMIN.value
