"""API tests for founding-provider discount codes and notifications."""
import re
from datetime import date, datetime, timedelta

import pytest

from homecare.api.endpoints.discount_codes import consume_discount_use
from homecare.models.discount import DiscountCode
from homecare.models.notification import Notification
from homecare.models.property import Property
from homecare.models.task import UserTask
from homecare.models.user import UserRole
from tests.conftest import auth_headers, create_provider_profile, create_user

pytestmark = pytest.mark.api


@pytest.fixture
def founding_headers(db):
    user = create_user(db, "founder@example.com", role=UserRole.PROVIDER, full_name="Fay Founder")
    create_provider_profile(db, user, founding=True)
    return auth_headers(user)


def create_code(client, headers, **body):
    payload = {"percent_off": 15, "expires_in_days": 30}
    payload.update(body)
    return client.post("/api/v1/discount-codes", headers=headers, json=payload)


class TestDiscountCodes:
    def test_generated_code_format(self, client, founding_headers):
        response = create_code(client, founding_headers)

        assert response.status_code == 201
        data = response.json()
        assert re.fullmatch(r"FOUND[0-9A-F]{8}", data["code"])
        assert data["usage_count"] == 0
        assert data["usage_limit"] == 1

    def test_custom_code_uppercased_and_unique(self, client, founding_headers):
        assert create_code(client, founding_headers, code="spring-10").json()["code"] == "SPRING-10"
        assert create_code(client, founding_headers, code="SPRING-10").status_code == 409

    def test_only_founding_providers(self, client, provider_profile, provider_headers, homeowner_headers):
        response = create_code(client, provider_headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "Only founding providers can manage discount codes"

        assert create_code(client, homeowner_headers).status_code == 403

    def test_percent_bounds(self, client, founding_headers):
        assert create_code(client, founding_headers, percent_off=0).status_code == 422
        assert create_code(client, founding_headers, percent_off=101).status_code == 422

    def test_list_own_codes(self, client, db, founding_headers):
        create_code(client, founding_headers, code="MINE1")
        other = create_user(db, "founder2@example.com", role=UserRole.PROVIDER)
        create_provider_profile(db, other, founding=True)
        create_code(client, auth_headers(other), code="THEIRS1")

        codes = [c["code"] for c in client.get("/api/v1/discount-codes", headers=founding_headers).json()]
        assert codes == ["MINE1"]

    def test_redeem_until_used_up(self, client, founding_headers, homeowner_headers):
        create_code(client, founding_headers, code="TWICE", usage_limit=2)

        first = client.post("/api/v1/discount-codes/redeem", headers=homeowner_headers, json={"code": "twice"})
        assert first.status_code == 200
        assert first.json()["usage_count"] == 1
        assert client.post("/api/v1/discount-codes/redeem", headers=homeowner_headers,
                           json={"code": "TWICE"}).status_code == 200

        third = client.post("/api/v1/discount-codes/redeem", headers=homeowner_headers, json={"code": "TWICE"})
        assert third.status_code == 400
        assert third.json()["detail"] == "This discount code has already been used"

    def test_stale_read_cannot_redeem_twice(self, client, db, founding_headers, homeowner_headers):
        create_code(client, founding_headers, code="ONCE")
        # A second request that loaded the row before the first one committed
        stale = db.query(DiscountCode).filter(DiscountCode.code == "ONCE").one()
        assert stale.is_used_up is False

        assert client.post("/api/v1/discount-codes/redeem", headers=homeowner_headers,
                           json={"code": "ONCE"}).status_code == 200

        assert consume_discount_use(db, "once") is False
        db.commit()
        db.expire_all()
        assert db.query(DiscountCode).filter(DiscountCode.code == "ONCE").one().usage_count == 1

        again = client.post("/api/v1/discount-codes/redeem", headers=homeowner_headers, json={"code": "ONCE"})
        assert again.status_code == 400
        assert again.json()["detail"] == "This discount code has already been used"

    def test_expired_code(self, client, db, founding_headers, homeowner_headers):
        create_code(client, founding_headers, code="OLD")
        discount = db.query(DiscountCode).filter(DiscountCode.code == "OLD").one()
        discount.expires_at = datetime.utcnow() - timedelta(minutes=1)
        db.commit()

        response = client.post("/api/v1/discount-codes/redeem", headers=homeowner_headers, json={"code": "OLD"})
        assert response.status_code == 400
        assert response.json()["detail"] == "This discount code has expired"

        validation = client.get("/api/v1/discount-codes/validate", headers=homeowner_headers,
                                params={"code": "old"}).json()
        assert validation["valid"] is False
        assert validation["is_expired"] is True

    def test_unknown_code(self, client, homeowner_headers):
        response = client.post("/api/v1/discount-codes/redeem", headers=homeowner_headers, json={"code": "NOPE"})
        assert response.status_code == 404
        assert response.json()["detail"] == "Invalid discount code"

        assert client.get("/api/v1/discount-codes/validate", headers=homeowner_headers,
                          params={"code": "NOPE"}).status_code == 404

    def test_validate_does_not_consume(self, client, founding_headers, homeowner_headers):
        create_code(client, founding_headers, code="CHECKME", percent_off=25)

        for _ in range(2):
            data = client.get("/api/v1/discount-codes/validate", headers=homeowner_headers,
                              params={"code": "CHECKME"}).json()
            assert data == {"valid": True, "code": "CHECKME", "percent_off": 25,
                            "is_expired": False, "is_used_up": False}


class TestNotifications:
    def _notify(self, client, headers, **body):
        payload = {"title": "Hello", "message": "World"}
        payload.update(body)
        return client.post("/api/v1/notifications", headers=headers, json=payload)

    def test_create_and_list(self, client, homeowner_headers):
        assert self._notify(client, homeowner_headers, title="First").status_code == 201
        self._notify(client, homeowner_headers, title="Second")

        data = client.get("/api/v1/notifications", headers=homeowner_headers).json()
        assert data["unread_count"] == 2
        assert {n["title"] for n in data["notifications"]} == {"First", "Second"}

        limited = client.get("/api/v1/notifications", headers=homeowner_headers, params={"limit": 1}).json()
        assert len(limited["notifications"]) == 1
        assert limited["unread_count"] == 2

        assert client.get("/api/v1/notifications", headers=homeowner_headers,
                          params={"limit": 0}).status_code == 422

    def test_only_admins_notify_others(self, client, homeowner, provider_user, homeowner_headers, admin_headers):
        assert self._notify(client, homeowner_headers, user_id=provider_user.id).status_code == 403

        response = self._notify(client, admin_headers, user_id=homeowner.id, type="warning")
        assert response.status_code == 201
        assert response.json()["user_id"] == homeowner.id

        assert self._notify(client, admin_headers, user_id="ghost").status_code == 404

    def test_mark_read_variants(self, client, homeowner_headers):
        ids = [self._notify(client, homeowner_headers, title=f"N{i}").json()["id"] for i in range(4)]

        one = client.post("/api/v1/notifications/read", headers=homeowner_headers,
                          json={"notification_id": ids[0]})
        assert one.json() == {"updated": 1}

        some = client.post("/api/v1/notifications/read", headers=homeowner_headers,
                           json={"notification_ids": ids[:3]})
        assert some.json() == {"updated": 2}

        unread = client.get("/api/v1/notifications", headers=homeowner_headers,
                            params={"unread_only": True}).json()
        assert [n["id"] for n in unread["notifications"]] == [ids[3]]

        everything = client.post("/api/v1/notifications/read", headers=homeowner_headers, json={"mark_all": True})
        assert everything.json() == {"updated": 1}

        assert client.post("/api/v1/notifications/read", headers=homeowner_headers, json={}).status_code == 400

    def test_cannot_mark_someone_elses(self, client, db, homeowner_headers):
        neighbor = create_user(db, "neighbor@example.com")
        other_id = self._notify(client, auth_headers(neighbor)).json()["id"]

        response = client.post("/api/v1/notifications/read", headers=homeowner_headers,
                               json={"notification_id": other_id})
        assert response.json() == {"updated": 0}


class TestSendReminders:
    def _due_tomorrow(self, db, user):
        prop = Property(user_id=user.id, nickname="Home", address="1 Main St", property_type="house",
                        region="Northeast")
        db.add(prop)
        db.flush()
        db.add(UserTask(user_id=user.id, property_id=prop.id, title="Clean gutters", category="Custom",
                        due_date=date.today() + timedelta(days=1), status="pending"))
        db.commit()

    def test_job_secret(self, client, db, homeowner):
        self._due_tomorrow(db, homeowner)

        response = client.post("/api/v1/notifications/send-reminders", headers={"X-Job-Secret": "job-secret"})

        assert response.status_code == 200
        assert response.json() == {"due_tomorrow": 1, "due_in_7_days": 0, "users_notified": 1}
        note = db.query(Notification).filter(Notification.user_id == homeowner.id).one()
        assert "Clean gutters" in note.message

    def test_admin_token(self, client, admin_headers):
        response = client.post("/api/v1/notifications/send-reminders", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["users_notified"] == 0

    def test_wrong_secret(self, client):
        response = client.post("/api/v1/notifications/send-reminders", headers={"X-Job-Secret": "guess"})
        assert response.status_code == 401

    def test_non_admin_forbidden(self, client, homeowner_headers):
        response = client.post("/api/v1/notifications/send-reminders", headers=homeowner_headers)
        assert response.status_code == 403
