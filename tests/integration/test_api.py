"""HTTP tests for the rentflow API.

Exercises authentication, the uniform error body and the termination
workflow end to end through the routers.
"""

from uuid import UUID

import pytest

from rentflow.db.models import PaymentMethod, UnitStatus, UserRole
from tests.factories import TEST_PASSWORD, create_invoice, create_user


pytestmark = pytest.mark.integration


def login(client, email: str) -> dict:
    response = client.post("/api/auth/login", data={"username": email, "password": TEST_PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture()
def headers(client, portfolio):
    """Auth headers per portfolio user, logged in lazily."""
    cache = {}

    def get(user_attr: str) -> dict:
        if user_attr not in cache:
            cache[user_attr] = login(client, getattr(portfolio, user_attr).email)
        return cache[user_attr]

    return get


# ---------------------------------------------------------------------------
# Health and authentication
# ---------------------------------------------------------------------------


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["checks"]["database"]["status"] == "healthy"


class TestAuth:

    def test_login_returns_user(self, client, portfolio):
        response = client.post(
            "/api/auth/login",
            data={"username": "Owner@Example.com", "password": TEST_PASSWORD},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["role"] == "OWNER"

    def test_wrong_password(self, client, portfolio):
        response = client.post("/api/auth/login", data={"username": "owner@example.com", "password": "nope"})
        assert response.status_code == 401
        assert response.json() == {
            "error": "Incorrect email or password",
            "code": "unauthenticated",
            "detail": None,
        }

    def test_inactive_user(self, client, db_session):
        create_user(db_session, email="gone@example.com", is_active=False)
        db_session.commit()

        response = client.post("/api/auth/login", data={"username": "gone@example.com", "password": TEST_PASSWORD})
        assert response.status_code == 403

    def test_missing_token(self, client, portfolio):
        response = client.get("/api/contracts")
        assert response.status_code == 401
        assert response.json()["code"] == "unauthenticated"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_me(self, client, headers):
        response = client.get("/api/auth/me", headers=headers("accountant"))
        assert response.status_code == 200
        assert response.json()["email"] == "accountant@example.com"

    def test_logout_revokes_token(self, client, headers):
        auth = headers("owner")
        assert client.post("/api/auth/logout", headers=auth).status_code == 200
        assert client.get("/api/auth/me", headers=auth).status_code == 401


# ---------------------------------------------------------------------------
# Error body
# ---------------------------------------------------------------------------


class TestErrorResponses:

    def test_forbidden(self, client, headers):
        response = client.get("/api/users", headers=headers("accountant"))
        assert response.status_code == 403
        body = response.json()
        assert body["code"] == "unauthorized"
        assert body["detail"] == "Required: users:list"

    def test_not_found(self, client, headers):
        response = client.get(
            "/api/contracts/00000000-0000-0000-0000-000000000000",
            headers=headers("owner"),
        )
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    def test_request_validation(self, client, headers):
        response = client.get("/api/contracts/not-a-uuid", headers=headers("owner"))
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "validation_error"
        assert isinstance(body["detail"], list)


# ---------------------------------------------------------------------------
# Termination workflow over HTTP
# ---------------------------------------------------------------------------


class TestTerminationApi:

    def _terminate(self, client, headers, portfolio, reason="Tenant relocating"):
        return client.post(
            f"/api/contracts/{portfolio.contract.id}/terminate",
            json={"reason": reason, "bank_name": "CBE"},
            headers=headers("property_admin"),
        )

    def test_full_workflow(self, client, headers, portfolio):
        response = self._terminate(client, headers, portfolio)
        assert response.status_code == 201
        request = response.json()
        assert request["status"] == "PENDING"
        assert request["refund_amount"] == 12000
        assert request["contract"]["status"] == "PENDING_TERMINATION"
        request_id = request["id"]

        steps = [
            ("accountant-approve", "accountant", None, "ACCOUNTANT_APPROVED"),
            ("owner-approve", "owner", None, "OWNER_APPROVED"),
            ("complete", "accountant", {"receipt_url": "/uploads/refund.pdf"}, "COMPLETED"),
        ]
        for path, user, body, expected in steps:
            response = client.post(f"/api/terminations/{request_id}/{path}", json=body, headers=headers(user))
            assert response.status_code == 200, response.text
            assert response.json()["status"] == expected

        contract = client.get(f"/api/contracts/{portfolio.contract.id}", headers=headers("owner")).json()
        assert contract["status"] == "TERMINATED"
        assert {u["status"] for u in contract["units"]} == {UnitStatus.AVAILABLE.value}

        history = client.get(f"/api/terminations/{request_id}/history", headers=headers("tenant_user"))
        assert history.status_code == 200
        assert [h["action"] for h in history.json()] == [
            "create", "accountant_approve", "owner_approve", "complete",
        ]

    def test_missing_reason(self, client, headers, portfolio):
        response = client.post(
            f"/api/contracts/{portfolio.contract.id}/terminate",
            headers=headers("property_admin"),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Termination reason is required"

    def test_duplicate_request_conflicts(self, client, headers, portfolio):
        assert self._terminate(client, headers, portfolio).status_code == 201
        response = self._terminate(client, headers, portfolio)
        assert response.status_code == 409
        assert response.json()["code"] == "conflict"

    def test_complete_out_of_order(self, client, headers, portfolio):
        request_id = self._terminate(client, headers, portfolio).json()["id"]
        response = client.post(f"/api/terminations/{request_id}/complete", headers=headers("accountant"))
        assert response.status_code == 409
        assert response.json()["code"] == "invalid_state"

    def test_reject_reinstates_contract(self, client, headers, portfolio):
        request_id = self._terminate(client, headers, portfolio).json()["id"]

        response = client.post(
            f"/api/terminations/{request_id}/reject",
            json={"reason": "Outstanding balance"},
            headers=headers("accountant"),
        )
        assert response.status_code == 200
        assert response.json()["rejection_reason"] == "Outstanding balance"
        assert response.json()["contract"]["status"] == "ACTIVE"

    def test_reject_without_reason(self, client, headers, portfolio):
        request_id = self._terminate(client, headers, portfolio).json()["id"]
        response = client.post(f"/api/terminations/{request_id}/reject", headers=headers("owner"))
        assert response.status_code == 400

    def test_unassigned_accountant(self, client, headers, portfolio):
        request_id = self._terminate(client, headers, portfolio).json()["id"]
        response = client.post(
            f"/api/terminations/{request_id}/accountant-approve",
            headers=headers("outside_accountant"),
        )
        assert response.status_code == 403

    def test_tenant_cannot_terminate(self, client, headers, portfolio):
        response = client.post(
            f"/api/contracts/{portfolio.contract.id}/terminate",
            json={"reason": "Leaving"},
            headers=headers("tenant_user"),
        )
        assert response.status_code == 403

    def test_list_scoped(self, client, headers, portfolio):
        self._terminate(client, headers, portfolio)

        body = client.get("/api/terminations", headers=headers("accountant")).json()
        assert body["total"] == 1
        body = client.get("/api/terminations", headers=headers("outside_accountant")).json()
        assert body["total"] == 0
        body = client.get("/api/terminations?status=pending", headers=headers("owner")).json()
        assert body["total"] == 1


# ---------------------------------------------------------------------------
# Other resources
# ---------------------------------------------------------------------------


class TestUsersApi:

    def test_create_and_duplicate(self, client, headers):
        payload = {
            "email": "new.accountant@example.com",
            "password": "longenough",
            "name": "New Accountant",
            "role": "ACCOUNTANT",
        }
        response = client.post("/api/users", json=payload, headers=headers("admin"))
        assert response.status_code == 201
        assert response.json()["role"] == "ACCOUNTANT"

        response = client.post("/api/users", json=payload, headers=headers("admin"))
        assert response.status_code == 400
        assert response.json()["error"] == "Email already exists"

    def test_cannot_delete_self(self, client, headers, portfolio):
        response = client.delete(f"/api/users/{portfolio.admin.id}", headers=headers("admin"))
        assert response.status_code == 400

    def test_last_admin_cannot_be_demoted(self, client, headers, portfolio):
        response = client.put(
            f"/api/users/{portfolio.admin.id}",
            json={"role": "OWNER"},
            headers=headers("owner"),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Cannot remove the last system admin"

    def test_deactivation_revokes_sessions(self, client, headers, db_session, portfolio):
        victim = create_user(db_session, role=UserRole.ACCOUNTANT, email="victim@example.com")
        db_session.commit()
        victim_auth = login(client, "victim@example.com")

        response = client.put(f"/api/users/{victim.id}", json={"is_active": False}, headers=headers("admin"))
        assert response.status_code == 200
        assert client.get("/api/auth/me", headers=victim_auth).status_code == 401


class TestAssignmentsApi:

    def test_assign_scoped_staff_only(self, client, headers, portfolio):
        response = client.post(
            "/api/assignments",
            json={"user_id": str(portfolio.owner.id), "property_id": str(portfolio.prop.id)},
            headers=headers("admin"),
        )
        assert response.status_code == 400

    def test_duplicate_assignment(self, client, headers, portfolio):
        response = client.post(
            "/api/assignments",
            json={"user_id": str(portfolio.accountant.id), "property_id": str(portfolio.prop.id)},
            headers=headers("admin"),
        )
        assert response.status_code == 409

    def test_new_assignment_widens_scope(self, client, headers, portfolio):
        before = client.get("/api/properties", headers=headers("accountant")).json()["total"]
        response = client.post(
            "/api/assignments",
            json={"user_id": str(portfolio.accountant.id), "property_id": str(portfolio.other_prop.id)},
            headers=headers("admin"),
        )
        assert response.status_code == 201
        after = client.get("/api/properties", headers=headers("accountant")).json()["total"]
        assert (before, after) == (1, 2)


class TestPropertiesAndUnitsApi:

    def test_property_in_use_cannot_be_deleted(self, client, headers, portfolio):
        response = client.delete(f"/api/properties/{portfolio.prop.id}", headers=headers("admin"))
        assert response.status_code == 409

    def test_occupied_unit_cannot_be_deleted(self, client, headers, portfolio):
        response = client.delete(f"/api/units/{portfolio.units[0].id}", headers=headers("admin"))
        assert response.status_code == 409

    def test_duplicate_unit_number(self, client, headers, portfolio):
        response = client.post(
            "/api/units",
            json={"property_id": str(portfolio.prop.id), "unit_number": "A-101", "monthly_rent": 4000},
            headers=headers("property_admin"),
        )
        assert response.status_code == 409

    def test_units_of_unassigned_property(self, client, headers, portfolio):
        response = client.get(
            f"/api/units?property_id={portfolio.other_prop.id}",
            headers=headers("property_admin"),
        )
        assert response.status_code == 403


class TestInvoicesApi:

    def test_public_invoice(self, client, db_session, portfolio):
        invoice = create_invoice(db_session, contract=portfolio.contract, amount=5000, paid_amount=2000)
        db_session.commit()

        response = client.get(f"/api/invoices/public/{invoice.invoice_number}")
        assert response.status_code == 200
        body = response.json()
        assert body["balance"] == 3000
        assert body["tenant_name"] == "Abebe Kebede"
        assert body["property"]["name"] == "Bole Heights"
        assert sorted(body["unit_numbers"]) == ["A-101", "A-102"]

    def test_public_invoice_not_found(self, client):
        response = client.get("/api/invoices/public/INV-MISSING")
        assert response.status_code == 404


class TestDashboardAndSettingsApi:

    def test_dashboard_counts(self, client, headers, portfolio):
        stats = client.get("/api/dashboard/stats", headers=headers("owner")).json()
        assert stats["total_properties"] == 2
        assert stats["total_units"] == 3
        assert stats["occupied_units"] == 2
        assert stats["active_contracts"] == 1

    def test_dashboard_empty_scope(self, client, headers, portfolio, db_session):
        create_user(db_session, role=UserRole.ACCOUNTANT, email="lonely@example.com")
        db_session.commit()

        stats = client.get("/api/dashboard/stats", headers=login(client, "lonely@example.com")).json()
        assert stats["total_units"] == 0
        assert stats["active_contracts"] == 0

    def test_sms_key_is_masked(self, client, headers, portfolio):
        response = client.put(
            "/api/sms/settings",
            json={"sms_api_key": "secret-gateway-key", "sms_notification_enabled": True},
            headers=headers("admin"),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["sms_api_key_masked"] == "****-key"
        assert "sms_api_key" not in body

    def test_sms_test_without_key(self, client, headers, portfolio):
        response = client.post(
            "/api/sms/test",
            json={"kind": "test", "phone": "0911223344"},
            headers=headers("accountant"),
        )
        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["error"] == "SMS_API_KEY_MISSING"

    def test_settings_update_requires_configure(self, client, headers, portfolio):
        response = client.put(
            "/api/settings",
            json={"tax_enabled": True},
            headers=headers("accountant"),
        )
        assert response.status_code == 403


class TestPartialUpdatesApi:

    def test_tenant_null_name_rejected(self, client, headers, portfolio):
        response = client.put(
            f"/api/tenants/{portfolio.tenant.id}",
            json={"full_name": None},
            headers=headers("admin"),
        )
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

        response = client.get(f"/api/tenants/{portfolio.tenant.id}", headers=headers("admin"))
        assert response.json()["full_name"] == "Abebe Kebede"

    def test_tenant_nullable_field_cleared(self, client, headers, portfolio):
        response = client.put(
            f"/api/tenants/{portfolio.tenant.id}",
            json={"address": None, "phone": "0911000000"},
            headers=headers("admin"),
        )
        assert response.status_code == 200
        assert response.json()["address"] is None
        assert response.json()["phone"] == "0911000000"

    @pytest.mark.parametrize("body", [{"name": None}, {"role": None}, {"is_active": None}])
    def test_user_null_required_field(self, client, headers, portfolio, body):
        response = client.put(f"/api/users/{portfolio.owner.id}", json=body, headers=headers("admin"))
        assert response.status_code == 400

    def test_unit_null_rent(self, client, headers, portfolio):
        response = client.put(
            f"/api/units/{portfolio.spare_unit.id}",
            json={"monthly_rent": None},
            headers=headers("property_admin"),
        )
        assert response.status_code == 400


class TestPaymentMethodsApi:

    def _create(self, client, headers, **overrides):
        body = {
            "name": "Telebirr",
            "type": "ONLINE",
            "provider": "telebirr",
            "api_key": "tb-live-abcdef1234",
            "secret_key": "tb-secret",
            "fee_type": "PERCENTAGE",
            "fee_percent": 1.5,
        }
        body.update(overrides)
        return client.post("/api/payment-methods", json=body, headers=headers("owner"))

    def test_keys_never_returned(self, client, headers, portfolio):
        response = self._create(client, headers)
        assert response.status_code == 201
        body = response.json()
        assert body["api_key_masked"] == "****1234"
        assert body["secret_key_masked"] == "********"
        assert "api_key" not in body
        assert "secret_key" not in body

        listed = client.get("/api/payment-methods", headers=headers("admin")).json()
        assert [m["name"] for m in listed] == ["Telebirr"]
        assert "tb-live-abcdef1234" not in str(listed)

    def test_ordered_online_first_then_display_order(self, client, headers, portfolio):
        self._create(client, headers, name="CBE", type="OFFLINE", display_order=2, bank_name="CBE")
        self._create(client, headers, name="Awash", type="OFFLINE", display_order=1, bank_name="Awash")
        self._create(client, headers, name="Chapa", display_order=5)

        listed = client.get("/api/payment-methods", headers=headers("owner")).json()
        assert [m["name"] for m in listed] == ["Chapa", "Awash", "CBE"]

    def test_masked_key_on_update_keeps_stored_key(self, client, headers, db_session, portfolio):
        method_id = self._create(client, headers).json()["id"]

        response = client.put(
            f"/api/payment-methods/{method_id}",
            json={"api_key": "****1234", "secret_key": "", "display_order": 3},
            headers=headers("owner"),
        )
        assert response.status_code == 200
        assert response.json()["display_order"] == 3

        method = db_session.get(PaymentMethod, UUID(method_id))
        assert method.api_key == "tb-live-abcdef1234"
        assert method.secret_key == "tb-secret"

    def test_null_type_rejected(self, client, headers, portfolio):
        method_id = self._create(client, headers).json()["id"]
        response = client.put(
            f"/api/payment-methods/{method_id}", json={"type": None}, headers=headers("owner")
        )
        assert response.status_code == 400

    def test_duplicate_name(self, client, headers, portfolio):
        self._create(client, headers)
        response = self._create(client, headers)
        assert response.status_code == 409
        assert response.json()["code"] == "conflict"

    @pytest.mark.parametrize("user_attr", ["property_admin", "accountant", "tenant_user"])
    def test_elevated_roles_only(self, client, headers, portfolio, user_attr):
        assert client.get("/api/payment-methods", headers=headers(user_attr)).status_code == 403

    def test_payment_references_method(self, client, headers, portfolio):
        method_id = self._create(client, headers, name="CBE", type="OFFLINE", bank_name="CBE").json()["id"]

        response = client.post(
            "/api/payments",
            json={
                "contract_id": str(portfolio.contract.id),
                "amount": 5000,
                "payment_type": "MONTHLY",
                "payment_method_id": method_id,
            },
            headers=headers("tenant_user"),
        )
        assert response.status_code == 201
        assert response.json()["payment_method_id"] == method_id
        assert response.json()["payment_method"] == "CBE"

        response = client.delete(f"/api/payment-methods/{method_id}", headers=headers("owner"))
        assert response.status_code == 200
        assert client.get(f"/api/payment-methods/{method_id}", headers=headers("owner")).status_code == 404
