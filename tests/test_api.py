"""
Integration tests for the donation, certificate and item HTTP endpoints.
"""
import pytest

from kmwf.config import settings
from kmwf.models import ScrapItemModel
from kmwf.services.payments import expected_signature

DONATION = {
    "donor_name": "Ayesha Khan",
    "donor_email": "ayesha@example.com",
    "donor_phone": "+91 98765 43210",
    "amount": 5000,
    "program_name": "Education Support",
    "gateway_order_id": "order_abc",
    "wants_80g_receipt": True,
    "donor_pan": "ABCDE1234F",
    "donor_address": "12 Mohammed Ali Road",
    "donor_city": "Mumbai",
    "donor_state": "Maharashtra",
    "donor_pincode": "400003",
}


def _payment(order_id="order_abc", payment_id="pay_xyz"):
    return {
        "order_id": order_id,
        "payment_id": payment_id,
        "signature": expected_signature(order_id, payment_id),
    }


class TestHealth:
    def test_root(self, client):
        assert client.get("/").json()["status"] == "running"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestDonations:
    def test_create(self, client):
        resp = client.post("/api/donations", json=DONATION)
        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "pending"
        assert body["notifications_sent"] is False
        assert body["certificate"] is None
        assert client.get(f"/api/donations/{body['id']}").json()["id"] == body["id"]

    @pytest.mark.parametrize(
        "override",
        [
            {"donor_pan": "abcde1234f"},
            {"donor_pan": None},
            {"donor_pincode": "4000"},
            {"donor_city": None},
            {"donor_phone": "0123"},
            {"amount": 0},
        ],
    )
    def test_invalid_input(self, client, override):
        resp = client.post("/api/donations", json={**DONATION, **override})
        assert resp.status_code == 422

    def test_no_80g_needs_no_pan(self, client):
        body = {**DONATION, "wants_80g_receipt": False, "donor_pan": None, "donor_pincode": None}
        assert client.post("/api/donations", json=body).status_code == 201

    def test_get_missing(self, client):
        assert client.get("/api/donations/nope").status_code == 404


class TestVerifyPayment:
    def test_completes_and_issues_certificate(self, client, transports):
        donation = client.post("/api/donations", json=DONATION).json()
        resp = client.post(f"/api/donations/{donation['id']}/verify-payment", json=_payment())
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "completed"
        assert body["gateway_payment_id"] == "pay_xyz"
        assert body["notifications_sent"] is True
        assert body["certificate"]["certificate_number"].startswith("KMWF-80G-")
        assert body["certificate"]["sequence_number"] == 1
        assert len(transports.email.sent) == 1
        assert len(transports.whatsapp.sent) == 1

    def test_bad_signature(self, client, transports):
        donation = client.post("/api/donations", json=DONATION).json()
        payload = {**_payment(), "signature": "0" * 64}
        resp = client.post(f"/api/donations/{donation['id']}/verify-payment", json=payload)
        assert resp.status_code == 400
        assert client.get(f"/api/donations/{donation['id']}").json()["status"] == "pending"
        assert transports.email.sent == []

    def test_order_mismatch(self, client):
        donation = client.post("/api/donations", json=DONATION).json()
        resp = client.post(
            f"/api/donations/{donation['id']}/verify-payment", json=_payment(order_id="order_other")
        )
        assert resp.status_code == 400

    def test_notification_failures_do_not_fail_request(self, client, transports):
        transports.email.fail = True
        transports.whatsapp.fail = True
        donation = client.post("/api/donations", json=DONATION).json()
        resp = client.post(f"/api/donations/{donation['id']}/verify-payment", json=_payment())
        assert resp.status_code == 200
        attempts = resp.json()["certificate"]["delivery_methods"]
        assert {(a["method"], a["success"]) for a in attempts} == {("email", False), ("whatsapp", False)}

    def test_repeat_verification_is_idempotent(self, client, transports):
        donation = client.post("/api/donations", json=DONATION).json()
        url = f"/api/donations/{donation['id']}/verify-payment"
        first = client.post(url, json=_payment()).json()
        second = client.post(url, json=_payment()).json()
        assert first["certificate"]["certificate_number"] == second["certificate"]["certificate_number"]
        assert len(transports.email.sent) == 1


class TestNotifyEndpoint:
    def test_requires_admin(self, client, auth):
        donation = client.post("/api/donations", json=DONATION).json()
        resp = client.post(f"/api/donations/{donation['id']}/notify", headers=auth("user"))
        assert resp.status_code == 403

    def test_skipped_then_forced(self, client, auth, transports):
        donation = client.post("/api/donations", json=DONATION).json()
        client.post(f"/api/donations/{donation['id']}/verify-payment", json=_payment())

        url = f"/api/donations/{donation['id']}/notify"
        assert client.post(url, headers=auth("admin")).json()["skipped"] is True
        forced = client.post(f"{url}?force=true", headers=auth("moderator")).json()
        assert forced["skipped"] is False
        assert forced["channels"]["email"] == "sent"
        assert len(transports.email.sent) == 2

    def test_pending_donation_rejected(self, client, auth):
        donation = client.post("/api/donations", json=DONATION).json()
        resp = client.post(f"/api/donations/{donation['id']}/notify", headers=auth("admin"))
        assert resp.status_code == 400


class TestCertificateEndpoints:
    def test_financial_year(self, client):
        resp = client.get("/api/certificates/financial-year?date=2025-03-31")
        assert resp.json() == {"date": "2025-03-31", "financial_year": "2024-25"}

    def test_validate_pan(self, client):
        assert client.post("/api/certificates/validate-pan", json={"pan": "ABCDE1234F"}).json()["is_valid"]
        assert not client.post("/api/certificates/validate-pan", json={"pan": "ABC"}).json()["is_valid"]

    def test_validate_number(self, client):
        body = client.post(
            "/api/certificates/validate-number",
            json={"certificate_number": "KMWF-80G-2024-25-000123"},
        ).json()
        assert body["is_valid"]
        assert body["financial_year"] == "2024-25"
        assert body["sequence_number"] == 123

    def test_validate_number_uses_configured_prefix(self, client, monkeypatch):
        monkeypatch.setattr(settings, "CERTIFICATE_PREFIX", "KMWF-80G-TEST")
        body = client.post(
            "/api/certificates/validate-number",
            json={"certificate_number": "KMWF-80G-TEST-2024-25-000001"},
        ).json()
        assert body["is_valid"]
        assert body["financial_year"] == "2024-25"
        assert body["sequence_number"] == 1

    def test_stats_requires_role(self, client, auth):
        assert client.get("/api/certificates/stats/2024-25").status_code == 401
        assert client.get("/api/certificates/stats/2024-25", headers=auth("accountant")).status_code == 403
        resp = client.get("/api/certificates/stats/2024-25", headers=auth("admin"))
        assert resp.json()["total_issued"] == 0

    def test_issue_and_render(self, client, auth, make_donation):
        donation = make_donation(notifications_sent=True)
        resp = client.post(f"/api/donations/{donation.id}/certificate", headers=auth("admin"))
        assert resp.status_code == 200
        number = resp.json()["certificate_number"]
        assert number == "KMWF-80G-2024-25-000001"

        html = client.get(f"/api/donations/{donation.id}/certificate.html")
        assert html.status_code == 200
        assert html.headers["content-type"].startswith("text/html")
        assert number in html.text

        stats = client.get("/api/certificates/stats/2024-25", headers=auth("moderator")).json()
        assert stats["total_issued"] == 1

    def test_issue_ineligible(self, client, auth, make_donation):
        donation = make_donation(wants_80g_receipt=False)
        resp = client.post(f"/api/donations/{donation.id}/certificate", headers=auth("admin"))
        assert resp.status_code == 400

    def test_render_without_certificate(self, client, make_donation):
        donation = make_donation()
        assert client.get(f"/api/donations/{donation.id}/certificate.html").status_code == 404


class TestItemEndpoints:
    ITEM = {
        "name": "Steel Almirah",
        "condition": "good",
        "marketplace_listing": {"demanded_price": 2500, "description": "Two door"},
        "photos": {"before": ["b.jpg"], "after": ["a.jpg"]},
    }

    def test_validate_unsaved(self, client):
        body = client.post("/api/items/validate", json={**self.ITEM, "condition": "scrap"}).json()
        assert body["listable"] is False
        assert body["can_list"] is False

    def test_condition_rules(self, client):
        rules = {r["condition"]: r for r in client.get("/api/items/condition-rules").json()}
        assert set(rules) == {"new", "good", "repairable", "scrap", "not applicable"}
        assert rules["scrap"]["listable"] is False

    def test_create_and_validate_stored(self, client, auth):
        resp = client.post("/api/items", json=self.ITEM, headers=auth("field_executive"))
        assert resp.status_code == 201
        item_id = resp.json()["item"]["id"]
        body = client.get(f"/api/items/{item_id}/validation").json()
        assert body["is_valid"] and body["can_list"]

    def test_cannot_create_listed_invalid_item(self, client, auth):
        item = {**self.ITEM, "marketplace_listing": {"listed": True}}
        resp = client.post("/api/items", json=item, headers=auth("admin"))
        assert resp.status_code == 400
        assert "valid price" in resp.json()["detail"]

    def test_validation_missing_item(self, client):
        assert client.get("/api/items/missing/validation").status_code == 404

    def test_list_with_filters(self, client, auth):
        client.post("/api/items", json=self.ITEM, headers=auth("admin"))
        client.post("/api/items", json={**self.ITEM, "name": "Broken Radio", "condition": "scrap",
                                        "marketplace_listing": {}}, headers=auth("admin"))
        names = [i["name"] for i in client.get("/api/items?has_price=true").json()]
        assert names == ["Steel Almirah"]
        assert client.get("/api/items?sort_by=weight").status_code == 400

    def test_date_filters_with_offset(self, client, auth):
        client.post("/api/items", json=self.ITEM, headers=auth("admin"))
        resp = client.get("/api/items", params={"date_from": "2024-01-01T00:00:00Z"})
        assert resp.status_code == 200
        assert [i["name"] for i in resp.json()] == ["Steel Almirah"]
        resp = client.get("/api/items", params={"date_to": "2024-01-01T05:30:00+05:30"})
        assert resp.status_code == 200
        assert resp.json() == []


class TestDashboardEndpoint:
    def test_requires_role(self, client, auth):
        assert client.get("/api/admin/dashboard", headers=auth("surveyor")).status_code == 403

    def test_aggregates(self, client, auth, db, make_donation):
        make_donation()
        db.add_all([
            ScrapItemModel(id="i1", name="Cooler", condition="good", listed=True, sold=True,
                           demanded_price=120, sale_price=100, repairing_cost=20),
            ScrapItemModel(id="i2", name="Bicycle", condition="good", demanded_price=1500),
        ])
        db.commit()
        stats = client.get("/api/admin/dashboard", headers=auth("admin")).json()
        assert stats["total_donations"] == 1
        assert stats["sold_items"] == 1
        assert stats["total_revenue"] == 100
        assert stats["profit_margin"] == pytest.approx(80)
        assert stats["pending_items"] == 1
