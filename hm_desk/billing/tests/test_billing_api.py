# hm_desk/billing/tests/test_billing_api.py
from decimal import Decimal

from hm_desk.conftest import payment, service

RECONCILE_URL = "/api/v1/billing/reconcile/"
DASHBOARD_URL = "/api/v1/billing/dashboard/"
EXPORT_URL = "/api/v1/billing/export/"


def test_reconcile_returns_billing_panel_totals(api_client):
    payload = {
        "services": [service(3000), service(2000, type="doctorvisit", doctor_name="Dr. Rao")],
        "payments": [payment(3000)],
        "discount": 0,
    }
    resp = api_client.post(RECONCILE_URL, payload, format="json")
    assert resp.status_code == 200, resp.data

    data = resp.data
    assert data["gross_charges"] == "5000.00"
    assert data["net_paid"] == "3000.00"
    assert data["remaining_balance"] == "2000.00"
    assert data["balance_status"] == "due"
    assert data["issues"] == []
    assert data["discount_exceeds_charges"] is False
    assert data["breakdown"]["consultant_charges"] == "2000.00"
    assert data["consultant_charges"][0]["doctor_name"] == "Dr. Rao"


def test_reconcile_accepts_push_id_objects_and_reports_issues(api_client):
    payload = {
        "services": {"-Ns1": service(1000)},
        "payments": {"-Np1": payment(1200), "-Np2": payment("??")},
    }
    resp = api_client.post(RECONCILE_URL, payload, format="json")
    assert resp.status_code == 200, resp.data

    assert resp.data["remaining_balance"] == "-200.00"
    assert resp.data["balance_status"] == "refundable"
    assert resp.data["discount"] == "0.00"
    assert resp.data["issues"] == ["payments[-Np2].amount"]


def test_reconcile_rejects_null_payments_with_error_envelope(api_client):
    resp = api_client.post(RECONCILE_URL, {"services": [], "payments": None}, format="json")
    assert resp.status_code == 400

    err = resp.data["error"]
    assert err["code"] == "validation_error"
    assert "payments" in err["details"]
    assert err["request_id"] == resp["X-Request-Id"]


def test_reconcile_rejects_string_services(api_client):
    resp = api_client.post(RECONCILE_URL, {"services": "oops"}, format="json")
    assert resp.status_code == 400
    assert "services" in resp.data["error"]["details"]


def test_reconcile_get_is_not_allowed(api_client):
    resp = api_client.get(RECONCILE_URL)
    assert resp.status_code == 405
    assert resp.data["error"]["code"] == "method_not_allowed"


def test_dashboard_returns_totals_and_daily_series(api_client, ward_visits, doctors):
    payload = {"visits": ward_visits, "start": "2024-05-01", "end": "2024-05-03", "doctors": doctors}
    resp = api_client.post(DASHBOARD_URL, payload, format="json")
    assert resp.status_code == 200, resp.data

    data = resp.data
    assert data["start"] == "2024-05-01"
    assert data["end"] == "2024-05-03"
    assert data["visit_count"] == 4
    assert data["gross_charges"] == "13000.00"
    assert data["net_revenue"] == "12800.00"
    assert data["pending_amount"] == "3800.00"
    assert data["refundable_amount"] == "500.00"
    assert data["by_method"]["cash"]["net"] == "4500.00"
    assert data["by_method"]["online"]["collected"] == "5000.00"
    assert [d["day"] for d in data["daily"]] == ["2024-05-01", "2024-05-02", "2024-05-03"]
    assert data["busiest_day"] == "2024-05-01"
    assert data["top_collection_day"] == "2024-05-02"
    assert data["doctors"][0]["doctor"] == "Dr. Rao"
    assert data["undated_count"] == 1
    assert data["groups"] == data["daily"]


def test_dashboard_single_day_and_method_grouping(api_client, ward_visits):
    payload = {"visits": ward_visits, "start": "2024-05-02", "group_by": "method"}
    resp = api_client.post(DASHBOARD_URL, payload, format="json")
    assert resp.status_code == 200, resp.data

    assert resp.data["end"] == "2024-05-02"
    assert len(resp.data["daily"]) == 1
    assert [g["method"] for g in resp.data["groups"]] == ["cash", "online"]


def test_dashboard_rejects_inverted_window(api_client):
    payload = {"visits": [], "start": "2024-05-03", "end": "2024-05-01"}
    resp = api_client.post(DASHBOARD_URL, payload, format="json")
    assert resp.status_code == 400
    assert "end" in resp.data["error"]["details"]


def test_dashboard_rejects_windows_over_a_year(api_client):
    payload = {"visits": [], "start": "2024-01-01", "end": "2025-01-01"}
    resp = api_client.post(DASHBOARD_URL, payload, format="json")
    assert resp.status_code == 400
    assert "end" in resp.data["error"]["details"]


def test_dashboard_rejects_unknown_grouping(api_client):
    payload = {"visits": [], "start": "2024-05-01", "group_by": "week"}
    resp = api_client.post(DASHBOARD_URL, payload, format="json")
    assert resp.status_code == 400
    assert "group_by" in resp.data["error"]["details"]


def test_dashboard_skips_malformed_visits(api_client, ward_visits):
    payload = {"visits": ["junk", *ward_visits], "start": "2024-05-01"}
    resp = api_client.post(DASHBOARD_URL, payload, format="json")
    assert resp.status_code == 200, resp.data
    assert resp.data["skipped_count"] == 1
    assert resp.data["visit_count"] == 4


def test_export_returns_columns_and_rows(api_client, ward_visits, doctors):
    resp = api_client.post(EXPORT_URL, {"visits": ward_visits, "doctors": doctors}, format="json")
    assert resp.status_code == 200, resp.data

    assert resp.data["columns"][0] == "Patient ID"
    assert len(resp.data["rows"]) == 4

    row = resp.data["rows"][1]
    assert row["Doctor Name"] == "Dr. Mehta"
    assert Decimal(str(row["Refunds"])) == Decimal("1000")
    assert row["Balance Status"] == "Due"


def test_legacy_prefix_serves_same_endpoints(api_client):
    resp = api_client.post("/api/billing/reconcile/", {"services": [service(10)]}, format="json")
    assert resp.status_code == 200, resp.data
    assert resp.data["remaining_balance"] == "10.00"


def test_reconcile_renders_large_amounts(api_client):
    resp = api_client.post(RECONCILE_URL, {"services": [service(1000000000000)]}, format="json")
    assert resp.status_code == 200, resp.data

    assert resp.data["gross_charges"] == "1000000000000.00"
    assert resp.data["remaining_balance"] == "1000000000000.00"
    assert resp.data["breakdown"]["hospital_services"] == "1000000000000.00"


def test_dashboard_renders_large_totals_and_visit_type_split(api_client, ward_visits):
    big = [
        {"patientId": f"P{i}", "ipdId": f"B{i}", "admissionDate": "2024-05-01", "services": [service(999999999999999)]}
        for i in range(3)
    ]
    payload = {"visits": [*ward_visits, *big], "start": "2024-05-01", "end": "2024-05-03"}
    resp = api_client.post(DASHBOARD_URL, payload, format="json")
    assert resp.status_code == 200, resp.data

    assert resp.data["gross_charges"] == "3000000000012997.00"
    ipd = resp.data["by_visit_type"]["ipd"]
    assert ipd["visit_count"] == 7
    assert ipd["cash_collected"] == "5500.00"
    assert resp.data["by_visit_type"]["opd"]["visit_count"] == 0
