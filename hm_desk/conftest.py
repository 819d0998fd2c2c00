# hm_desk/conftest.py
from datetime import date

import pytest
from rest_framework.test import APIClient

from hm_desk.billing.types import DateRange


def visit_record(
    patient_id,
    visit_id,
    *,
    admission_date=None,
    services=(),
    payments=(),
    discount=0,
    status="active",
    doctor="",
    name="",
):
    """
    Raw IPD visit snapshot in the camelCase shape the front desk stores.
    """
    rec = {
        "patientId": patient_id,
        "ipdId": visit_id,
        "services": list(services),
        "payments": list(payments),
        "discount": discount,
        "status": status,
        "doctor": doctor,
        "name": name,
    }
    if admission_date is not None:
        rec["admissionDate"] = admission_date
    return rec


def service(amount, *, name="Room charge", type="service", doctor_name=None, created_at=None):
    rec = {"serviceName": name, "type": type, "amount": amount}
    if doctor_name is not None:
        rec["doctorName"] = doctor_name
    if created_at is not None:
        rec["createdAt"] = created_at
    return rec


def payment(amount, *, kind="advance", method="cash", on=None, pid=None):
    rec = {"amount": amount, "kind": kind, "paymentType": method}
    if on is not None:
        rec["date"] = on
    if pid is not None:
        rec["id"] = pid
    return rec


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def window():
    return DateRange(start=date(2024, 5, 1), end=date(2024, 5, 3))


@pytest.fixture
def doctors():
    return {"d1": "Dr. Rao", "d2": {"name": "Dr. Mehta", "specialty": "Cardiology"}}


@pytest.fixture
def ward_visits():
    """
    Four IPD visits across a three-day window:
      v1  05-01  5000 charged, 3000 cash advance            -> 2000 due
      v2  05-01  5000 charged, 5000 online, 1000 cash refund -> 1000 due
      v3  05-02  2000 charged, 2500 cash advance             -> 500 refundable
      v4  (no admission date) 1000 charged, 200 discount     -> 800 due
    """
    return [
        visit_record(
            "P1", "IPD1",
            admission_date="2024-05-01",
            services=[service(5000)],
            payments=[payment(3000, on="2024-05-01")],
            doctor="d1",
            name="Asha",
        ),
        visit_record(
            "P2", "IPD2",
            admission_date="2024-05-01",
            services=[service(5000)],
            payments=[
                payment(5000, method="online", on="2024-05-02"),
                payment(1000, kind="refund", method="cash", on="2024-05-03"),
            ],
            status="discharged",
            doctor="d2",
            name="Ravi",
        ),
        visit_record(
            "P3", "IPD3",
            admission_date="2024-05-02",
            services=[service(2000)],
            payments=[payment(2500, on="2024-05-02")],
            doctor="d1",
            name="Meena",
        ),
        visit_record(
            "P4", "IPD4",
            services=[service(1000)],
            discount=200,
            name="Kiran",
        ),
    ]
