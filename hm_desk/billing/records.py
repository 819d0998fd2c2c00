# hm_desk/billing/records.py
from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any, Iterable, Protocol

from hm_desk.billing.amounts import (
    iter_entries,
    read_field,
    read_text,
    to_amount,
    to_calendar_day,
    to_timestamp,
)
from hm_desk.billing.types import (
    DateRange,
    Payment,
    PaymentKind,
    PaymentMethod,
    ServiceCharge,
    ServiceType,
    Visit,
    VisitType,
    normalize_kind,
    normalize_method,
)

UNKNOWN_DOCTOR = "Unknown"


class VisitSource(Protocol):
    """
    Anything that can hand over an already-fetched snapshot of visits for a window
    (the date-shard scan lives behind this).
    """

    def fetch_visits(self, window: DateRange) -> Iterable[Any]: ...


class DoctorDirectory:
    """
    Explicit doctor id -> name lookup passed into aggregation.
    """

    def __init__(self, names: Mapping[str, Any] | None = None):
        self._names: dict[str, str] = {}
        for doctor_id, value in (names or {}).items():
            # accept {"id": "Name"} as well as {"id": {"name": "Name", ...}}
            name = read_text(value, "name") if isinstance(value, Mapping) else str(value or "").strip()
            if name:
                self._names[str(doctor_id)] = name

    def __call__(self, doctor_id: str) -> str | None:
        if not doctor_id:
            return None
        return self._names.get(str(doctor_id))


def _first_day(record: Any, *names: str) -> date | None:
    # a key that is present but unreadable must not hide a later one
    for name in names:
        day = to_calendar_day(read_field(record, name))
        if day is not None:
            return day
    return None


def service_from_record(record: Any) -> ServiceCharge:
    if isinstance(record, ServiceCharge):
        return record
    return ServiceCharge(
        service_name=read_text(record, "serviceName", "service_name"),
        type=read_text(record, "type") or ServiceType.SERVICE,
        amount=to_amount(read_field(record, "amount")),
        doctor_name=read_text(record, "doctorName", "doctor_name"),
        created_at=to_timestamp(read_field(record, "createdAt", "created_at")),
    )


def payment_from_record(record: Any, *, key: str | None = None) -> Payment:
    if isinstance(record, Payment):
        return record
    return Payment(
        id=read_text(record, "id") or (key or ""),
        amount=to_amount(read_field(record, "amount")),
        payment_type=normalize_method(read_field(record, "paymentType", "payment_type")),
        kind=normalize_kind(read_field(record, "kind", "type")),
        date=_first_day(record, "date", "createdAt", "created_at"),
        created_at=to_timestamp(read_field(record, "createdAt", "created_at")),
    )


def _service_from_modality(modality: Any) -> Any:
    if not isinstance(modality, Mapping):
        return modality
    is_consultation = read_text(modality, "type").lower() == "consultation"
    return {
        "serviceName": read_text(modality, "service", "type"),
        "type": ServiceType.DOCTOR_VISIT if is_consultation else ServiceType.SERVICE,
        "amount": read_field(modality, "charges", "amount"),
        "doctorName": read_text(modality, "doctor", "doctorName"),
    }


def _payments_from_summary(summary: Mapping, record: Mapping) -> list[dict[str, Any]]:
    paid_on = read_field(summary, "createdAt") or read_field(record, "date", "createdAt")
    entries = []
    for method, name in ((PaymentMethod.CASH, "cashAmount"), (PaymentMethod.ONLINE, "onlineAmount")):
        amount = read_field(summary, name)
        if amount is not None:
            entries.append(
                {"id": method, "amount": amount, "paymentType": method, "kind": PaymentKind.ADVANCE, "date": paid_on}
            )

    if not entries and read_field(summary, "totalPaid") is not None:
        entries.append(
            {
                "id": "total",
                "amount": read_field(summary, "totalPaid"),
                "paymentType": read_field(summary, "paymentMethod"),
                "kind": PaymentKind.ADVANCE,
                "date": paid_on,
            }
        )
    return entries


def ledger_from_record(record: Mapping) -> tuple[Any, Any, Any]:
    """
    (services, payments, discount) of one raw visit, as stored.

    OPD appointments keep their charges in `modalities` and a single `payment`
    summary ({cashAmount, onlineAmount, totalPaid, discount, ...}); those are laid
    out as service and payment entries so every visit type reconciles the same way.
    """
    services = record.get("services")
    if services is None and record.get("modalities") is not None:
        services = [_service_from_modality(m) for _k, m in iter_entries(record.get("modalities"))]

    summary = record.get("payment")
    payments = record.get("payments")
    if payments is None and isinstance(summary, Mapping):
        payments = _payments_from_summary(summary, record)

    discount = read_field(record, "discount")
    if discount is None and isinstance(summary, Mapping):
        discount = read_field(summary, "discount")

    return services, payments, discount


def _visit_type_for(record: Mapping, visit_type: str | None) -> str:
    candidates = [visit_type] + [read_text(record, name) for name in ("visitType", "visit_type", "type")]
    for candidate in candidates:
        if candidate and candidate.lower() in VisitType.values:
            return candidate.lower()
    if "opdId" in record or "modalities" in record:
        return VisitType.OPD
    return VisitType.IPD


def visit_from_record(record: Any, *, visit_type: str | None = None) -> Visit:
    """
    Maps one raw visit snapshot into a Visit.

    Storage keys are camelCase (patientId, ipdId/opdId, admissionDate, ...).
    Missing service/payment lists mean a new visit and map to empty tuples.
    Raises TypeError when `record` is not a mapping.
    """
    if isinstance(record, Visit):
        return record
    if not isinstance(record, Mapping):
        raise TypeError(f"Visit record must be a mapping, got {type(record).__name__}.")

    raw_services, raw_payments, discount = ledger_from_record(record)
    services = tuple(service_from_record(s) for _k, s in iter_entries(raw_services))
    payments = tuple(payment_from_record(p, key=k) for k, p in iter_entries(raw_payments))

    return Visit(
        patient_id=read_text(record, "patientId", "patient_id", "uhid"),
        visit_id=read_text(record, "visitId", "visit_id", "ipdId", "opdId", "id"),
        visit_type=_visit_type_for(record, visit_type),
        services=services,
        payments=payments,
        discount=to_amount(discount),
        status=read_text(record, "status").lower(),
        visit_date=_first_day(
            record, "admissionDate", "admission_date", "date", "dateKey", "createdAt", "created_at"
        ),
        discharge_date=_first_day(record, "dischargeDate", "discharge_date"),
        doctor_id=read_text(record, "doctorId", "doctor_id", "doctor"),
        doctor_name=read_text(record, "doctorName", "doctor_name"),
        patient_name=read_text(record, "name", "patientName", "patient_name"),
    )


def visits_from_records(records: Iterable[Any], *, visit_type: str | None = None) -> list[Visit]:
    return [visit_from_record(r, visit_type=visit_type) for r in records]


def doctor_name_for(visit: Visit, resolve_doctor_name=None) -> str:
    if resolve_doctor_name is not None and visit.doctor_id:
        name = resolve_doctor_name(visit.doctor_id)
        if name:
            return name
    return visit.doctor_name or UNKNOWN_DOCTOR
