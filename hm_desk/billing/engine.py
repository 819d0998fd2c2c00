# hm_desk/billing/engine.py
"""
Billing reconciliation engine.

Turns a visit's raw service list, raw payment ledger and optional discount into
a VisitFinancials summary. Every dashboard, report and export goes through
`reconcile` so totals agree at every aggregation level.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

from hm_desk.billing.amounts import (
    ZERO,
    coerce_amount,
    iter_entries,
    money_context,
    read_field,
    read_text,
    to_timestamp,
)
from hm_desk.billing.types import (
    ConsultantCharge,
    PaymentKind,
    ServiceBreakdown,
    ServiceType,
    Visit,
    VisitFinancials,
    normalize_kind,
)


def _require_collection(value: Any, name: str) -> None:
    if value is None:
        raise TypeError(f"{name} must be a list of entries, not None.")


def _sum_services(services: Iterable[Any], issues: list[str]) -> Decimal:
    total = ZERO
    for index, (key, service) in enumerate(iter_entries(services)):
        amount, ok = coerce_amount(read_field(service, "amount"))
        if not ok:
            issues.append(f"services[{key if key is not None else index}].amount")
        total += amount
    return total


def _sum_payments(payments: Iterable[Any], issues: list[str]) -> tuple[Decimal, Decimal]:
    credits = ZERO
    refunds = ZERO
    for index, (key, payment) in enumerate(iter_entries(payments)):
        amount, ok = coerce_amount(read_field(payment, "amount"))
        if not ok:
            issues.append(f"payments[{key if key is not None else index}].amount")

        if normalize_kind(read_field(payment, "kind", "type")) == PaymentKind.REFUND:
            refunds += amount
        else:
            credits += amount
    return credits, refunds


def reconcile(services: Iterable[Any], payments: Iterable[Any], discount: Any = None) -> VisitFinancials:
    """
    grossCharges = sum(services)
    netPaid      = sum(deposits + advances) - sum(refunds)
    remaining    = grossCharges - discount - netPaid   (negative means refundable)

    Entries may be ServiceCharge/Payment instances or raw storage mappings.
    Malformed amounts count as 0 and are listed in `issues`; the discount is not
    checked against the payable total.
    """
    _require_collection(services, "services")
    _require_collection(payments, "payments")

    issues: list[str] = []

    with money_context():
        gross = _sum_services(services, issues)
        credits, refunds = _sum_payments(payments, issues)

        disc, disc_ok = coerce_amount(discount)
        if discount is not None and discount != "" and not disc_ok:
            issues.append("discount")

        net_paid = credits - refunds
        remaining = gross - disc - net_paid

    return VisitFinancials(
        gross_charges=gross,
        net_paid=net_paid,
        total_refunds=refunds,
        discount=disc,
        remaining_balance=remaining,
        issues=tuple(issues),
    )


def reconcile_visit(visit: Visit) -> VisitFinancials:
    return reconcile(visit.services, visit.payments, visit.discount)


def service_breakdown(services: Iterable[Any], discount: Any = None) -> ServiceBreakdown:
    """
    Splits gross charges into hospital services and consultant (doctor visit) charges.
    """
    _require_collection(services, "services")

    hospital = ZERO
    consultant = ZERO
    with money_context():
        for _key, service in iter_entries(services):
            amount = coerce_amount(read_field(service, "amount"))[0]
            if read_text(service, "type") == ServiceType.DOCTOR_VISIT:
                consultant += amount
            else:
                hospital += amount

        gross = hospital + consultant
        disc = coerce_amount(discount)[0]

        if gross > ZERO:
            percent = (disc / gross * Decimal("100")).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        else:
            percent = Decimal("0.0")

    return ServiceBreakdown(
        hospital_services=hospital,
        consultant_charges=consultant,
        gross_charges=gross,
        discount_percent=percent,
    )


def consultant_charges_by_doctor(services: Iterable[Any]) -> list[ConsultantCharge]:
    """
    Groups doctor-visit charges per doctor, in the order doctors first appear.
    """
    _require_collection(services, "services")

    grouped: dict[str, dict[str, Any]] = {}
    for _key, service in iter_entries(services):
        if read_text(service, "type") != ServiceType.DOCTOR_VISIT:
            continue

        name = read_text(service, "doctorName", "doctor_name") or "Unknown"
        row = grouped.setdefault(name, {"visits": 0, "total": ZERO, "last": None})
        row["visits"] += 1
        with money_context():
            row["total"] += coerce_amount(read_field(service, "amount"))[0]

        seen_at = to_timestamp(read_field(service, "createdAt", "created_at"))
        if seen_at is not None and (row["last"] is None or seen_at > row["last"]):
            row["last"] = seen_at

    return [
        ConsultantCharge(doctor_name=name, visits=row["visits"], total_charge=row["total"], last_visit=row["last"])
        for name, row in grouped.items()
    ]
