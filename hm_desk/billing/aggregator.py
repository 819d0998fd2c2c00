# hm_desk/billing/aggregator.py
"""
Folds per-visit reconciliation results into dashboard statistics.

Input visits are already scoped by the caller (a day, a date range, one patient's
history). A single malformed visit is logged and skipped; it never aborts the
whole dashboard.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional

from hm_desk.billing.amounts import ZERO, money_context
from hm_desk.billing.engine import reconcile, reconcile_visit
from hm_desk.billing.records import doctor_name_for, ledger_from_record, visit_from_record
from hm_desk.billing.types import DateRange, GroupBy, PaymentMethod, Visit, VisitFinancials, VisitType

logger = logging.getLogger(__name__)

DoctorLookup = Callable[[str], Optional[str]]


@dataclass
class MethodTotals:
    method: str
    collected: Decimal = ZERO
    refunds: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.collected - self.refunds


@dataclass
class DayBucket:
    day: date
    visit_count: int = 0
    gross_charges: Decimal = ZERO
    net_revenue: Decimal = ZERO
    net_paid: Decimal = ZERO
    total_refunds: Decimal = ZERO


@dataclass
class CollectionBucket:
    day: date
    collected: Decimal = ZERO
    refunded: Decimal = ZERO


@dataclass
class VisitTypeTotals:
    visit_type: str
    visit_count: int = 0
    gross_charges: Decimal = ZERO
    net_paid: Decimal = ZERO
    total_refunds: Decimal = ZERO
    cash_collected: Decimal = ZERO
    online_collected: Decimal = ZERO


@dataclass
class DoctorTotals:
    doctor: str
    visit_count: int = 0
    gross_charges: Decimal = ZERO
    net_paid: Decimal = ZERO


@dataclass
class DashboardStats:
    window: DateRange | None
    group_by: str = GroupBy.DAY

    visit_count: int = 0
    gross_charges: Decimal = ZERO
    discount_total: Decimal = ZERO
    net_paid: Decimal = ZERO
    total_refunds: Decimal = ZERO
    pending_amount: Decimal = ZERO
    refundable_amount: Decimal = ZERO

    status_counts: dict[str, int] = field(default_factory=dict)
    by_method: dict[str, MethodTotals] = field(default_factory=dict)
    by_visit_type: dict[str, VisitTypeTotals] = field(default_factory=dict)
    daily: list[DayBucket] = field(default_factory=list)
    collections: list[CollectionBucket] = field(default_factory=list)
    doctors: list[DoctorTotals] = field(default_factory=list)

    skipped_count: int = 0
    undated_count: int = 0
    degraded_count: int = 0

    @property
    def net_revenue(self) -> Decimal:
        """Gross charges less discounts, before any payment is applied."""
        return self.gross_charges - self.discount_total

    @property
    def busiest_day(self) -> date | None:
        return _first_max(self.daily, lambda b: b.visit_count)

    @property
    def top_collection_day(self) -> date | None:
        return _first_max(self.collections, lambda b: b.collected)

    @property
    def groups(self) -> list:
        if self.group_by == GroupBy.METHOD:
            return list(self.by_method.values())
        return list(self.daily)


def _first_max(buckets, value) -> date | None:
    # strict ">" keeps the earliest day on ties
    best = None
    best_value = None
    for bucket in buckets:
        v = value(bucket)
        if v and (best_value is None or v > best_value):
            best, best_value = bucket, v
    return best.day if best is not None else None


def _reconcile_entry(raw: Any, visit: Visit) -> VisitFinancials:
    if isinstance(raw, Mapping):
        # reconcile the raw record so malformed amounts stay visible in `issues`
        services, payments, discount = ledger_from_record(raw)
        return reconcile(services or (), payments or (), discount)
    return reconcile_visit(visit)


def aggregate(
    visits: Iterable[Any],
    window: DateRange | None,
    group_by: str = GroupBy.DAY,
    resolve_doctor_name: DoctorLookup | None = None,
) -> DashboardStats:
    if visits is None:
        raise TypeError("visits must be a list, not None.")
    if group_by not in GroupBy.values:
        raise ValueError(f"Unsupported group_by {group_by!r}; expected one of {GroupBy.values}.")

    stats = DashboardStats(window=window, group_by=group_by)
    stats.by_method = {
        PaymentMethod.CASH: MethodTotals(method=PaymentMethod.CASH),
        PaymentMethod.ONLINE: MethodTotals(method=PaymentMethod.ONLINE),
    }
    stats.by_visit_type = {vt: VisitTypeTotals(visit_type=vt) for vt in VisitType.values}

    days = window.days() if window is not None else []
    daily = {day: DayBucket(day=day) for day in days}
    collections = {day: CollectionBucket(day=day) for day in days}
    doctors: dict[str, DoctorTotals] = {}

    with money_context():
        for index, raw in enumerate(visits):
            try:
                visit = visit_from_record(raw)
                fin = _reconcile_entry(raw, visit)
            except (TypeError, ValueError, AttributeError, ArithmeticError) as exc:
                stats.skipped_count += 1
                logger.warning("Skipping malformed visit at position %s: %s", index, exc)
                continue

            stats.visit_count += 1
            stats.gross_charges += fin.gross_charges
            stats.discount_total += fin.discount
            stats.net_paid += fin.net_paid
            stats.total_refunds += fin.total_refunds
            stats.pending_amount += fin.pending_amount
            stats.refundable_amount += fin.refundable_amount
            if fin.is_degraded:
                stats.degraded_count += 1
                logger.debug("Visit %s reconciled with defaulted inputs: %s", visit.key, ", ".join(fin.issues))

            status_key = visit.status or "unknown"
            stats.status_counts[status_key] = stats.status_counts.get(status_key, 0) + 1

            type_totals = stats.by_visit_type.setdefault(
                visit.visit_type, VisitTypeTotals(visit_type=visit.visit_type)
            )
            type_totals.visit_count += 1
            type_totals.gross_charges += fin.gross_charges
            type_totals.net_paid += fin.net_paid
            type_totals.total_refunds += fin.total_refunds

            for payment in visit.payments:
                if not payment.is_refund:
                    if payment.payment_type == PaymentMethod.CASH:
                        type_totals.cash_collected += payment.amount
                    elif payment.payment_type == PaymentMethod.ONLINE:
                        type_totals.online_collected += payment.amount

                totals = stats.by_method.get(payment.payment_type)
                if totals is None:
                    totals = stats.by_method[payment.payment_type] = MethodTotals(method=payment.payment_type)
                if payment.is_refund:
                    totals.refunds += payment.amount
                else:
                    totals.collected += payment.amount

                bucket = collections.get(payment.date) if payment.date is not None else None
                if bucket is not None:
                    if payment.is_refund:
                        bucket.refunded += payment.amount
                    else:
                        bucket.collected += payment.amount

            if visit.visit_date is None:
                stats.undated_count += 1
            else:
                day_bucket = daily.get(visit.visit_date)
                if day_bucket is not None:
                    day_bucket.visit_count += 1
                    day_bucket.gross_charges += fin.gross_charges
                    day_bucket.net_revenue += fin.gross_charges - fin.discount
                    day_bucket.net_paid += fin.net_paid
                    day_bucket.total_refunds += fin.total_refunds

            doctor = doctor_name_for(visit, resolve_doctor_name)
            doc_totals = doctors.setdefault(doctor, DoctorTotals(doctor=doctor))
            doc_totals.visit_count += 1
            doc_totals.gross_charges += fin.gross_charges
            doc_totals.net_paid += fin.net_paid

    stats.daily = [daily[day] for day in days]
    stats.collections = [collections[day] for day in days]
    # sorted() is stable: doctors with equal counts keep first-seen order
    stats.doctors = sorted(doctors.values(), key=lambda d: d.visit_count, reverse=True)

    logger.debug(
        "Aggregated %s visits (%s skipped, %s undated) over %s day(s)",
        stats.visit_count,
        stats.skipped_count,
        stats.undated_count,
        len(days),
    )
    return stats
