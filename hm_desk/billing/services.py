# hm_desk/billing/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from hm_desk.billing.aggregator import DashboardStats, aggregate
from hm_desk.billing.engine import consultant_charges_by_doctor, reconcile, service_breakdown
from hm_desk.billing.records import DoctorDirectory, VisitSource, doctor_name_for, visit_from_record
from hm_desk.billing.types import (
    ConsultantCharge,
    DateRange,
    GroupBy,
    ServiceBreakdown,
    VisitFinancials,
)

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = (
    "Patient ID",
    "Visit ID",
    "Visit Type",
    "Patient Name",
    "Status",
    "Visit Date",
    "Discharge Date",
    "Doctor Name",
    "Total Charges",
    "Discount",
    "Net Paid",
    "Refunds",
    "Balance",
    "Balance Status",
    "Payment Details",
)


@dataclass(frozen=True)
class VisitSummary:
    financials: VisitFinancials
    breakdown: ServiceBreakdown
    consultant_charges: list[ConsultantCharge]


class BillingReportService:
    @staticmethod
    def visit_summary(*, services: Iterable[Any], payments: Iterable[Any], discount: Any = None) -> VisitSummary:
        """
        Billing panel for one visit: totals, hospital/consultant split and per-doctor charges.
        """
        # walked three times below
        if services is not None and not isinstance(services, Mapping):
            services = list(services)
        return VisitSummary(
            financials=reconcile(services, payments, discount),
            breakdown=service_breakdown(services, discount),
            consultant_charges=consultant_charges_by_doctor(services),
        )

    @staticmethod
    def dashboard(
        *,
        visits: Iterable[Any],
        window: DateRange | None,
        group_by: str = GroupBy.DAY,
        doctors: Mapping[str, Any] | None = None,
    ) -> DashboardStats:
        return aggregate(visits, window, group_by=group_by, resolve_doctor_name=DoctorDirectory(doctors))

    @staticmethod
    def dashboard_from_source(
        *,
        source: VisitSource,
        window: DateRange,
        group_by: str = GroupBy.DAY,
        doctors: Mapping[str, Any] | None = None,
    ) -> DashboardStats:
        """
        Pull a fresh snapshot and reconcile it from scratch.
        Nothing is carried over from earlier snapshots.
        """
        snapshot = list(source.fetch_visits(window))
        logger.debug("Fetched %s visit records for %s..%s", len(snapshot), window.start, window.end)
        return BillingReportService.dashboard(visits=snapshot, window=window, group_by=group_by, doctors=doctors)

    @staticmethod
    def export_rows(
        *,
        visits: Iterable[Any],
        doctors: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        directory = DoctorDirectory(doctors)
        rows: list[dict[str, Any]] = []

        for index, raw in enumerate(visits):
            try:
                visit = visit_from_record(raw)
                fin = reconcile(visit.services, visit.payments, visit.discount)
            except (TypeError, ValueError, ArithmeticError) as exc:
                logger.warning("Skipping malformed visit at position %s in export: %s", index, exc)
                continue

            details = "; ".join(f"{p.kind} ({p.payment_type}): {p.amount}" for p in visit.payments)

            rows.append(
                dict(
                    zip(
                        EXPORT_COLUMNS,
                        (
                            visit.patient_id,
                            visit.visit_id,
                            visit.visit_type,
                            visit.patient_name,
                            visit.status,
                            visit.visit_date.isoformat() if visit.visit_date else "",
                            visit.discharge_date.isoformat() if visit.discharge_date else "",
                            doctor_name_for(visit, directory),
                            fin.gross_charges,
                            fin.discount,
                            fin.net_paid,
                            fin.total_refunds,
                            fin.remaining_balance,
                            fin.balance_status.label,
                            details,
                        ),
                    )
                )
            )
        return rows
