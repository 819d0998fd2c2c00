# hm_desk/billing/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any

from django.db import models

from hm_desk.billing.amounts import ZERO


class PaymentKind(models.TextChoices):
    DEPOSIT = "deposit", "Deposit"
    ADVANCE = "advance", "Advance"
    REFUND = "refund", "Refund"


class PaymentMethod(models.TextChoices):
    CASH = "cash", "Cash"
    ONLINE = "online", "Online"
    OTHER = "other", "Other"


class ServiceType(models.TextChoices):
    SERVICE = "service", "Hospital Service"
    DOCTOR_VISIT = "doctorvisit", "Consultant Charge"


class VisitType(models.TextChoices):
    OPD = "opd", "OPD"
    IPD = "ipd", "IPD"
    CASUALTY = "casualty", "Casualty"


class BalanceStatus(models.TextChoices):
    DUE = "due", "Due"
    REFUNDABLE = "refundable", "Refundable"
    SETTLED = "settled", "Settled"


class GroupBy(models.TextChoices):
    DAY = "day", "Day"
    METHOD = "method", "Payment method"


def normalize_kind(raw: Any) -> str:
    # unset kind on legacy payments means an advance
    value = str(raw or "").strip().lower()
    if value == PaymentKind.REFUND:
        return PaymentKind.REFUND
    if value == PaymentKind.DEPOSIT:
        return PaymentKind.DEPOSIT
    return PaymentKind.ADVANCE


def normalize_method(raw: Any) -> str:
    value = str(raw or "").strip().lower()
    if not value or value == PaymentMethod.CASH:
        return PaymentMethod.CASH
    if value == PaymentMethod.ONLINE:
        return PaymentMethod.ONLINE
    return PaymentMethod.OTHER


@dataclass(frozen=True)
class ServiceCharge:
    service_name: str
    type: str
    amount: Decimal
    doctor_name: str = ""
    created_at: datetime | None = None

    @property
    def is_consultant_charge(self) -> bool:
        return self.type == ServiceType.DOCTOR_VISIT


@dataclass(frozen=True)
class Payment:
    """
    Append-only ledger entry. Refunds carry a positive amount; the engine subtracts them.
    """
    id: str
    amount: Decimal
    payment_type: str = PaymentMethod.CASH
    kind: str = PaymentKind.ADVANCE
    date: date | None = None
    created_at: datetime | None = None

    @property
    def is_refund(self) -> bool:
        return self.kind == PaymentKind.REFUND


@dataclass(frozen=True)
class Visit:
    """
    One OPD/IPD/casualty visit with everything billed and paid against it.
    `visit_date` is the creation/admission day, i.e. the storage shard key.
    """
    patient_id: str
    visit_id: str
    visit_type: str = VisitType.IPD
    services: tuple[ServiceCharge, ...] = ()
    payments: tuple[Payment, ...] = ()
    discount: Decimal = ZERO
    status: str = ""
    visit_date: date | None = None
    discharge_date: date | None = None
    doctor_id: str = ""
    doctor_name: str = ""
    patient_name: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return (self.patient_id, self.visit_id)


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"DateRange start {self.start} is after end {self.end}.")

    @classmethod
    def single_day(cls, day: date) -> "DateRange":
        return cls(start=day, end=day)

    def days(self) -> list[date]:
        span = (self.end - self.start).days
        return [self.start + timedelta(days=i) for i in range(span + 1)]

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end


@dataclass(frozen=True)
class VisitFinancials:
    gross_charges: Decimal
    net_paid: Decimal
    total_refunds: Decimal
    discount: Decimal
    remaining_balance: Decimal
    # names of inputs that were defaulted to 0; diagnostic only
    issues: tuple[str, ...] = field(default=(), compare=False)

    @property
    def balance_status(self) -> str:
        if self.remaining_balance > ZERO:
            return BalanceStatus.DUE
        if self.remaining_balance < ZERO:
            return BalanceStatus.REFUNDABLE
        return BalanceStatus.SETTLED

    @property
    def is_degraded(self) -> bool:
        return bool(self.issues)

    @property
    def discount_exceeds_charges(self) -> bool:
        # not rejected: the balance goes negative and reads as refundable
        return self.discount > self.gross_charges

    @property
    def pending_amount(self) -> Decimal:
        return max(self.remaining_balance, ZERO)

    @property
    def refundable_amount(self) -> Decimal:
        return max(-self.remaining_balance, ZERO)


@dataclass(frozen=True)
class ServiceBreakdown:
    hospital_services: Decimal
    consultant_charges: Decimal
    gross_charges: Decimal
    discount_percent: Decimal


@dataclass(frozen=True)
class ConsultantCharge:
    doctor_name: str
    visits: int
    total_charge: Decimal
    last_visit: datetime | None
