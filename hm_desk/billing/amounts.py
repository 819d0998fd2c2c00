# hm_desk/billing/amounts.py
from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation, localcontext
from typing import Any, Iterator

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

ZERO = Decimal("0")

# amounts of 10**15 or more are not plausible rupee values
MAX_AMOUNT_DIGITS = 15
# finer fractions are rounded to this scale on the way in
AMOUNT_SCALE = Decimal("1E-10")

# wide enough that sums of bounded amounts are exact
MONEY_CONTEXT = Context(prec=60, rounding=ROUND_HALF_UP)

_MISSING = object()


def money_context():
    """Local decimal context for every fold over amounts."""
    return localcontext(MONEY_CONTEXT)


def coerce_amount(value: Any) -> tuple[Decimal, bool]:
    """
    Converts a raw stored amount (number or numeric string) to a non-negative Decimal.

    Returns (amount, ok). Anything that is missing, non-numeric, non-finite,
    boolean, negative or at least 10**15 comes back as (0, False). Never raises.
    """
    if value is None or isinstance(value, bool):
        return ZERO, False

    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            # str() keeps floats at their shortest repr (0.1 -> "0.1")
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError, TypeError):
            return ZERO, False

    if not amount.is_finite() or amount < ZERO:
        return ZERO, False
    if amount and amount.adjusted() >= MAX_AMOUNT_DIGITS:
        return ZERO, False
    if amount.as_tuple().exponent < AMOUNT_SCALE.as_tuple().exponent:
        with money_context():
            amount = amount.quantize(AMOUNT_SCALE)
    return amount, True


def to_amount(value: Any) -> Decimal:
    return coerce_amount(value)[0]


def read_field(record: Any, *names: str, default: Any = None) -> Any:
    """
    First present value among `names`.
    Works for raw storage mappings (camelCase keys) and for dataclass instances.
    Empty strings count as absent.
    """
    for name in names:
        if isinstance(record, Mapping):
            value = record.get(name, _MISSING)
        else:
            value = getattr(record, name, _MISSING)
        if value is _MISSING or value is None or value == "":
            continue
        return value
    return default


def read_text(record: Any, *names: str, default: str = "") -> str:
    value = read_field(record, *names)
    if value is None:
        return default
    return str(value).strip()


def iter_entries(value: Any) -> Iterator[tuple[str | None, Any]]:
    """
    Yields (key, entry) for a stored collection.

    Storage writes lists either as arrays or as push-id keyed objects,
    so both shapes are accepted. Keys are None for arrays.
    """
    if value is None:
        return
    if isinstance(value, Mapping):
        for key, entry in value.items():
            yield str(key), entry
        return
    if isinstance(value, (str, bytes)):
        raise TypeError("Expected a list or mapping of entries, got a string.")
    for entry in value:
        yield None, entry


def to_timestamp(value: Any) -> datetime | None:
    """
    Parses a stored timestamp into an aware datetime (naive values are read in TIME_ZONE).
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        try:
            dt = parse_datetime(value.strip())
        except ValueError:
            return None
        if dt is None:
            return None
    else:
        return None

    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt)
    return dt


def to_calendar_day(value: Any) -> date | None:
    """
    Normalizes a stored timestamp to the calendar day it falls on.

    Aware datetimes are moved to the configured TIME_ZONE first, so a
    late-evening UTC timestamp lands on the local business day.
    Returns None for anything that cannot be read as a date.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        if timezone.is_aware(value):
            return timezone.localtime(value).date()
        return value.date()

    if isinstance(value, date):
        return value

    if not isinstance(value, str):
        return None

    raw = value.strip()
    try:
        dt = parse_datetime(raw)
        if dt is not None:
            return to_calendar_day(dt)
        return parse_date(raw)
    except ValueError:
        return None
