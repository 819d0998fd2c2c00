# hm_desk/billing/api/serializers.py
from __future__ import annotations

from collections.abc import Mapping

from rest_framework import serializers

from hm_desk.billing.types import DateRange, GroupBy

MAX_WINDOW_DAYS = 366


def _money(**kwargs):
    # uncapped width; values are still rendered to 2 places
    return serializers.DecimalField(max_digits=None, decimal_places=2, read_only=True, **kwargs)


def _entries(value, field_name: str):
    """
    Accepts a list of entries or a push-id keyed object of entries.
    Objects pass through as-is so reported issues keep their push-id keys.
    """
    if isinstance(value, (Mapping, list)):
        return value
    raise serializers.ValidationError(f"{field_name} must be a list or an object of entries.")


# -------------------------------------------------------------------
# Input
# -------------------------------------------------------------------

class ReconcileRequestSerializer(serializers.Serializer):
    """
    Raw visit ledger as stored. Amounts are coerced by the engine, so they stay untyped here.
    """
    services = serializers.JSONField(required=False, default=list)
    payments = serializers.JSONField(required=False, default=list)
    discount = serializers.JSONField(required=False, allow_null=True, default=None)

    def validate_services(self, value):
        return _entries(value, "services")

    def validate_payments(self, value):
        return _entries(value, "payments")


class DashboardRequestSerializer(serializers.Serializer):
    visits = serializers.ListField(child=serializers.JSONField(), allow_empty=True)
    start = serializers.DateField()
    end = serializers.DateField(required=False, allow_null=True)
    group_by = serializers.ChoiceField(choices=GroupBy.choices, required=False, default=GroupBy.DAY)
    doctors = serializers.DictField(child=serializers.JSONField(), required=False, default=dict)

    def validate(self, attrs):
        start = attrs["start"]
        end = attrs.get("end") or start

        if start > end:
            raise serializers.ValidationError({"end": "End date must be on or after start date."})
        if (end - start).days + 1 > MAX_WINDOW_DAYS:
            raise serializers.ValidationError({"end": f"Window cannot exceed {MAX_WINDOW_DAYS} days."})

        attrs["window"] = DateRange(start=start, end=end)
        return attrs


class ExportRequestSerializer(serializers.Serializer):
    visits = serializers.ListField(child=serializers.JSONField(), allow_empty=True)
    doctors = serializers.DictField(child=serializers.JSONField(), required=False, default=dict)


# -------------------------------------------------------------------
# Output
# -------------------------------------------------------------------

class VisitFinancialsSerializer(serializers.Serializer):
    gross_charges = _money()
    discount = _money()
    net_paid = _money()
    total_refunds = _money()
    remaining_balance = _money()
    balance_status = serializers.CharField(read_only=True)
    discount_exceeds_charges = serializers.BooleanField(read_only=True)
    issues = serializers.ListField(child=serializers.CharField(), read_only=True)


class ServiceBreakdownSerializer(serializers.Serializer):
    hospital_services = _money()
    consultant_charges = _money()
    gross_charges = _money()
    discount_percent = serializers.DecimalField(max_digits=None, decimal_places=1, read_only=True)


class ConsultantChargeSerializer(serializers.Serializer):
    doctor_name = serializers.CharField(read_only=True)
    visits = serializers.IntegerField(read_only=True)
    total_charge = _money()
    last_visit = serializers.DateTimeField(read_only=True, allow_null=True)


class VisitSummarySerializer(serializers.Serializer):
    financials = VisitFinancialsSerializer(read_only=True)
    breakdown = ServiceBreakdownSerializer(read_only=True)
    consultant_charges = ConsultantChargeSerializer(many=True, read_only=True)

    def to_representation(self, instance):
        data = super().to_representation(instance)
        # the billing panel reads the totals at top level
        financials = data.pop("financials")
        return {**financials, **data}


class MethodTotalsSerializer(serializers.Serializer):
    method = serializers.CharField(read_only=True)
    collected = _money()
    refunds = _money()
    net = _money()


class DayBucketSerializer(serializers.Serializer):
    day = serializers.DateField(read_only=True)
    visit_count = serializers.IntegerField(read_only=True)
    gross_charges = _money()
    net_revenue = _money()
    net_paid = _money()
    total_refunds = _money()


class CollectionBucketSerializer(serializers.Serializer):
    day = serializers.DateField(read_only=True)
    collected = _money()
    refunded = _money()


class VisitTypeTotalsSerializer(serializers.Serializer):
    visit_type = serializers.CharField(read_only=True)
    visit_count = serializers.IntegerField(read_only=True)
    gross_charges = _money()
    net_paid = _money()
    total_refunds = _money()
    cash_collected = _money()
    online_collected = _money()


class DoctorTotalsSerializer(serializers.Serializer):
    doctor = serializers.CharField(read_only=True)
    visit_count = serializers.IntegerField(read_only=True)
    gross_charges = _money()
    net_paid = _money()


class DashboardStatsSerializer(serializers.Serializer):
    start = serializers.DateField(source="window.start", read_only=True)
    end = serializers.DateField(source="window.end", read_only=True)
    group_by = serializers.CharField(read_only=True)

    visit_count = serializers.IntegerField(read_only=True)
    gross_charges = _money()
    discount_total = _money()
    net_revenue = _money()
    net_paid = _money()
    total_refunds = _money()
    pending_amount = _money()
    refundable_amount = _money()

    status_counts = serializers.DictField(child=serializers.IntegerField(), read_only=True)
    by_method = serializers.SerializerMethodField()
    by_visit_type = serializers.SerializerMethodField()
    daily = DayBucketSerializer(many=True, read_only=True)
    collections = CollectionBucketSerializer(many=True, read_only=True)
    doctors = DoctorTotalsSerializer(many=True, read_only=True)
    groups = serializers.SerializerMethodField()

    busiest_day = serializers.DateField(read_only=True, allow_null=True)
    top_collection_day = serializers.DateField(read_only=True, allow_null=True)

    skipped_count = serializers.IntegerField(read_only=True)
    undated_count = serializers.IntegerField(read_only=True)
    degraded_count = serializers.IntegerField(read_only=True)

    def get_by_method(self, obj) -> dict:
        return {method: MethodTotalsSerializer(totals).data for method, totals in obj.by_method.items()}

    def get_by_visit_type(self, obj) -> dict:
        return {vt: VisitTypeTotalsSerializer(totals).data for vt, totals in obj.by_visit_type.items()}

    def get_groups(self, obj) -> list:
        if obj.group_by == GroupBy.METHOD:
            return MethodTotalsSerializer(obj.groups, many=True).data
        return DayBucketSerializer(obj.groups, many=True).data
