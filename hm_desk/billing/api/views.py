# hm_desk/billing/api/views.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from hm_desk.billing.api.serializers import (
    DashboardRequestSerializer,
    DashboardStatsSerializer,
    ExportRequestSerializer,
    ReconcileRequestSerializer,
    VisitSummarySerializer,
)
from hm_desk.billing.services import EXPORT_COLUMNS, BillingReportService


class ReconcileView(APIView):
    """
    /billing/reconcile/
    - POST one visit's raw services + payments + discount, get the billing panel totals back
    """

    @extend_schema(
        tags=["Billing"],
        request=ReconcileRequestSerializer,
        responses={200: VisitSummarySerializer},
    )
    def post(self, request):
        ser = ReconcileRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        summary = BillingReportService.visit_summary(
            services=ser.validated_data["services"],
            payments=ser.validated_data["payments"],
            discount=ser.validated_data.get("discount"),
        )
        return Response(VisitSummarySerializer(summary).data, status=status.HTTP_200_OK)


class DashboardView(APIView):
    """
    /billing/dashboard/
    - POST a snapshot of visits for a window, get totals, method split and daily series
    """

    @extend_schema(
        tags=["Billing"],
        request=DashboardRequestSerializer,
        responses={200: DashboardStatsSerializer},
    )
    def post(self, request):
        ser = DashboardRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        stats = BillingReportService.dashboard(
            visits=ser.validated_data["visits"],
            window=ser.validated_data["window"],
            group_by=ser.validated_data["group_by"],
            doctors=ser.validated_data.get("doctors") or {},
        )
        return Response(DashboardStatsSerializer(stats).data, status=status.HTTP_200_OK)


class ExportView(APIView):
    """
    /billing/export/
    - POST visits, get one flat row per visit for spreadsheet/PDF exporters
    """

    @extend_schema(
        tags=["Billing"],
        request=ExportRequestSerializer,
        responses={200: OpenApiTypes.OBJECT},
    )
    def post(self, request):
        ser = ExportRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        rows = BillingReportService.export_rows(
            visits=ser.validated_data["visits"],
            doctors=ser.validated_data.get("doctors") or {},
        )
        return Response({"columns": list(EXPORT_COLUMNS), "rows": rows}, status=status.HTTP_200_OK)
