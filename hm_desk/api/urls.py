# hm_desk/api/urls.py
from __future__ import annotations

from django.urls import path

from hm_desk.billing.api.views import DashboardView, ExportView, ReconcileView

urlpatterns = [
    path("billing/reconcile/", ReconcileView.as_view(), name="billing-reconcile"),
    path("billing/dashboard/", DashboardView.as_view(), name="billing-dashboard"),
    path("billing/export/", ExportView.as_view(), name="billing-export"),
]
