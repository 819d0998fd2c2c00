# hm_desk/billing/apps.py
from __future__ import annotations

from django.apps import AppConfig


class BillingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "hm_desk.billing"
    verbose_name = "Billing reconciliation"
