"""
CHANGE LOG
----------
2026-09-08
- ADD: /stripe/webhook/ → lunch_orders.views.stripe_webhook (order finalization).
"""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("stripe/", include("lunch_orders.urls", namespace="lunch_orders")),
]
