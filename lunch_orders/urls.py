"""
lunch_orders — URL routes

Mounted by the project at /stripe/ (see bentosuite/urls.py).
"""

from __future__ import annotations

from django.urls import path

from lunch_orders.views import stripe_webhook

app_name = "lunch_orders"

urlpatterns = [
    path("webhook/", stripe_webhook, name="stripe-webhook"),
]
