"""
lunch_orders.models.pending_order

Provisional order written at checkout time, keyed by the Stripe Checkout
Session id. The webhook finalizer turns it into permanent records and deletes
it; abandoned ones are purged after `expires_at`.

CHANGE LOG
- 2026-09-02: Create PendingOrder (session id as primary key).
- 2026-09-09: Add PendingOrderQuerySet.expired() for the sweep.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from django.db import models
from django.utils import timezone


class PendingOrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"


class PendingOrderQuerySet(models.QuerySet):
    def expired(self, now: Optional[datetime] = None) -> "PendingOrderQuerySet":
        return self.filter(expires_at__lt=now or timezone.now())


class PendingOrder(models.Model):
    """
    One row per checkout attempt.

    `meals` holds the validated cart lines exactly as checkout stored them
    (see serializers.MealSelectionSerializer for the shape).
    """

    session_id = models.CharField(
        max_length=255,
        primary_key=True,
        help_text="Stripe Checkout Session id (cs_...).",
    )

    order_id = models.CharField(
        max_length=32,
        unique=True,
        help_text="Order id allocated at checkout (ORD-YYYYMMDD-XXXXXXXXX).",
    )

    user_id = models.CharField(max_length=128, db_index=True)
    user_email = models.EmailField()

    meals = models.JSONField(default=list)

    # ---- pricing (major currency units) ----
    subtotal = models.DecimalField(max_digits=10, decimal_places=2)
    final_total = models.DecimalField(max_digits=10, decimal_places=2)
    applied_coupon = models.JSONField(
        blank=True,
        null=True,
        help_text="{code, discount_amount} when a coupon/bundle discount applied.",
    )

    status = models.CharField(
        max_length=16,
        choices=PendingOrderStatus.choices,
        default=PendingOrderStatus.PENDING,
    )

    created_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField(db_index=True)

    objects = PendingOrderQuerySet.as_manager()

    class Meta:
        ordering = ("-created_at",)

    def __str__(self) -> str:
        return f"PendingOrder({self.order_id})<{self.session_id}>"

    @property
    def item_count(self) -> int:
        return len(self.meals or [])
