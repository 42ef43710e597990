"""
lunch_orders.models.order

Permanent, paid order record created by the Stripe webhook finalizer.

We keep the Stripe identifiers + pricing snapshot so:
- Webhook processing can be audited
- The order always points at its meals by id (meal_ids), fixed at creation

========= CHANGE LOG =========
2026-09-03 • ADD: Order keyed by human-readable order id.
2026-09-10 • ADD: ProcessedCheckoutSession (explicit idempotency token per session).
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"


class Order(models.Model):
    """
    Represents a single finalized checkout (one Stripe Checkout Session).
    """

    order_id = models.CharField(max_length=32, primary_key=True)

    # ---- owner ----
    user_id = models.CharField(max_length=128, db_index=True)
    user_email = models.EmailField()

    # Referential, never embedded. Length always equals item_count.
    meal_ids = models.JSONField(default=list)
    item_count = models.PositiveIntegerField(default=0)

    # ---- pricing (major currency units) ----
    subtotal = models.DecimalField(max_digits=10, decimal_places=2)
    total_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Final total after discounts.",
    )
    applied_coupon = models.JSONField(blank=True, null=True)

    # ---- payment ----
    stripe_session_id = models.CharField(max_length=255, unique=True)
    paid_at = models.DateTimeField(blank=True, null=True)
    payment_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Amount captured by Stripe, converted from the smallest currency unit.",
    )
    currency = models.CharField(max_length=12, blank=True, default="")

    status = models.CharField(
        max_length=16,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        db_index=True,
    )

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)

    def __str__(self) -> str:
        return f"Order({self.order_id})<{self.user_email}>"


class ProcessedCheckoutSession(models.Model):
    """
    One row per Stripe Checkout Session that has been finalized.

    Written inside the finalization transaction; a second delivery racing the
    first collides on the primary key and rolls back.
    """

    session_id = models.CharField(max_length=255, primary_key=True)
    order = models.OneToOneField(
        Order,
        on_delete=models.CASCADE,
        related_name="processed_session",
    )
    stripe_event_id = models.CharField(max_length=255, blank=True, default="")
    processed_at = models.DateTimeField(default=timezone.now)

    def __str__(self) -> str:
        return f"{self.session_id} → {self.order_id}"
