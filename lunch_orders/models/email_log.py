"""
lunch_orders — Email Log model
Path: lunch_orders/models/email_log.py

Purpose:
- Track customer-facing emails (order confirmations).
- Provide admin-visible proof: what was sent, when, to whom, and status.
- Store provider message IDs (Anymail) when available.

Design rules:
- A failed send is recorded here and never bubbles up to the webhook.

CHANGE LOG
- 2026-09-12: Create EmailLog for order confirmation delivery tracking.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone


class EmailLog(models.Model):
    """
    Record of an attempted outgoing email.

    This is not meant to replace the provider's activity feed; it's the
    internal, order-linked audit trail.
    """

    order = models.ForeignKey(
        "lunch_orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="email_logs",
    )

    to_email = models.EmailField()
    subject = models.CharField(max_length=255)

    TYPE_ORDER_CONFIRMATION = "order_confirmation"
    TYPE_CHOICES = [
        (TYPE_ORDER_CONFIRMATION, "Order Confirmation"),
    ]
    email_type = models.CharField(
        max_length=30,
        choices=TYPE_CHOICES,
        default=TYPE_ORDER_CONFIRMATION,
        db_index=True,
    )

    provider = models.CharField(max_length=50, blank=True, default="")
    provider_message_id = models.CharField(max_length=255, blank=True, default="")

    STATUS_SENT = "sent"
    STATUS_FAILED = "failed"
    STATUS_QUEUED = "queued"
    STATUS_CHOICES = [
        (STATUS_SENT, "Sent"),
        (STATUS_FAILED, "Failed"),
        (STATUS_QUEUED, "Queued"),
    ]
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_QUEUED,
        db_index=True,
    )

    error_message = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(default=timezone.now, editable=False)
    sent_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.email_type} → {self.to_email} ({self.status})"

    def mark_sent(self, provider_message_id: str = "") -> None:
        self.status = self.STATUS_SENT
        if provider_message_id:
            self.provider_message_id = provider_message_id
        self.sent_at = timezone.now()
        self.save(update_fields=["status", "provider_message_id", "sent_at"])

    def mark_failed(self, error: str) -> None:
        self.status = self.STATUS_FAILED
        self.error_message = (error or "")[:5000]
        self.save(update_fields=["status", "error_message"])
