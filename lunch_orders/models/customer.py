"""
lunch_orders — Customer account
Path: lunch_orders/models/customer.py

Purpose:
- One record per storefront user (keyed by the auth provider's user id)
- Carry the denormalized order history the account page reads
  (`order_summaries`, append-only)

CHANGE LOG
- 2026-09-03: Create CustomerAccount with append-only order summaries.
"""

from __future__ import annotations

from typing import Any, Dict

from django.db import models
from django.utils import timezone


class CustomerAccount(models.Model):
    """
    Identity + order history for a single storefront user.

    Each entry in `order_summaries`:
      {order_id, meal_ids, total_paid, item_count, ordered_on}
    """

    user_id = models.CharField(max_length=128, primary_key=True)
    email = models.EmailField(blank=True, default="")

    order_summaries = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.email or self.user_id

    def has_order(self, order_id: str) -> bool:
        return any((s or {}).get("order_id") == order_id for s in (self.order_summaries or []))

    def append_order_summary(self, summary: Dict[str, Any]) -> bool:
        """
        Append a summary unless one for the same order is already present.

        Returns True when the list changed. Caller saves.
        """
        if self.has_order(summary.get("order_id", "")):
            return False
        self.order_summaries = list(self.order_summaries or []) + [summary]
        return True
