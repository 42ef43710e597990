"""
lunch_orders.models.meal_record

One delivered meal line. Ids are derived from the order id + position, so
re-expanding the same pending order always yields the same ids.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone


class MealStatus(models.TextChoices):
    ORDERED = "ordered", "Ordered"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


class MealRecord(models.Model):
    meal_id = models.CharField(max_length=40, primary_key=True)

    order = models.ForeignKey(
        "lunch_orders.Order",
        on_delete=models.CASCADE,
        related_name="meals",
    )
    user_id = models.CharField(max_length=128, db_index=True)

    delivery_date = models.DateField(db_index=True)

    # ---- destination ----
    school_id = models.CharField(max_length=128, db_index=True)
    school_name = models.CharField(max_length=255)
    school_address = models.CharField(max_length=500, blank=True, default="")

    # ---- recipient ----
    child_id = models.CharField(max_length=128)
    child_name = models.CharField(max_length=255)
    allergens = models.CharField(max_length=500, blank=True, default="")
    is_teacher = models.BooleanField(default=False)
    year = models.CharField(max_length=32, blank=True, null=True)
    class_name = models.CharField(max_length=64, blank=True, null=True)

    # ---- selection ----
    main_id = models.CharField(max_length=128)
    main_name = models.CharField(max_length=255)
    add_ons = models.JSONField(default=list, blank=True)
    fruit_id = models.CharField(max_length=128, blank=True, null=True)
    fruit_name = models.CharField(max_length=255, blank=True, null=True)
    side_id = models.CharField(max_length=128, blank=True, null=True)
    side_name = models.CharField(max_length=255, blank=True, null=True)

    status = models.CharField(
        max_length=16,
        choices=MealStatus.choices,
        default=MealStatus.ORDERED,
        db_index=True,
    )
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    ordered_on = models.DateTimeField()
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("delivery_date", "meal_id")
        indexes = [
            models.Index(fields=["school_id", "delivery_date"]),
        ]

    def __str__(self) -> str:
        return f"{self.meal_id} • {self.child_name} @ {self.school_name} ({self.delivery_date})"
