"""
Lunch Orders — Django Admin Registrations

========= CHANGE LOG =========
2026-09-08 • Register order finalization models (read-only identifiers).
2026-09-12 • Add EmailLog listing (delivery audit for confirmations).
"""

from __future__ import annotations

from django.contrib import admin

from .models import (
    CustomerAccount,
    EmailLog,
    MealRecord,
    Order,
    PendingOrder,
    ProcessedCheckoutSession,
)


# --------------------------------------------------------------------------------------
# PendingOrder
# --------------------------------------------------------------------------------------


@admin.register(PendingOrder)
class PendingOrderAdmin(admin.ModelAdmin):
    list_display = ("order_id", "session_id", "user_email", "meal_count", "final_total", "status", "expires_at")
    search_fields = ("order_id", "session_id", "user_id", "user_email")
    list_filter = ("status",)
    ordering = ("-created_at",)
    readonly_fields = ("session_id", "order_id", "created_at")

    @admin.display(description="Meals")
    def meal_count(self, obj):
        return obj.item_count


# --------------------------------------------------------------------------------------
# Order + meals
# --------------------------------------------------------------------------------------


class MealRecordInline(admin.TabularInline):
    model = MealRecord
    extra = 0
    fields = ("meal_id", "delivery_date", "child_name", "school_name", "main_name", "status", "total_amount")
    readonly_fields = ("meal_id",)
    show_change_link = True


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_id", "user_email", "item_count", "total_amount", "payment_amount", "currency", "status", "paid_at")
    search_fields = ("order_id", "user_id", "user_email", "stripe_session_id")
    list_filter = ("status", "currency")
    ordering = ("-created_at",)
    readonly_fields = ("order_id", "stripe_session_id", "paid_at", "payment_amount", "created_at", "updated_at")
    inlines = [MealRecordInline]


@admin.register(MealRecord)
class MealRecordAdmin(admin.ModelAdmin):
    list_display = ("meal_id", "delivery_date", "school_name", "child_name", "main_name", "is_teacher", "status")
    search_fields = ("meal_id", "order__order_id", "child_name", "school_name", "user_id")
    list_filter = ("status", "delivery_date", "school_name", "is_teacher")
    ordering = ("delivery_date", "meal_id")
    readonly_fields = ("meal_id", "order", "ordered_on", "created_at", "updated_at")


@admin.register(ProcessedCheckoutSession)
class ProcessedCheckoutSessionAdmin(admin.ModelAdmin):
    list_display = ("session_id", "order", "stripe_event_id", "processed_at")
    search_fields = ("session_id", "stripe_event_id", "order__order_id")
    ordering = ("-processed_at",)
    readonly_fields = ("session_id", "order", "stripe_event_id", "processed_at")


# --------------------------------------------------------------------------------------
# Customers / email
# --------------------------------------------------------------------------------------


@admin.register(CustomerAccount)
class CustomerAccountAdmin(admin.ModelAdmin):
    list_display = ("user_id", "email", "order_count", "updated_at")
    search_fields = ("user_id", "email")
    ordering = ("-updated_at",)

    @admin.display(description="Orders")
    def order_count(self, obj):
        return len(obj.order_summaries or [])


@admin.register(EmailLog)
class EmailLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "to_email", "email_type", "status", "provider", "order")
    search_fields = ("to_email", "subject", "provider_message_id", "order__order_id")
    list_filter = ("status", "email_type", "provider")
    ordering = ("-created_at",)
    readonly_fields = ("provider_message_id", "error_message", "created_at", "sent_at")
