# -*- coding: utf-8 -*-
"""
lunch_orders — Models package entrypoint.

This app uses a models/ package (not a single models.py). Django discovers
models when these modules are imported.
"""

from .pending_order import PendingOrder, PendingOrderStatus
from .order import Order, OrderStatus, ProcessedCheckoutSession
from .meal_record import MealRecord, MealStatus
from .customer import CustomerAccount
from .email_log import EmailLog

__all__ = [
    "PendingOrder",
    "PendingOrderStatus",
    "Order",
    "OrderStatus",
    "ProcessedCheckoutSession",
    "MealRecord",
    "MealStatus",
    "CustomerAccount",
    "EmailLog",
]
