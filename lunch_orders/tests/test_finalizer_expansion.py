"""
CHANGE LOG
- 2026-09-08 — Expansion of a PendingOrder into Order / MealRecords (no DB).
- 2026-09-19 — Legacy `probiotic` / `order_date` keys + missing optional fields.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from django.test import SimpleTestCase

from lunch_orders.finalizer import (
    InvalidPendingOrder,
    build_meal_records,
    build_order,
    build_user_summary,
    minor_to_major,
    to_amount,
)
from lunch_orders.models import MealStatus, OrderStatus, PendingOrder
from lunch_orders.tests.helpers import FIXED_NOW, make_meal

ORDER_ID = "ORD-20251015-ABCDEFGHJ"


def _pending(meals, **kwargs) -> PendingOrder:
    fields = {
        "session_id": "cs_test_expand",
        "order_id": ORDER_ID,
        "user_id": "user_1",
        "user_email": "parent@example.com",
        "meals": meals,
        "subtotal": Decimal("30.00"),
        "final_total": Decimal("27.00"),
        "applied_coupon": {"code": "BUNDLE10", "discount_amount": "3.00"},
        "created_at": FIXED_NOW,
        "expires_at": FIXED_NOW + timedelta(days=7),
    }
    fields.update(kwargs)
    return PendingOrder(**fields)


class AmountTests(SimpleTestCase):
    def test_minor_to_major(self):
        self.assertEqual(minor_to_major(2599), Decimal("25.99"))
        self.assertEqual(minor_to_major(0), Decimal("0.00"))
        self.assertEqual(minor_to_major(None), Decimal("0.00"))

    def test_to_amount_is_lenient(self):
        self.assertEqual(to_amount("9.5"), Decimal("9.50"))
        self.assertEqual(to_amount(12), Decimal("12.00"))
        self.assertEqual(to_amount("n/a"), Decimal("0.00"))
        self.assertEqual(to_amount(None), Decimal("0.00"))
        self.assertEqual(to_amount("NaN"), Decimal("0.00"))


class BuildMealRecordsTests(SimpleTestCase):
    def test_one_record_per_meal_in_order(self):
        pending = _pending([make_meal(), make_meal(child="Leo", delivery_date="2025-10-21")])
        later = FIXED_NOW + timedelta(minutes=5)

        records = build_meal_records(pending, now=later)

        self.assertEqual([r.meal_id for r in records], [f"{ORDER_ID}-001", f"{ORDER_ID}-002"])
        first, second = records
        self.assertEqual(first.order_id, ORDER_ID)
        self.assertEqual(first.user_id, "user_1")
        self.assertEqual(first.delivery_date, date(2025, 10, 20))
        self.assertEqual(second.delivery_date, date(2025, 10, 21))
        self.assertEqual(second.child_name, "Leo")
        self.assertEqual(first.main_id, "main_teriyaki")
        self.assertEqual(first.add_ons, [{"id": "addon_juice", "display": "Apple Juice"}])
        self.assertEqual((first.fruit_id, first.fruit_name), ("fruit_apple", "Apple Slices"))
        self.assertEqual((first.side_id, first.side_name), ("side_yoghurt", "Greek Yoghurt"))
        self.assertEqual(first.allergens, "peanuts")
        self.assertEqual((first.year, first.class_name), ("3", "3B"))
        self.assertEqual(first.status, MealStatus.ORDERED)
        self.assertEqual(first.total_amount, Decimal("15.00"))
        self.assertEqual(first.ordered_on, FIXED_NOW)
        self.assertEqual(first.created_at, later)

    def test_same_input_same_ids(self):
        pending = _pending([make_meal(), make_meal()])
        a = [r.meal_id for r in build_meal_records(pending, now=FIXED_NOW)]
        b = [r.meal_id for r in build_meal_records(pending, now=FIXED_NOW)]
        self.assertEqual(a, b)

    def test_missing_optional_fields_get_defaults(self):
        meal = make_meal()
        del meal["fruit"]
        del meal["side"]
        del meal["add_ons"]
        meal["child"] = {"id": "staff_1", "name": "Ms Rivera"}

        (record,) = build_meal_records(_pending([meal]), now=FIXED_NOW)

        self.assertEqual(record.allergens, "")
        self.assertFalse(record.is_teacher)
        self.assertIsNone(record.year)
        self.assertIsNone(record.class_name)
        self.assertIsNone(record.fruit_id)
        self.assertIsNone(record.side_name)
        self.assertEqual(record.add_ons, [])

    def test_legacy_keys(self):
        meal = make_meal()
        meal["probiotic"] = meal.pop("side")
        meal["order_date"] = meal.pop("delivery_date")

        (record,) = build_meal_records(_pending([meal]), now=FIXED_NOW)

        self.assertEqual(record.side_id, "side_yoghurt")
        self.assertEqual(record.delivery_date, date(2025, 10, 20))

    def test_missing_required_part_is_invalid(self):
        for key in ("main", "child", "school"):
            meal = make_meal()
            del meal[key]
            with self.subTest(missing=key):
                with self.assertRaises(InvalidPendingOrder):
                    build_meal_records(_pending([make_meal(), meal]), now=FIXED_NOW)

    def test_unusable_delivery_date_is_invalid(self):
        for value in ("", "soon", "2025-13-45"):
            with self.subTest(value=value):
                with self.assertRaises(InvalidPendingOrder):
                    build_meal_records(_pending([make_meal(delivery_date=value)]), now=FIXED_NOW)

    def test_meals_must_be_a_list(self):
        with self.assertRaises(InvalidPendingOrder):
            build_meal_records(_pending({"not": "a list"}), now=FIXED_NOW)


class BuildOrderTests(SimpleTestCase):
    def test_order_fields(self):
        pending = _pending([make_meal(), make_meal()])
        meal_ids = [f"{ORDER_ID}-001", f"{ORDER_ID}-002"]
        session = {"id": "cs_test_expand", "amount_total": 2700, "currency": "aud"}
        paid_at = FIXED_NOW + timedelta(minutes=3)

        order = build_order(pending, session, meal_ids, now=paid_at)

        self.assertEqual(order.order_id, ORDER_ID)
        self.assertEqual(order.meal_ids, meal_ids)
        self.assertEqual(order.item_count, 2)
        self.assertEqual(order.subtotal, Decimal("30.00"))
        self.assertEqual(order.total_amount, Decimal("27.00"))
        self.assertEqual(order.payment_amount, Decimal("27.00"))
        self.assertEqual(order.currency, "aud")
        self.assertEqual(order.status, OrderStatus.PAID)
        self.assertEqual(order.stripe_session_id, "cs_test_expand")
        self.assertEqual(order.paid_at, paid_at)
        self.assertEqual(order.created_at, FIXED_NOW)

    def test_currency_falls_back_to_setting(self):
        with self.settings(LUNCH_ORDERS_CURRENCY="aud"):
            order = build_order(_pending([make_meal()]), {"id": "cs_x", "amount_total": None}, ["x-001"], now=FIXED_NOW)
        self.assertEqual(order.currency, "aud")
        self.assertEqual(order.payment_amount, Decimal("0.00"))

    def test_user_summary(self):
        order = build_order(_pending([make_meal()]), {"id": "cs_x", "amount_total": 1500}, [f"{ORDER_ID}-001"], now=FIXED_NOW)
        summary = build_user_summary(order)
        self.assertEqual(
            summary,
            {
                "order_id": ORDER_ID,
                "meal_ids": [f"{ORDER_ID}-001"],
                "total_paid": "27.00",
                "item_count": 1,
                "ordered_on": FIXED_NOW.isoformat(),
            },
        )
