"""
CHANGE LOG
- 2026-09-05 — create_pending_order validation, totals and expiry.
- 2026-09-09 — purge_expired_pending_orders batches + management command.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase, override_settings
from rest_framework.exceptions import ValidationError

from lunch_orders.models import PendingOrder, PendingOrderStatus
from lunch_orders.order_ids import is_valid_order_id
from lunch_orders.pending import (
    PendingOrderNotFound,
    create_pending_order,
    find_pending_order,
    purge_expired_pending_orders,
)
from lunch_orders.tests.helpers import FIXED_NOW, make_cart, make_meal


def _create(session_id="cs_test_1", **kwargs):
    params = {
        "session_id": session_id,
        "user_id": "user_1",
        "user_email": "parent@example.com",
        "cart": make_cart(),
        "now": FIXED_NOW,
    }
    params.update(kwargs)
    return create_pending_order(**params)


class CreatePendingOrderTests(TestCase):
    def test_creates_with_order_id_and_expiry(self):
        pending = _create()

        self.assertEqual(pending.pk, "cs_test_1")
        self.assertTrue(is_valid_order_id(pending.order_id))
        self.assertTrue(pending.order_id.startswith("ORD-20251015-"))
        self.assertEqual(pending.status, PendingOrderStatus.PENDING)
        self.assertEqual(pending.created_at, FIXED_NOW)
        self.assertEqual(pending.expires_at, FIXED_NOW + timedelta(days=7))
        self.assertEqual(pending.item_count, 2)
        self.assertEqual(pending.final_total, Decimal("30.00"))
        self.assertIsNone(pending.applied_coupon)

        stored = PendingOrder.objects.get(pk="cs_test_1")
        meal = stored.meals[0]
        self.assertEqual(meal["delivery_date"], "2025-10-20")
        self.assertEqual(meal["main"]["id"], "main_teriyaki")
        self.assertEqual(meal["child"]["class_name"], "3B")

    def test_coupon_discount_applied(self):
        pending = _create(applied_coupon={"code": "BUNDLE10", "discount_amount": "3.00"})
        self.assertEqual(pending.subtotal, Decimal("30.00"))
        self.assertEqual(pending.final_total, Decimal("27.00"))
        self.assertEqual(pending.applied_coupon, {"code": "BUNDLE10", "discount_amount": "3.00"})

    def test_discount_never_goes_negative(self):
        pending = _create(applied_coupon={"code": "FREE", "discount_amount": "45.00"})
        self.assertEqual(pending.final_total, Decimal("0.00"))

    @override_settings(LUNCH_ORDERS_PENDING_TTL_DAYS=2)
    def test_ttl_setting(self):
        pending = _create()
        self.assertEqual(pending.expires_at, FIXED_NOW + timedelta(days=2))

    def test_legacy_meal_keys_are_normalized(self):
        meal = make_meal()
        meal["probiotic"] = meal.pop("side")
        meal["order_date"] = meal.pop("delivery_date")

        pending = _create(cart=make_cart([meal], subtotal="15.00"))

        stored = pending.meals[0]
        self.assertEqual(stored["side"]["id"], "side_yoghurt")
        self.assertEqual(stored["delivery_date"], "2025-10-20")
        self.assertNotIn("probiotic", stored)

    def test_invalid_cart_writes_nothing(self):
        bad = make_meal()
        del bad["school"]
        cases = {
            "empty meals": make_cart([]),
            "missing school": make_cart([bad]),
            "bad date": make_cart([make_meal(delivery_date="next tuesday")]),
            "no subtotal": {"meals": [make_meal()]},
            "string cart": "oops",
            "int cart": 42,
            "list cart": ["x"],
            "no cart": None,
        }
        for label, cart in cases.items():
            with self.subTest(label):
                with self.assertRaises(ValidationError):
                    _create(cart=cart)
        self.assertEqual(PendingOrder.objects.count(), 0)

    def test_non_object_cart_reports_cart_field(self):
        with self.assertRaises(ValidationError) as ctx:
            _create(cart="oops", applied_coupon={"code": "BUNDLE10", "discount_amount": "3.00"})
        self.assertIn("cart", ctx.exception.detail)

    def test_identity_fields_required(self):
        with self.assertRaises(ValidationError) as ctx:
            _create(session_id="", user_email="not-an-email")
        self.assertIn("session_id", ctx.exception.detail)
        self.assertIn("user_email", ctx.exception.detail)


class FindPendingOrderTests(TestCase):
    def test_found(self):
        created = _create()
        self.assertEqual(find_pending_order("cs_test_1").order_id, created.order_id)

    def test_missing_raises(self):
        with self.assertRaises(PendingOrderNotFound) as ctx:
            find_pending_order("cs_missing")
        self.assertEqual(ctx.exception.session_id, "cs_missing")
        self.assertIsInstance(ctx.exception, LookupError)


class PurgeExpiredPendingOrdersTests(TestCase):
    def _seed(self, count, *, expired, prefix):
        for i in range(count):
            created = FIXED_NOW - timedelta(days=10 if expired else 1, minutes=i)
            PendingOrder.objects.create(
                session_id=f"{prefix}_{i}",
                order_id=f"ORD-20251001-{prefix.upper()[:4]}{i:05d}",
                user_id="user_1",
                user_email="parent@example.com",
                meals=[make_meal()],
                subtotal=Decimal("15.00"),
                final_total=Decimal("15.00"),
                created_at=created,
                expires_at=created + timedelta(days=7),
            )

    def test_deletes_only_expired(self):
        self._seed(3, expired=True, prefix="old")
        self._seed(2, expired=False, prefix="new")

        deleted = purge_expired_pending_orders(now=FIXED_NOW)

        self.assertEqual(deleted, 3)
        self.assertEqual(
            sorted(PendingOrder.objects.values_list("session_id", flat=True)),
            ["new_0", "new_1"],
        )

    def test_batch_limit_oldest_first_and_warns(self):
        self._seed(3, expired=True, prefix="old")

        with self.assertLogs("lunch_orders.pending", level="WARNING") as logs:
            deleted = purge_expired_pending_orders(now=FIXED_NOW, batch_size=2)

        self.assertEqual(deleted, 2)
        # old_2 has the earliest expiry, old_0 the latest.
        self.assertEqual(list(PendingOrder.objects.values_list("session_id", flat=True)), ["old_0"])
        self.assertTrue(any("batch limit" in line for line in logs.output))

    def test_nothing_to_purge(self):
        self._seed(1, expired=False, prefix="new")
        self.assertEqual(purge_expired_pending_orders(now=FIXED_NOW), 0)
        self.assertEqual(PendingOrder.objects.count(), 1)

    def test_management_command_until_empty(self):
        self._seed(5, expired=True, prefix="old")
        out = StringIO()

        call_command("purge_pending_orders", "--batch-size", "2", "--until-empty", stdout=out)

        self.assertEqual(PendingOrder.objects.count(), 0)
        self.assertIn("deleted=5 batches=3", out.getvalue())
