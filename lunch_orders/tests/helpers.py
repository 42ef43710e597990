"""
Shared builders for lunch_orders tests (carts, pending orders, signed Stripe events).
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from datetime import datetime, timezone as dt_timezone
from typing import Any, Dict, List, Optional

TEST_WEBHOOK_SECRET = "whsec_test_secret"
WEBHOOK_URL = "/stripe/webhook/"

FIXED_NOW = datetime(2025, 10, 15, 2, 30, tzinfo=dt_timezone.utc)


def make_meal(
    *,
    main: str = "Teriyaki Chicken Bento",
    child: str = "Ava",
    school: str = "Riverside Primary",
    delivery_date: str = "2025-10-20",
    total: str = "15.00",
    **overrides: Any,
) -> Dict[str, Any]:
    meal: Dict[str, Any] = {
        "id": "cart-line-1",
        "main": {"id": "main_teriyaki", "display": main, "price": "12.00"},
        "add_ons": [{"id": "addon_juice", "display": "Apple Juice", "price": "3.00"}],
        "fruit": {"id": "fruit_apple", "display": "Apple Slices"},
        "side": {"id": "side_yoghurt", "display": "Greek Yoghurt"},
        "child": {
            "id": "child_ava",
            "name": child,
            "allergens": "peanuts",
            "is_teacher": False,
            "year": "3",
            "class_name": "3B",
        },
        "school": {"id": "school_riverside", "name": school, "address": "1 River Rd"},
        "delivery_date": delivery_date,
        "total": total,
    }
    meal.update(overrides)
    return meal


def make_cart(meals: Optional[List[Dict[str, Any]]] = None, subtotal: str = "30.00") -> Dict[str, Any]:
    if meals is None:
        meals = [
            make_meal(),
            make_meal(child="Leo", delivery_date="2025-10-21", main="Veggie Sushi Bento"),
        ]
    return {"meals": meals, "subtotal": subtotal}


def checkout_event(
    session_id: str,
    *,
    payment_status: str = "paid",
    amount_total: Optional[int] = 2700,
    event_type: str = "checkout.session.completed",
    event_id: str = "evt_test_1",
) -> Dict[str, Any]:
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "payment_status": payment_status,
                "amount_total": amount_total,
                "currency": "aud",
                "customer_email": "parent@example.com",
                "metadata": {},
            }
        },
    }


def sign_payload(payload: str, *, secret: str = TEST_WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Stripe-Signature header (v1 scheme) for `payload`."""
    ts = int(time.time()) if timestamp is None else timestamp
    digest = hmac.new(secret.encode("utf-8"), f"{ts}.{payload}".encode("utf-8"), hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def post_event(client, event: Dict[str, Any], *, secret: str = TEST_WEBHOOK_SECRET, signature: Optional[str] = None):
    body = json.dumps(event)
    header = signature if signature is not None else sign_payload(body, secret=secret)
    return client.post(
        WEBHOOK_URL,
        data=body,
        content_type="application/json",
        HTTP_STRIPE_SIGNATURE=header,
        secure=True,
    )
