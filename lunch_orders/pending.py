"""
lunch_orders.pending

Pending Order Store operations.

- create_pending_order(): called by checkout once Stripe returned a session id
- find_pending_order(): the finalizer's lookup (zero matches is fatal)
- purge_expired_pending_orders(): called by the sweep, bounded batches

CHANGE LOG
- 2026-09-05: ADD create/find.
- 2026-09-09: ADD purge_expired_pending_orders() (batch of 500, oldest first).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from lunch_orders.exceptions import PendingOrderNotFound
from lunch_orders.models import Order, PendingOrder
from lunch_orders.order_ids import generate_unique_order_id
from lunch_orders.serializers import AppliedCouponSerializer, PendingCartSerializer

log = logging.getLogger(__name__)

DEFAULT_PURGE_BATCH = 500


def _pending_ttl() -> timedelta:
    return timedelta(days=int(getattr(settings, "LUNCH_ORDERS_PENDING_TTL_DAYS", 7)))


def _order_id_taken(order_id: str) -> bool:
    return (
        Order.objects.filter(pk=order_id).exists()
        or PendingOrder.objects.filter(order_id=order_id).exists()
    )


def create_pending_order(
    *,
    session_id: str,
    user_id: str,
    user_email: str,
    cart: Mapping[str, Any],
    applied_coupon: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> PendingOrder:
    """
    Validate a checkout cart and store it against the Stripe session id.

    Raises rest_framework.exceptions.ValidationError before any write when the
    cart (or coupon) does not match the expected shape.
    """
    session_id = (session_id or "").strip()
    user_id = (user_id or "").strip()
    user_email = (user_email or "").strip()

    errors: Dict[str, Any] = {}
    if not session_id:
        errors["session_id"] = ["This field is required."]
    if not user_id:
        errors["user_id"] = ["This field is required."]
    if not user_email or "@" not in user_email:
        errors["user_email"] = ["A valid email is required."]
    if errors:
        raise ValidationError(errors)

    if not isinstance(cart, Mapping):
        raise ValidationError({"cart": [f"Expected an object with meals and subtotal, got {type(cart).__name__}."]})

    payload = dict(cart)
    if applied_coupon is not None:
        payload["applied_coupon"] = applied_coupon

    ser = PendingCartSerializer(data=payload)
    ser.is_valid(raise_exception=True)
    cart_data = ser.data

    subtotal: Decimal = ser.validated_data["subtotal"]
    coupon = ser.validated_data.get("applied_coupon")
    discount = coupon["discount_amount"] if coupon else Decimal("0.00")
    final_total = max(subtotal - discount, Decimal("0.00"))

    created_at = now or timezone.now()
    order_id = generate_unique_order_id(exists=_order_id_taken, now=created_at)

    pending = PendingOrder.objects.create(
        session_id=session_id,
        order_id=order_id,
        user_id=user_id,
        user_email=user_email,
        meals=list(cart_data["meals"]),
        subtotal=subtotal,
        final_total=final_total,
        applied_coupon=(AppliedCouponSerializer(coupon).data if coupon else None),
        created_at=created_at,
        expires_at=created_at + _pending_ttl(),
    )

    log.info(
        "Pending order stored order_id=%s session_id=%s user_id=%s meals=%s final_total=%s",
        order_id,
        session_id,
        user_id,
        pending.item_count,
        final_total,
    )
    return pending


def find_pending_order(session_id: str, *, for_update: bool = False) -> PendingOrder:
    qs = PendingOrder.objects.all()
    if for_update:
        qs = qs.select_for_update()

    pending = qs.filter(pk=session_id).first()
    if pending is None:
        raise PendingOrderNotFound(session_id)
    return pending


def purge_expired_pending_orders(
    *,
    now: Optional[datetime] = None,
    batch_size: int = DEFAULT_PURGE_BATCH,
) -> int:
    """
    Delete up to `batch_size` expired PendingOrders. Returns the number deleted.
    """
    now = now or timezone.now()
    if batch_size < 1:
        batch_size = 1

    log.info("Starting cleanup of expired pending orders now=%s", now.isoformat())

    with transaction.atomic():
        keys = list(
            PendingOrder.objects.expired(now)
            .order_by("expires_at")
            .values_list("pk", flat=True)[:batch_size]
        )
        if not keys:
            log.info("No expired pending orders found to clean up")
            return 0

        deleted, _ = PendingOrder.objects.filter(pk__in=keys).delete()

    log.info("Expired pending order cleanup complete deleted=%s", deleted)
    if len(keys) >= batch_size:
        log.warning("Hit batch limit (%s); more expired pending orders may remain", batch_size)
    return deleted
