"""
lunch_orders.finalizer

Turns a paid Stripe Checkout Session into permanent records.

Flow (checkout.session.completed, payment_status == "paid"):
  1) lock + read the PendingOrder for the session id (zero rows -> fatal)
  2) expand it: Order + one MealRecord per meal + the customer's order summary
  3) commit everything in ONE transaction and delete the PendingOrder
  4) after commit: best-effort confirmation email

Redelivery of an already-finalized event fails at step 1 because the
PendingOrder is gone. Two deliveries racing each other collide on
ProcessedCheckoutSession (same transaction), so only one can commit.

========= CHANGE LOG =========
2026-09-08 • ADD: OrderFinalizer + pure expansion helpers.
2026-09-10 • ADD: ProcessedCheckoutSession written inside the commit (race guard).
2026-09-15 • ADD: FinalizerContext so the view/tests pass clock + notifier explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from lunch_orders.emailing import notify_order_confirmed
from lunch_orders.exceptions import FinalizationError, InvalidPendingOrder, PendingOrderNotFound
from lunch_orders.models import (
    CustomerAccount,
    MealRecord,
    MealStatus,
    Order,
    OrderStatus,
    PendingOrder,
    ProcessedCheckoutSession,
)
from lunch_orders.order_ids import meal_id_for
from lunch_orders.pending import find_pending_order

log = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
PAID = "paid"

_CENT = Decimal("0.01")

__all__ = [
    "CHECKOUT_COMPLETED",
    "FinalizationError",
    "FinalizeResult",
    "FinalizerContext",
    "InvalidPendingOrder",
    "OrderFinalizer",
    "PendingOrderNotFound",
    "build_meal_records",
    "build_order",
    "build_user_summary",
    "minor_to_major",
    "to_amount",
]


# -----------------------------------------------------------------------------
# Context + result
# -----------------------------------------------------------------------------


@dataclass
class FinalizerContext:
    """
    Everything the finalizer needs from the outside world.

    Built once per request from settings; tests construct it directly.
    `now` stamps paid_at and created_at on the new records (updated_at stays
    the database write time). `notifier=None` skips the confirmation.
    """

    webhook_secret: str = ""
    signature_tolerance: int = 300
    now: Callable[[], datetime] = timezone.now
    notifier: Optional[Callable[[Order, List[MealRecord]], Any]] = notify_order_confirmed

    @classmethod
    def from_settings(cls) -> "FinalizerContext":
        return cls(
            webhook_secret=(getattr(settings, "STRIPE_WEBHOOK_SECRET", "") or "").strip(),
            signature_tolerance=int(getattr(settings, "STRIPE_WEBHOOK_TOLERANCE", 300) or 300),
        )


@dataclass
class FinalizeResult:
    session_id: str
    finalized: bool
    reason: str = ""
    order_id: Optional[str] = None
    meal_ids: List[str] = field(default_factory=list)
    notified: Optional[bool] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "finalized": self.finalized,
            "reason": self.reason,
            "order_id": self.order_id,
            "meal_count": len(self.meal_ids),
            "notified": self.notified,
        }


# -----------------------------------------------------------------------------
# Expansion (pure: no DB access)
# -----------------------------------------------------------------------------


def to_amount(value: Any) -> Decimal:
    """Parse a money value into a 2dp Decimal; anything unparsable is 0.00."""
    if value is None or isinstance(value, bool):
        return Decimal("0.00")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0.00")
    if not amount.is_finite():
        return Decimal("0.00")
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def minor_to_major(amount: Optional[int]) -> Decimal:
    """Stripe amounts are in the smallest currency unit: 2599 -> Decimal('25.99')."""
    return (Decimal(int(amount or 0)) / 100).quantize(_CENT)


def _parse_delivery_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value or "").strip()
    if not raw:
        return None
    try:
        parsed = parse_date(raw)
        if parsed is None:
            dt = parse_datetime(raw.replace("Z", "+00:00"))
            parsed = dt.date() if dt else None
    except ValueError:
        return None
    return parsed


def _choice(value: Any) -> Tuple[Optional[str], Optional[str]]:
    if not isinstance(value, Mapping):
        return None, None
    return (value.get("id") or None), (value.get("display") or None)


def _blank_to_none(value: Any) -> Optional[str]:
    s = "" if value is None else str(value).strip()
    return s or None


def build_meal_records(pending: PendingOrder, *, now: datetime) -> List[MealRecord]:
    """
    One unsaved MealRecord per meal, in the pending order's original order.

    Required per meal: main, child, school, delivery date. Everything else
    falls back to a default.
    """
    meals = pending.meals
    if not isinstance(meals, list):
        raise InvalidPendingOrder(pending.order_id, "meals is not a list")

    records: List[MealRecord] = []
    for index, meal in enumerate(meals, start=1):
        if not isinstance(meal, Mapping):
            raise InvalidPendingOrder(pending.order_id, f"meal {index} is not an object")

        main = meal.get("main")
        child = meal.get("child")
        school = meal.get("school")
        if not (isinstance(main, Mapping) and isinstance(child, Mapping) and isinstance(school, Mapping)):
            log.error(
                "Invalid meal data order_id=%s index=%s keys=%s",
                pending.order_id,
                index,
                sorted(meal.keys()),
            )
            raise InvalidPendingOrder(pending.order_id, f"meal {index} is missing main/child/school")

        delivery_date = _parse_delivery_date(meal.get("delivery_date") or meal.get("order_date"))
        if delivery_date is None:
            raise InvalidPendingOrder(pending.order_id, f"meal {index} has no usable delivery date")

        fruit_id, fruit_name = _choice(meal.get("fruit"))
        side_id, side_name = _choice(meal.get("side") or meal.get("probiotic"))

        add_ons = []
        raw_add_ons = meal.get("add_ons")
        for add_on in raw_add_ons if isinstance(raw_add_ons, list) else []:
            if isinstance(add_on, Mapping):
                add_ons.append({"id": add_on.get("id") or "", "display": add_on.get("display") or ""})

        records.append(
            MealRecord(
                meal_id=meal_id_for(pending.order_id, index),
                order_id=pending.order_id,
                user_id=pending.user_id,
                delivery_date=delivery_date,
                school_id=str(school.get("id") or ""),
                school_name=str(school.get("name") or ""),
                school_address=str(school.get("address") or ""),
                child_id=str(child.get("id") or ""),
                child_name=str(child.get("name") or ""),
                allergens=str(child.get("allergens") or ""),
                is_teacher=bool(child.get("is_teacher", False)),
                year=_blank_to_none(child.get("year")),
                class_name=_blank_to_none(child.get("class_name")),
                main_id=str(main.get("id") or ""),
                main_name=str(main.get("display") or ""),
                add_ons=add_ons,
                fruit_id=fruit_id,
                fruit_name=fruit_name,
                side_id=side_id,
                side_name=side_name,
                status=MealStatus.ORDERED,
                total_amount=to_amount(meal.get("total")),
                ordered_on=pending.created_at,
                created_at=now,
            )
        )
    return records


def build_order(
    pending: PendingOrder,
    session: Mapping[str, Any],
    meal_ids: List[str],
    *,
    now: datetime,
) -> Order:
    return Order(
        order_id=pending.order_id,
        user_id=pending.user_id,
        user_email=pending.user_email,
        meal_ids=list(meal_ids),
        item_count=len(meal_ids),
        subtotal=to_amount(pending.subtotal),
        total_amount=to_amount(pending.final_total),
        applied_coupon=pending.applied_coupon or None,
        stripe_session_id=str(session.get("id") or pending.session_id),
        paid_at=now,
        payment_amount=minor_to_major(session.get("amount_total")),
        currency=str(session.get("currency") or getattr(settings, "LUNCH_ORDERS_CURRENCY", "") or ""),
        status=OrderStatus.PAID,
        created_at=pending.created_at,
    )


def build_user_summary(order: Order) -> Dict[str, Any]:
    """JSON-safe summary appended to CustomerAccount.order_summaries."""
    return {
        "order_id": order.order_id,
        "meal_ids": list(order.meal_ids),
        "total_paid": str(to_amount(order.total_amount)),
        "item_count": order.item_count,
        "ordered_on": order.created_at.isoformat() if order.created_at else None,
    }


# -----------------------------------------------------------------------------
# Finalizer
# -----------------------------------------------------------------------------


class OrderFinalizer:
    def __init__(self, context: Optional[FinalizerContext] = None):
        self.context = context or FinalizerContext.from_settings()

    def finalize(self, session: Mapping[str, Any], *, event_id: str = "") -> FinalizeResult:
        """
        Finalize one validated checkout session payload.

        Returns a not-finalized result when the payment is not settled yet.
        Raises FinalizationError (or a DB error) when nothing was committed.
        """
        session_id = str(session.get("id") or "")
        payment_status = str(session.get("payment_status") or "")

        log.info(
            "Processing payment success session_id=%s payment_status=%s amount_total=%s",
            session_id,
            payment_status,
            session.get("amount_total"),
        )

        if payment_status != PAID:
            log.warning("Payment not completed session_id=%s status=%s", session_id, payment_status)
            return FinalizeResult(session_id=session_id, finalized=False, reason="not_paid")

        order, meals = self._commit(session, session_id=session_id, event_id=event_id)

        log.info(
            "Order processing completed order_id=%s user_id=%s meals=%s amount=%s",
            order.order_id,
            order.user_id,
            len(meals),
            order.payment_amount,
        )

        notified = self._notify(order, meals)
        return FinalizeResult(
            session_id=session_id,
            finalized=True,
            reason="finalized",
            order_id=order.order_id,
            meal_ids=list(order.meal_ids),
            notified=notified,
        )

    def _commit(
        self,
        session: Mapping[str, Any],
        *,
        session_id: str,
        event_id: str,
    ) -> Tuple[Order, List[MealRecord]]:
        with transaction.atomic():
            try:
                pending = find_pending_order(session_id, for_update=True)
            except PendingOrderNotFound:
                prior = ProcessedCheckoutSession.objects.filter(pk=session_id).first()
                if prior is not None:
                    log.warning(
                        "Session already finalized session_id=%s order_id=%s",
                        session_id,
                        prior.order_id,
                    )
                else:
                    log.error("No pending order found for session session_id=%s", session_id)
                raise

            log.info(
                "Found pending order order_id=%s user_id=%s meals=%s",
                pending.order_id,
                pending.user_id,
                pending.item_count,
            )

            now = self.context.now()
            meals = build_meal_records(pending, now=now)
            order = build_order(pending, session, [m.meal_id for m in meals], now=now)

            order.save(force_insert=True)
            ProcessedCheckoutSession.objects.create(
                session_id=session_id,
                order=order,
                stripe_event_id=event_id or "",
                processed_at=now,
            )

            account, _ = CustomerAccount.objects.select_for_update().get_or_create(
                user_id=pending.user_id,
                defaults={"email": pending.user_email},
            )
            if account.append_order_summary(build_user_summary(order)):
                if not account.email:
                    account.email = pending.user_email
                account.save()

            MealRecord.objects.bulk_create(meals)
            pending.delete()

        return order, meals

    def _notify(self, order: Order, meals: Iterable[MealRecord]) -> Optional[bool]:
        notifier = self.context.notifier
        if notifier is None:
            return None
        try:
            return bool(notifier(order, list(meals)))
        except Exception:
            log.exception("Order confirmation notifier raised order_id=%s", order.order_id)
            return False
