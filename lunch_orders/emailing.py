"""
lunch_orders.emailing

Order confirmation email (sent after the finalizer committed).

LOCKED INTENT
- Email is NOT part of financial correctness. The order is already committed
  when we get here; notify_order_confirmed() never raises.
- send_order_confirmation_email() does raise, so callers that want hard
  failure (admin resend, tests) get it.

ENV/SETTINGS
- Uses Django email backend config (Anymail provider via email_config.py)
- Uses DEFAULT_FROM_EMAIL
- LUNCH_ORDERS_BRAND_NAME / LUNCH_ORDERS_SUPPORT_EMAIL / LUNCH_ORDERS_TIMEZONE

========= CHANGE LOG =========
2026-09-12 • ADD: send_order_confirmation_email() using EmailMultiAlternatives (text + HTML).
2026-09-12 • ADD: notify_order_confirmed() best-effort wrapper + EmailLog.
2026-09-20 • CHANGE: meal lines show "Side / Fruit" the way the storefront does.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils import timezone
from django.utils.html import escape

from lunch_orders.models import EmailLog, MealRecord, Order

log = logging.getLogger(__name__)


def _from_email() -> str:
    return (
        getattr(settings, "DEFAULT_FROM_EMAIL", "")
        or getattr(settings, "SERVER_EMAIL", "")
        or "no-reply@localhost"
    )


def _brand_name() -> str:
    return getattr(settings, "LUNCH_ORDERS_BRAND_NAME", "") or "Bento & Friends"


def _support_email() -> str:
    return getattr(settings, "LUNCH_ORDERS_SUPPORT_EMAIL", "") or ""


def _local_tz() -> ZoneInfo:
    return ZoneInfo(getattr(settings, "LUNCH_ORDERS_TIMEZONE", "") or "Australia/Perth")


def format_delivery_date(value: date) -> str:
    """Monday, 20 October 2025"""
    return f"{value:%A}, {value.day} {value:%B %Y}"


def summarize_meals(meals: Iterable[MealRecord]) -> List[Dict[str, Any]]:
    """Flatten MealRecords into the shape the email renders (one dict per meal)."""
    lines = []
    for meal in meals:
        add_on_names = [
            (a or {}).get("display") or ""
            for a in (meal.add_ons or [])
        ]
        lines.append(
            {
                "name": meal.main_name,
                "add_ons": ", ".join(n for n in add_on_names if n),
                "fruit": meal.fruit_name,
                "side": meal.side_name,
                "delivery_date": format_delivery_date(meal.delivery_date),
                "school_name": meal.school_name,
                "child_name": meal.child_name,
            }
        )
    return lines


def _render_text(order: Order, lines: List[Dict[str, Any]], ordered_on: str) -> str:
    brand = _brand_name()
    support = _support_email()

    text_lines = [
        "Hi there,",
        "",
        "Thank you for your order! Your meals are confirmed.",
        "",
        f"Order number: #{order.order_id}",
        f"Ordered on: {ordered_on}",
        f"Meals: {len(lines)}",
        f"Total: ${order.total_amount:.2f}",
        "",
    ]
    for line in lines:
        text_lines += [
            f"- {line['name']} for {line['child_name']}",
            f"  Delivered on: {line['delivery_date']} ({line['school_name']})",
        ]
        if line["add_ons"]:
            text_lines.append(f"  Add ons: {line['add_ons']}")
        if line["side"] or line["fruit"]:
            text_lines.append(f"  Side / Fruit: {line['side'] or ''} / {line['fruit'] or ''}")
    text_lines += [
        "",
        "Your meals will be prepared and delivered fresh to the school on the scheduled date.",
    ]
    if support:
        text_lines += ["", f"Questions? Contact: {support}"]
    text_lines += ["", f"— {brand}"]
    return "\n".join(text_lines)


def _render_html(order: Order, lines: List[Dict[str, Any]], ordered_on: str) -> str:
    brand = escape(_brand_name())
    support = _support_email()

    cards = []
    for line in lines:
        extras = ""
        if line["add_ons"]:
            extras += f"<p>Add ons: {escape(line['add_ons'])}</p>"
        if line["side"] or line["fruit"]:
            extras += f"<p>Side / Fruit: {escape(line['side'] or '')} / {escape(line['fruit'] or '')}</p>"
        cards.append(
            f"""
      <div style="border: 1px solid #eee; border-radius: 8px; padding: 12px; margin-bottom: 12px;">
        <h3 style="margin: 0 0 8px;">{escape(line['name'])}</h3>
        {extras}
        <p>For: {escape(line['child_name'])}</p>
        <p>Delivered on: {escape(line['delivery_date'])} ({escape(line['school_name'])})</p>
      </div>"""
        )

    return f"""
<!doctype html>
<html>
  <body style="font-family: Arial, sans-serif; line-height: 1.5;">
    <h1>Order Confirmed!</h1>
    <p>Thank you for your order! We're excited to prepare these meals for your family.</p>

    <p><strong>Order number:</strong> #{escape(order.order_id)}<br>
       <strong>Ordered on:</strong> {escape(ordered_on)}<br>
       <strong>Meals:</strong> {len(lines)}<br>
       <strong>Total:</strong> ${order.total_amount:.2f}</p>

    {"".join(cards)}

    <p>Your meals will be prepared and delivered fresh to the school on the scheduled date.</p>
    {"<p>Questions? Contact: " + escape(support) + "</p>" if support else ""}
    <p>— {brand}</p>
  </body>
</html>
""".strip()


def send_order_confirmation_email(*, order: Order, meals: Iterable[MealRecord]) -> str:
    """
    Send the confirmation email for a finalized order.

    Returns the provider message id when the backend reports one (Anymail),
    else "". Raises on failure.
    """
    to_email = (order.user_email or "").strip()
    if not to_email:
        raise ValueError("order has no email address")

    lines = summarize_meals(meals)
    ordered_on = format_delivery_date(timezone.localtime(order.created_at, _local_tz()).date())

    msg = EmailMultiAlternatives(
        subject=f"Order Confirmation: {order.order_id}",
        body=_render_text(order, lines, ordered_on),
        from_email=_from_email(),
        to=[to_email],
    )
    msg.attach_alternative(_render_html(order, lines, ordered_on), "text/html")
    msg.send(fail_silently=False)

    status = getattr(msg, "anymail_status", None)
    return (getattr(status, "message_id", None) or "") if status is not None else ""


def notify_order_confirmed(order: Order, meals: Iterable[MealRecord]) -> bool:
    """
    Best-effort confirmation. Logs + records failures, never raises.
    """
    meals = list(meals)
    entry: Optional[EmailLog] = None
    try:
        entry = EmailLog.objects.create(
            order=order,
            to_email=order.user_email,
            subject=f"Order Confirmation: {order.order_id}",
            email_type=EmailLog.TYPE_ORDER_CONFIRMATION,
            provider=str(getattr(settings, "LUNCH_EMAIL_PROVIDER", "") or ""),
        )
        message_id = send_order_confirmation_email(order=order, meals=meals)
        entry.mark_sent(provider_message_id=str(message_id or ""))
        log.info("Order confirmation email sent order_id=%s meals=%s", order.order_id, len(meals))
        return True
    except Exception as e:
        log.exception("Order confirmation email failed order_id=%s", order.order_id)
        if entry is not None:
            try:
                entry.mark_failed(str(e))
            except Exception:
                log.exception("Could not record email failure order_id=%s", order.order_id)
        return False
