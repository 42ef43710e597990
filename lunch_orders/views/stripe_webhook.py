"""
lunch_orders.views.stripe_webhook

Stripe webhook endpoint (order finalization).
Stripe is used only for: payment success -> PendingOrder becomes Order + meals + email.

LOCKED INTENT
- Signature is verified over the raw body before anything is parsed.
- Only the commit-critical path returns 5xx (so Stripe retries).
- Email happens after commit and can never change the response.

SETTINGS
- STRIPE_WEBHOOK_SECRET    (required) : Stripe webhook signing secret (whsec_...)
- STRIPE_WEBHOOK_TOLERANCE (optional) : max signature age in seconds (default 300)

======== CHANGE LOG ========
2026-09-08
- ADD: Stripe webhook receiver with signature verification + checkout.session.completed.
2026-09-15
- CHANGE: Verify with WebhookSignature.verify_header and parse the body ourselves
          (plain dicts into the serializers, no StripeObject conversion).
- ADD: Typed payload validation (400 on schema errors, before any DB work).
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import stripe
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from rest_framework.exceptions import ValidationError

from lunch_orders.finalizer import CHECKOUT_COMPLETED, FinalizerContext, OrderFinalizer
from lunch_orders.serializers import CheckoutSessionSerializer, StripeEventSerializer

log = logging.getLogger(__name__)

WEBHOOK_VER = "stripe-webhook.v2026-09-15"


def _json_response(
    ok: bool,
    data: Optional[Dict[str, Any]] = None,
    error: Optional[Dict[str, Any]] = None,
    status: int = 200,
) -> JsonResponse:
    return JsonResponse(
        {"ok": bool(ok), "ver": WEBHOOK_VER, "data": data or {}, "error": error or {}},
        status=status,
    )


def _safe_str(val: Any) -> str:
    try:
        return str(val)
    except Exception:
        return ""


def get_finalizer_context() -> FinalizerContext:
    return FinalizerContext.from_settings()


def _parse_event(payload: bytes) -> Dict[str, Any]:
    try:
        body = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValidationError({"body": [f"Invalid JSON payload: {e}"]})

    ser = StripeEventSerializer(data=body)
    ser.is_valid(raise_exception=True)
    return ser.validated_data


@csrf_exempt
def stripe_webhook(request: HttpRequest) -> JsonResponse:
    """
    Stripe webhook receiver (POST only).
    Verifies Stripe signature (required).
    """
    if request.method != "POST":
        log.warning("Stripe webhook received non-POST request method=%s", request.method)
        return _json_response(False, error={"code": "method_not_allowed", "message": "POST required."}, status=405)

    context = get_finalizer_context()
    if not context.webhook_secret:
        log.error("Stripe webhook misconfigured: STRIPE_WEBHOOK_SECRET is not set")
        return _json_response(False, error={"code": "misconfigured", "message": "Webhook not configured."}, status=500)

    payload = request.body  # raw bytes
    sig_header = request.META.get("HTTP_STRIPE_SIGNATURE", "")

    if not sig_header:
        log.error("Stripe webhook missing Stripe-Signature header")
        return _json_response(
            False,
            error={"code": "missing_signature", "message": "Missing Stripe-Signature header."},
            status=400,
        )

    try:
        stripe.WebhookSignature.verify_header(
            payload.decode("utf-8", errors="replace"),
            sig_header,
            context.webhook_secret,
            context.signature_tolerance,
        )
    except stripe.SignatureVerificationError as e:
        log.error("Stripe webhook signature verification failed: %s", _safe_str(e))
        return _json_response(False, error={"code": "bad_signature", "message": "Signature verification failed."}, status=400)

    try:
        event = _parse_event(payload)
    except ValidationError as e:
        log.error("Stripe webhook invalid payload: %s", _safe_str(e.detail))
        return _json_response(
            False,
            error={"code": "invalid_payload", "message": "Invalid event payload.", "detail": e.detail},
            status=400,
        )

    event_type = _safe_str(event.get("type"))
    event_id = _safe_str(event.get("id"))
    log.info("Stripe webhook received: type=%s id=%s", event_type, event_id)

    if event_type != CHECKOUT_COMPLETED:
        log.info("Unhandled event type: %s", event_type)
        return _json_response(True, data={"event": event_type, "ignored": True}, status=200)

    session_ser = CheckoutSessionSerializer(data=event["data"]["object"])
    if not session_ser.is_valid():
        log.error("Stripe webhook invalid checkout session: %s", _safe_str(session_ser.errors))
        return _json_response(
            False,
            error={"code": "invalid_payload", "message": "Invalid checkout session.", "detail": session_ser.errors},
            status=400,
        )

    try:
        result = OrderFinalizer(context).finalize(session_ser.validated_data, event_id=event_id)
    except Exception as e:
        log.exception("Error processing webhook event type=%s id=%s", event_type, event_id)
        return _json_response(
            False,
            error={"code": "handler_error", "message": _safe_str(e), "event": event_type},
            status=500,
        )

    return _json_response(True, data={"event": event_type, **result.as_dict()}, status=200)
