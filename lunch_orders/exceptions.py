"""
lunch_orders.exceptions

Errors raised on the commit-critical path of order finalization. The webhook
view turns any of these into a 500 so Stripe redelivers the event.
"""

from __future__ import annotations


class FinalizationError(Exception):
    """Base class for failures that must surface to the payment processor."""


class PendingOrderNotFound(FinalizationError, LookupError):
    """No PendingOrder exists for a Stripe session id."""

    def __init__(self, session_id: str):
        super().__init__(f"No pending order found for session {session_id}")
        self.session_id = session_id


class InvalidPendingOrder(FinalizationError, ValueError):
    """A stored PendingOrder cannot be expanded into meal records."""

    def __init__(self, order_id: str, message: str):
        super().__init__(f"Invalid pending order {order_id}: {message}")
        self.order_id = order_id
