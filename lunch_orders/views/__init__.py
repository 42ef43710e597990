"""
lunch_orders — views package

Only the Stripe webhook is exposed over HTTP; checkout and the sweep call the
pending order store directly.
"""

from .stripe_webhook import stripe_webhook

__all__ = ["stripe_webhook"]
