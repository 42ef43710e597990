"""
lunch_orders.order_ids

Order / meal identifier utilities.

Format:
  ORD-YYYYMMDD-XXXXXXXXX      (order id, UTC calendar date + 9-char suffix)
  ORD-YYYYMMDD-XXXXXXXXX-001  (meal id, 3-digit position inside the order)

Suffix characters come from an unambiguous alphabet:
  23456789ABCDEFGHJKLMNPQRSTUVWXYZ
(omits: 0,1,I,O)

========= CHANGE LOG =========
2026-09-02 • ADD: Order id generator with uniqueness loop (caller supplies exists()).
2026-09-04 • ADD: meal_id_for() so meal ids are derived, never random.
"""

from __future__ import annotations

import re
import secrets
from datetime import datetime, timezone as dt_timezone
from typing import Callable, Optional

ALPHABET: str = "23456789ABCDEFGHJKLMNPQRSTUVWXYZ"
PREFIX: str = "ORD"
SUFFIX_LEN: int = 9

_ORDER_ID_RE = re.compile(rf"^{PREFIX}-\d{{8}}-[{ALPHABET}]{{{SUFFIX_LEN}}}$")


def generate_order_id(*, now: Optional[datetime] = None) -> str:
    """
    Generate a single order id.

    Example:
      ORD-20261018-7K4Q9R6G2
    """
    when = now or datetime.now(dt_timezone.utc)
    if when.tzinfo is not None:
        when = when.astimezone(dt_timezone.utc)

    suffix = "".join(secrets.choice(ALPHABET) for _ in range(SUFFIX_LEN))
    return f"{PREFIX}-{when:%Y%m%d}-{suffix}"


def generate_unique_order_id(
    *,
    exists: Callable[[str], bool],
    now: Optional[datetime] = None,
    max_tries: int = 25,
) -> str:
    """
    Generate an order id that `exists(order_id)` reports as unused.

    Typical callback:
      lambda oid: Order.objects.filter(pk=oid).exists()
    """
    if max_tries < 1:
        max_tries = 1

    last: Optional[str] = None
    for _ in range(max_tries):
        candidate = generate_order_id(now=now)
        last = candidate
        if not exists(candidate):
            return candidate

    raise RuntimeError(f"Unable to generate unique order id after {max_tries} tries. Last={last}")


def is_valid_order_id(value: str) -> bool:
    return bool(_ORDER_ID_RE.match((value or "").strip()))


def meal_id_for(order_id: str, index: int) -> str:
    """Meal ids are positional: the first meal of an order is index 1 -> '-001'."""
    if index < 1:
        raise ValueError("meal index starts at 1")
    return f"{order_id}-{index:03d}"
