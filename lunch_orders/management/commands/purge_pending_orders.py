# -*- coding: utf-8 -*-
"""
CHANGE LOG
- 2026-09-09: Initial creation of management command `purge_pending_orders`.
  Single-shot entry point for the scheduler (cron / PA scheduled task).
  Deletes one bounded batch per run; --until-empty keeps going.
"""

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError, CommandParser

from lunch_orders.pending import DEFAULT_PURGE_BATCH, purge_expired_pending_orders


class Command(BaseCommand):
    help = "Deletes expired pending orders (abandoned checkouts) in bounded batches."

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "--batch-size",
            type=int,
            default=DEFAULT_PURGE_BATCH,
            help=f"Max pending orders deleted per batch (default: {DEFAULT_PURGE_BATCH}).",
        )
        parser.add_argument(
            "--until-empty",
            action="store_true",
            help="Repeat batches until no expired pending orders remain.",
        )

    def handle(self, *args, **opts) -> None:
        batch_size: int = int(opts.get("batch_size") or DEFAULT_PURGE_BATCH)
        until_empty: bool = bool(opts.get("until_empty") or False)
        if batch_size < 1:
            raise CommandError("--batch-size must be at least 1")

        total = 0
        batches = 0
        while True:
            deleted = purge_expired_pending_orders(batch_size=batch_size)
            total += deleted
            batches += 1
            if not until_empty or deleted < batch_size:
                break

        self.stdout.write(self.style.SUCCESS(f"[purge] deleted={total} batches={batches}"))
