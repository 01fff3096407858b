# products/management/commands/sync_product_batches.py

from __future__ import annotations

from django.core.management.base import BaseCommand

from products.services.reconciliation import ACTION_SYNC_BATCH, reconcile_all_products


class Command(BaseCommand):
    help = "Reconcile cached product quantities with their stock batches."

    def add_arguments(self, parser):
        parser.add_argument(
            "--create-missing",
            action="store_true",
            help="Cover cached stock that has no batch with a SYNC batch instead of lowering the cached quantity.",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report drift without writing anything.",
        )

    def handle(self, *args, **options):
        create_missing = bool(options.get("create_missing"))
        dry_run = bool(options.get("dry_run"))

        results = reconcile_all_products(create_sync_batch=create_missing, dry_run=dry_run)
        drifted = [r for r in results if r.changed]

        prefix = "[dry-run] " if dry_run else ""
        for r in drifted:
            if r.action == ACTION_SYNC_BATCH:
                detail = f"batch {r.sync_batch_number} for {r.difference} units"
            else:
                detail = f"quantity {r.cached_quantity} -> {r.batch_quantity}"
            self.stdout.write(f"{prefix}{r.product_name}: {detail}")

        self.stdout.write(
            self.style.SUCCESS(
                f"{prefix}Checked {len(results)} products, {len(drifted)} out of sync."
            )
        )
