# orders_core/management/commands/check_order_consistency.py

from django.core.management.base import BaseCommand, CommandError

from orders_core.workflows.consistency_scanner import scan_inconsistent_orders
from orders_core.workflows.executor import repair_order


class Command(BaseCommand):
    help = "Report orders whose status disagrees with their sample collection data"

    def add_arguments(self, parser):
        parser.add_argument(
            "--repair",
            action="store_true",
            help="Move each inconsistent order to the recommended status",
        )
        parser.add_argument(
            "--fail-on-inconsistent",
            action="store_true",
            help="Exit with an error when inconsistent orders are found (and not repaired)",
        )

    def handle(self, *args, **options):
        reports = scan_inconsistent_orders(actor="manage.py")

        if not reports:
            self.stdout.write(self.style.SUCCESS("All orders are consistent."))
            return

        for r in reports:
            self.stdout.write(
                f"[INCONSISTENT] order={r.order_id} status='{r.current_status}' "
                f"→ '{r.recommended_status}': {r.issue}"
            )

        if options["repair"]:
            repaired = 0
            for r in reports:
                outcome = repair_order(r.order_id, actor="manage.py")
                if outcome and outcome.changed:
                    repaired += 1
                elif not outcome:
                    self.stderr.write(f"[SKIPPED] order={r.order_id}: {outcome.error.message}")
            self.stdout.write(self.style.SUCCESS(f"Repaired {repaired} of {len(reports)} order(s)."))
            return

        if options["fail_on_inconsistent"]:
            raise CommandError(f"{len(reports)} inconsistent order(s) found.")
