from django.core.management.base import BaseCommand

from scheduling.services.scheduler import default_scheduler


class Command(BaseCommand):
    help = "Rebuild missing bookings and events for every PAID order"

    def add_arguments(self, parser):
        parser.add_argument(
            "--verify",
            action="store_true",
            help="Only report items missing a booking or an event link; change nothing",
        )

    def handle(self, *args, **options):
        if options["verify"]:
            self._verify()
            return

        summary = default_scheduler().repair_all_paid_orders()

        for error in summary.errors:
            self.stdout.write(self.style.WARNING(f"Order {error.order_id}: {error.reason}"))

        self.stdout.write(
            f"Processed {summary.processed} orders: "
            f"{summary.bookings_created} bookings created, "
            f"{summary.events_created} events created, "
            f"{summary.events_linked} events linked"
        )
        style = self.style.WARNING if summary.errors else self.style.SUCCESS
        self.stdout.write(style(f"{len(summary.errors)} errors"))

    def _verify(self):
        report = default_scheduler().verify_paid_orders()

        for finding in report.findings:
            self.stdout.write(
                self.style.WARNING(
                    f"Order {finding.order_id} item {finding.order_item_id}: "
                    f"{finding.issue.value}"
                )
            )

        style = self.style.WARNING if report.findings else self.style.SUCCESS
        self.stdout.write(
            style(f"Checked {report.orders_checked} paid orders: {len(report.findings)} issues")
        )
