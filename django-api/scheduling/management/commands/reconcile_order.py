from django.core.management.base import BaseCommand, CommandError

from scheduling.services.scheduler import default_scheduler


class Command(BaseCommand):
    help = "Reconcile one PAID order into bookings and events"

    def add_arguments(self, parser):
        parser.add_argument("order_id")

    def handle(self, *args, **options):
        outcome = default_scheduler().reconcile_order(options["order_id"])
        result = outcome.value

        if result is not None:
            for rejected in result.rejected:
                self.stdout.write(
                    self.style.WARNING(
                        f"Item {rejected.order_item_id} not admitted to event "
                        f"{rejected.event_id}: {rejected.reason}"
                    )
                )
        if not outcome.ok and result is None:
            raise CommandError(outcome.error.message)

        self.stdout.write(
            self.style.SUCCESS(
                f"{result.bookings_created} bookings created, "
                f"{result.events_created} events created, "
                f"{result.events_linked} events linked"
            )
        )
