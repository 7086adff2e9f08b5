from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from scheduling.services.scheduler import default_scheduler


class Command(BaseCommand):
    help = "Expand a recurring template into events for one term"

    def add_arguments(self, parser):
        parser.add_argument("template_id")
        parser.add_argument(
            "--term",
            dest="term_id",
            help="Term ID. Defaults to the term a subscription bought today starts in.",
        )

    def handle(self, *args, **options):
        scheduler = default_scheduler()

        term_id = options["term_id"]
        if not term_id:
            resolved = scheduler.resolve_term(timezone.localdate())
            if not resolved.ok:
                raise CommandError(resolved.error.message)
            term_id = str(resolved.value.id)
            self.stdout.write(f"Using term {resolved.value.name}")

        outcome = scheduler.expand_template(options["template_id"], term_id)
        if not outcome.ok:
            raise CommandError(outcome.error.message)

        result = outcome.value
        for day in result.skipped:
            self.stdout.write(self.style.WARNING(f"Skipped closure date {day.isoformat()}"))
        self.stdout.write(
            self.style.SUCCESS(
                f"Created {len(result.created)} events, "
                f"{len(result.already_existing)} already existed"
            )
        )
