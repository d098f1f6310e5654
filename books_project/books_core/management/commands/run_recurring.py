from django.core.management.base import BaseCommand, CommandError

from ...schedule import to_day
from ...services.generation import FAILED, SUCCESS, run_once


class Command(BaseCommand):
    help = "Generates every recurring invoice and expense due on the given date."

    # Define command-line argument
    def add_arguments(self, parser):
        parser.add_argument(
            "--date",  # Define flag
            type=str,
            default=None,
            help="Reference date as YYYY-MM-DD (default: today)",
        )

    def handle(self, *args, **options):
        reference_date = None
        if options["date"]:
            try:
                reference_date = to_day(options["date"])
            except ValueError as exc:
                raise CommandError(f"Invalid --date: {exc}")

        report = run_once(reference_date=reference_date)

        for result in report.results:
            line = (
                f"{result.kind} schedule {result.schedule_id}: {result.outcome}"
                + (f" {result.document_number}" if result.document_number else "")
                + (f" ({result.detail})" if result.detail else "")
                + (f" email {result.notification}" if result.notification else "")
            )
            if result.outcome == SUCCESS:
                self.stdout.write(self.style.SUCCESS(line))
            elif result.outcome == FAILED:
                self.stdout.write(self.style.ERROR(line))
            else:
                self.stdout.write(self.style.NOTICE(line))

        self.stdout.write(f"Processed {report.processed_count} schedule(s).")
