from django.core.management.base import BaseCommand, CommandError
from django.db import DEFAULT_DB_ALIAS

from petledger.exceptions import MigrationError
from petledger.models import Generation
from petledger.sequencer import MigrationSequencer


class Command(BaseCommand):
    help = (
        "Move pet ownership data to the next schema generation. "
        "Run 'copy', check with 'verify', then 'cutover'."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "step",
            choices=["status", "copy", "verify", "cutover", "advance"],
            help="Migration step to run",
        )
        parser.add_argument(
            "--target",
            choices=[g.value for g in Generation],
            help="Generation the step must lead to; refuses to run otherwise",
        )
        parser.add_argument("--database", default=DEFAULT_DB_ALIAS)
        parser.add_argument("--batch-size", type=int, default=None)

    def handle(self, *args, **options):
        sequencer = MigrationSequencer(using=options["database"], batch_size=options["batch_size"])
        step = options["step"]
        target = options["target"]

        try:
            if step == "status":
                self._print_status(sequencer)
            elif step == "copy":
                copied = sequencer.copy(target)
                self.stdout.write(self.style.SUCCESS(f"Copied {copied} rows"))
            elif step == "verify":
                problems = sequencer.verify(target)
                if problems:
                    for problem in problems:
                        self.stdout.write(self.style.ERROR(problem))
                    raise CommandError(f"{len(problems)} discrepancies found")
                self.stdout.write(self.style.SUCCESS("Copy is consistent with its source"))
            elif step == "cutover":
                reached = sequencer.cutover(target)
                self.stdout.write(self.style.SUCCESS(f"Now at {reached}"))
            else:
                reached = sequencer.advance()
                self.stdout.write(self.style.SUCCESS(f"Now at {reached}"))
        except MigrationError as e:
            raise CommandError(str(e)) from e

    def _print_status(self, sequencer: MigrationSequencer):
        self.stdout.write(f"Current generation: {sequencer.current_state()}")
        for row in sequencer.status():
            marker = "*" if row["next"] else " "
            self.stdout.write(
                f"{marker} {row['transition']}: {row['status']} "
                f"({row['copied_rows']} rows copied; deprecates {row['deprecates']})"
            )
            if row["last_error"]:
                self.stdout.write(self.style.ERROR(f"    {row['last_error']}"))
