"""
Django management command to write the TRF document the pairing engine would
receive for a round. Useful for reproducing engine failures by hand.
"""

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from swisstour.tournament.models import Tournament
from swisstour.tournament.pairinggen import build_trf_input


class Command(BaseCommand):
    help = "Export the TRF input for pairing a round (assigns missing pairing numbers)"

    def add_arguments(self, parser):
        parser.add_argument("tournament_id", type=int)
        parser.add_argument(
            "--round",
            type=int,
            dest="round_number",
            help="Round to be paired (default: the round after the latest one)",
        )
        parser.add_argument(
            "--output",
            type=str,
            help="Write to this file instead of standard output",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        try:
            tournament = Tournament.objects.get(pk=options["tournament_id"])
        except Tournament.DoesNotExist:
            raise CommandError(f"Tournament {options['tournament_id']} not found")

        round_number = options["round_number"] or tournament.latest_round_number() + 1
        if round_number < 1:
            raise CommandError("Round number must be at least 1")

        content = build_trf_input(tournament, round_number)

        if options["output"]:
            with open(options["output"], "w", encoding="utf-8") as f:
                f.write(content)
            self.stdout.write(
                self.style.SUCCESS(f"Wrote TRF for round {round_number} to {options['output']}")
            )
        else:
            self.stdout.write(content, ending="")
