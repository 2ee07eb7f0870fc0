"""
Django management command to pair the next round of a tournament.
"""

from django.core.management.base import BaseCommand, CommandError

from swisstour.tournament.engine import PAIRING_SYSTEMS
from swisstour.tournament.exceptions import SwissTourError
from swisstour.tournament.pairinggen import generate_and_save_pairings, regenerate_round


class Command(BaseCommand):
    help = "Generate pairings for the next round using the external pairing engine"

    def add_arguments(self, parser):
        parser.add_argument("tournament_id", type=int, help="Tournament to pair")
        parser.add_argument(
            "--system",
            choices=PAIRING_SYSTEMS,
            default="dutch",
            help="Pairing system passed to the engine (default: dutch)",
        )
        parser.add_argument(
            "--regenerate",
            action="store_true",
            help="Pair the latest round again instead of creating a new one",
        )

    def handle(self, *args, **options):
        tournament_id = options["tournament_id"]
        system = options["system"]
        try:
            if options["regenerate"]:
                generated = regenerate_round(tournament_id, system)
            else:
                generated = generate_and_save_pairings(tournament_id, system)
        except SwissTourError as e:
            raise CommandError(str(e))

        self.stdout.write(
            self.style.SUCCESS(
                f"Round {generated.round_number}: {len(generated.games)} pairings"
            )
        )
        for game in generated.games:
            self.stdout.write(
                f"  Board {game.board_number:>3}: {game.white} - {game.black}"
            )
