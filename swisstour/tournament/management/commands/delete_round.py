"""
Django management command to delete a round that has no results yet.
"""

from django.core.management.base import BaseCommand, CommandError

from swisstour.tournament.exceptions import SwissTourError
from swisstour.tournament.pairinggen import delete_round, get_current_round


class Command(BaseCommand):
    help = "Delete all pairings of a round; fails if any game already has a result"

    def add_arguments(self, parser):
        parser.add_argument("tournament_id", type=int)
        parser.add_argument("round_number", type=int)

    def handle(self, *args, **options):
        tournament_id = options["tournament_id"]
        round_number = options["round_number"]
        try:
            delete_round(tournament_id, round_number)
            current_round = get_current_round(tournament_id)
        except SwissTourError as e:
            raise CommandError(str(e))

        self.stdout.write(
            self.style.SUCCESS(
                f"Deleted round {round_number}; current round is now {current_round}"
            )
        )
