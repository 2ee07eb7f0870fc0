from django.core.management.base import BaseCommand, CommandError

from swisstour.tournament.exceptions import SwissTourError
from swisstour.tournament.standings import get_standings


class Command(BaseCommand):
    help = "Print the standings of a tournament"

    def add_arguments(self, parser):
        parser.add_argument("tournament_id", type=int)

    def handle(self, *args, **options):
        try:
            standings = get_standings(options["tournament_id"])
        except SwissTourError as e:
            raise CommandError(str(e))

        self.stdout.write(
            f"{'#':>3}  {'Name':<30} {'Rtg':>4} {'Pts':>5} {'G':>3} {'W':>3} {'D':>3} {'L':>3} {'Buch':>5} {'SB':>5}"
        )
        for row in standings:
            self.stdout.write(
                f"{row.rank:>3}  {row.name[:30]:<30} {row.rating:>4} {row.score:>5.1f} "
                f"{row.games_played:>3} {row.wins:>3} {row.draws:>3} {row.losses:>3} "
                f"{row.buchholz:>5.1f} {row.sonneborn_berger:>5.2f}"
            )
