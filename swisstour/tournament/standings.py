from django.conf import settings

from swisstour.tournament.exceptions import ConfigurationError, NotFoundError
from swisstour.tournament.models import Game, Registration, Tournament
from swisstour.tournament_core.scoring import GameResult
from swisstour.tournament_core.standings import TIEBREAKS, calculate_standings


def get_standings(tournament_id):
    """Ranked standings of a tournament.

    Only registrations with a status in STANDINGS_STATUSES are ranked; games
    against anyone else still count for the ranked player.
    """
    tiebreaks = tuple(settings.STANDINGS_TIEBREAKS)
    unknown = [name for name in tiebreaks if name not in TIEBREAKS]
    if unknown:
        raise ConfigurationError(
            "Unknown STANDINGS_TIEBREAKS entries: %s" % ", ".join(unknown)
        )
    if not Tournament.objects.filter(pk=tournament_id).exists():
        raise NotFoundError("Tournament %s not found" % tournament_id)

    registrations = Registration.objects.filter(
        tournament_id=tournament_id, status__in=settings.STANDINGS_STATUSES
    )
    games = Game.objects.filter(tournament_id=tournament_id).exclude(
        result=GameResult.ONGOING.value
    )
    return calculate_standings(
        [r.to_roster_entry() for r in registrations],
        [g.to_game_record() for g in games],
        tiebreaks=tiebreaks,
    )
