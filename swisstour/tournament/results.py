import logging

import reversion
from django.db import transaction

from swisstour.tournament.exceptions import NotFoundError, ValidationError
from swisstour.tournament.models import Game
from swisstour.tournament_core.scoring import RECORDABLE_RESULTS, GameResult

logger = logging.getLogger(__name__)

VALID_RESULTS = tuple(sorted(r.value for r in RECORDABLE_RESULTS))


def _get_game_for_update(game_id):
    try:
        return (
            Game.objects.select_for_update()
            .select_related("white", "black")
            .get(pk=game_id)
        )
    except Game.DoesNotExist:
        raise NotFoundError("Game %s not found" % game_id)


def submit_result(game_id, result, pgn=None):
    """Record the result of a game and mark it completed.

    The PGN is stored as given; it is not checked against the result.
    """
    if isinstance(result, GameResult):
        result = result.value
    if result not in VALID_RESULTS:
        raise ValidationError(
            "Invalid result value %r; expected one of: %s"
            % (result, ", ".join(VALID_RESULTS))
        )
    with transaction.atomic():
        game = _get_game_for_update(game_id)
        game.result = result
        game.status = "completed"
        game.pgn = pgn or None
        with reversion.create_revision():
            reversion.set_comment("Submitted result.")
            game.save()
    logger.info("Recorded %s for game %s (round %d)", result, game.pk, game.round_number)
    return game


def clear_result(game_id):
    """Put a game back to ongoing so its round can be changed again."""
    with transaction.atomic():
        game = _get_game_for_update(game_id)
        game.result = GameResult.ONGOING.value
        game.status = "scheduled"
        game.pgn = None
        with reversion.create_revision():
            reversion.set_comment("Cleared result.")
            game.save()
    logger.info("Cleared result of game %s (round %d)", game.pk, game.round_number)
    return game
