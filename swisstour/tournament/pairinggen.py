import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import List

import reversion
from django.conf import settings
from django.db import transaction
from django.db.models import Count, Q

from swisstour.tournament.engine import run_pairing_engine, validate_system
from swisstour.tournament.exceptions import NotFoundError, ParseError, ValidationError
from swisstour.tournament.models import Game, Tournament
from swisstour.tournament.roster import (
    active_registrations,
    assign_pairing_numbers,
    roster_entries,
)
from swisstour.tournament_core.scoring import GameResult
from swisstour.tournament_core.trf import TRFPairing, decode_pairings, encode_tournament

logger = logging.getLogger(__name__)

ONGOING = GameResult.ONGOING.value

_locks_guard = threading.Lock()
# tournament id -> [lock, number of threads holding or waiting for it]
_tournament_locks = {}


@contextmanager
def tournament_lock(tournament_id):
    """Serialize round changes of one tournament within this process.

    Across processes the same guarantee comes from locking the tournament row
    with select_for_update inside the transaction. A tournament's entry is
    dropped once nobody holds or waits for its lock.
    """
    key = str(tournament_id)
    with _locks_guard:
        entry = _tournament_locks.setdefault(key, [threading.Lock(), 0])
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _locks_guard:
            entry[1] -= 1
            if entry[1] == 0:
                del _tournament_locks[key]


@dataclass
class GeneratedRound:
    round_number: int
    pairings: List[TRFPairing] = field(default_factory=list)
    games: List[Game] = field(default_factory=list)


@dataclass(frozen=True)
class RoundSummary:
    round_number: int
    total_games: int
    ongoing_games: int
    completed_games: int


def _get_tournament(tournament_id, for_update=False):
    queryset = Tournament.objects.all()
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=tournament_id)
    except Tournament.DoesNotExist:
        raise NotFoundError("Tournament %s not found" % tournament_id)


def get_current_round(tournament_id):
    return _get_tournament(tournament_id).latest_round_number()


def generate_and_save_pairings(tournament_id, system="dutch"):
    """Pair the round after the latest one and save its games.

    Any games already stored for that round are replaced, so calling this
    again before a new round exists regenerates rather than appends.
    """
    validate_system(system)
    with tournament_lock(tournament_id), transaction.atomic():
        tournament = _get_tournament(tournament_id, for_update=True)
        current_round = tournament.latest_round_number()
        if current_round and not settings.PAIRING_ALLOW_UNFINISHED_ROUNDS:
            unfinished = Game.objects.filter(
                tournament=tournament, round_number=current_round, result=ONGOING
            ).count()
            if unfinished:
                raise ValidationError(
                    "Round %d still has %d game(s) without a result"
                    % (current_round, unfinished)
                )
        return _pair_round(tournament, current_round + 1, system)


def regenerate_round(tournament_id, system="dutch"):
    """Pair the latest round again, replacing its games."""
    validate_system(system)
    with tournament_lock(tournament_id), transaction.atomic():
        tournament = _get_tournament(tournament_id, for_update=True)
        round_number = tournament.latest_round_number()
        if round_number == 0:
            raise NotFoundError("Tournament %s has no round to regenerate" % tournament_id)
        if (
            Game.objects.filter(tournament=tournament, round_number=round_number)
            .exclude(result=ONGOING)
            .exists()
        ):
            raise ValidationError(
                "Cannot regenerate a round with completed games; clear results first"
            )
        return _pair_round(tournament, round_number, system)


def build_trf_input(tournament, round_number, registrations=None):
    """Encode the roster and the games before ``round_number`` as TRF.

    Players without a pairing number receive one first.
    """
    if registrations is None:
        registrations = active_registrations(tournament)
    assign_pairing_numbers(tournament, registrations)

    history = Game.objects.filter(tournament=tournament, round_number__lt=round_number)
    return encode_tournament(
        tournament.name,
        roster_entries(registrations),
        [g.to_game_record() for g in history],
        round_number,
    )


def _pair_round(tournament, round_number, system):
    registrations = active_registrations(tournament)
    trf_input = build_trf_input(tournament, round_number, registrations)
    output = run_pairing_engine(
        trf_input, system, tournament_id=tournament.pk, round_number=round_number
    )

    by_number = {r.pairing_number: r for r in registrations}
    resolved = []
    for pairing in decode_pairings(output, round_number):
        white = by_number.get(pairing.white)
        black = by_number.get(pairing.black)
        if white is None or black is None:
            logger.error(
                "Could not find registrations for pairing %s-%s in tournament %s",
                pairing.white,
                pairing.black,
                tournament.pk,
            )
            continue
        resolved.append((white, black))

    if not resolved and len(registrations) > 1:
        raise ParseError(
            "Pairing engine output has no pairings for round %d (%d players)"
            % (round_number, len(registrations))
        )

    games = []
    with reversion.create_revision():
        reversion.set_comment("Generated pairings.")
        Game.objects.filter(tournament=tournament, round_number=round_number).delete()
        for board_number, (white, black) in enumerate(resolved, 1):
            games.append(
                Game.objects.create(
                    tournament=tournament,
                    round_number=round_number,
                    white=white,
                    black=black,
                    board_number=board_number,
                    result=ONGOING,
                    status="scheduled",
                )
            )
    tournament.refresh_current_round()

    logger.info(
        "Generated %d pairings for round %d of tournament %s (%s)",
        len(games),
        round_number,
        tournament.pk,
        system,
    )
    pairings = [
        TRFPairing(g.white.pairing_number, g.black.pairing_number, g.board_number)
        for g in games
    ]
    return GeneratedRound(round_number=round_number, pairings=pairings, games=games)


def delete_round(tournament_id, round_number):
    """Delete every game of a round that has no results yet."""
    with tournament_lock(tournament_id), transaction.atomic():
        tournament = _get_tournament(tournament_id, for_update=True)
        games = list(
            Game.objects.select_for_update().filter(
                tournament=tournament, round_number=round_number
            )
        )
        if not games:
            raise NotFoundError(
                "Round %s of tournament %s has no games" % (round_number, tournament_id)
            )
        if any(not g.is_ongoing() for g in games):
            raise ValidationError(
                "Cannot delete a round with completed games; clear results first"
            )
        with reversion.create_revision():
            reversion.set_comment("Deleted round %s." % round_number)
            Game.objects.filter(pk__in=[g.pk for g in games]).delete()
        tournament.refresh_current_round()
        logger.info("Deleted round %s of tournament %s", round_number, tournament_id)


def get_round_pairings(tournament_id, round_number):
    tournament = _get_tournament(tournament_id)
    return list(
        Game.objects.filter(tournament=tournament, round_number=round_number)
        .select_related("white", "black")
        .order_by("board_number")
    )


def get_all_rounds(tournament_id):
    tournament = _get_tournament(tournament_id)
    rows = (
        Game.objects.filter(tournament=tournament)
        .values("round_number")
        .annotate(
            total_games=Count("id"),
            ongoing_games=Count("id", filter=Q(result=ONGOING)),
            completed_games=Count("id", filter=~Q(result=ONGOING)),
        )
        .order_by("round_number")
    )
    return [RoundSummary(**row) for row in rows]
