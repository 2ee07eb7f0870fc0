"""
Tiebreak calculation functions for individual Swiss standings.

Standings are ordered by score and then by rating. Buchholz and
Sonneborn-Berger are computed for every player as well, and only take part in
the ordering when the tournament is configured to use them.
"""

from typing import Dict, Iterable, Tuple

from swisstour.tournament_core.scoring import Outcome

# (opponent_id, outcome) for each finished game of a player
OpponentResults = Iterable[Tuple[int, Outcome]]


def calculate_buchholz(
    opponent_results: OpponentResults, scores: Dict[int, float]
) -> float:
    """
    Calculate Buchholz score.

    The Buchholz score is the sum of all opponents' scores.

    Args:
        opponent_results: The player's finished games as (opponent, outcome)
        scores: Dictionary mapping player IDs to their scores

    Returns:
        The Buchholz score
    """
    return sum(scores.get(opponent_id, 0.0) for opponent_id, _ in opponent_results)


def calculate_sonneborn_berger(
    opponent_results: OpponentResults, scores: Dict[int, float]
) -> float:
    """
    Calculate Sonneborn-Berger score.

    The sum of defeated opponents' scores plus half the sum of drawn
    opponents' scores. Forfeit wins count as wins.
    """
    sb_score = 0.0
    for opponent_id, outcome in opponent_results:
        opponent_score = scores.get(opponent_id, 0.0)
        if outcome.is_win:
            sb_score += opponent_score
        elif outcome == Outcome.DRAW:
            sb_score += opponent_score / 2.0
    return sb_score
