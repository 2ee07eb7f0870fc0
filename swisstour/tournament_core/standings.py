"""
Standings aggregation over finished games.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from swisstour.tournament_core.scoring import STANDARD_SCORING, Outcome, ScoringSystem
from swisstour.tournament_core.structure import GameRecord, RosterEntry
from swisstour.tournament_core.tiebreaks import (
    calculate_buchholz,
    calculate_sonneborn_berger,
)

TIEBREAKS = ("rating", "buchholz", "sonneborn_berger")


@dataclass
class PlayerStanding:
    """A row of the standings table."""

    player_id: int
    name: str
    rating: int
    pairing_number: Optional[int] = None
    games_played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    score: float = 0.0
    buchholz: float = 0.0
    sonneborn_berger: float = 0.0
    rank: int = 0
    opponent_results: List[Tuple[int, Outcome]] = field(default_factory=list, repr=False)

    def record(self, opponent_id: int, outcome: Outcome, scoring: ScoringSystem):
        self.games_played += 1
        if outcome.is_win:
            self.wins += 1
        elif outcome == Outcome.DRAW:
            self.draws += 1
        else:
            self.losses += 1
        self.score += scoring.points(outcome)
        self.opponent_results.append((opponent_id, outcome))

    def sort_key(self, tiebreaks: Sequence[str]):
        return (-self.score,) + tuple(-getattr(self, name) for name in tiebreaks)


def _player_scores(games: Iterable[GameRecord], scoring: ScoringSystem) -> Dict[int, float]:
    scores: Dict[int, float] = {}
    for game in games:
        for player_id in (game.white_id, game.black_id):
            scores[player_id] = scores.get(player_id, 0.0) + scoring.points(
                game.outcome_for(player_id)
            )
    return scores


def calculate_standings(
    entries: Iterable[RosterEntry],
    games: Iterable[GameRecord],
    tiebreaks: Sequence[str] = ("rating",),
    scoring: ScoringSystem = STANDARD_SCORING,
) -> List[PlayerStanding]:
    """Aggregate finished games into ranked standings.

    Args:
        entries: Players to rank
        games: Game history; ongoing games are ignored
        tiebreaks: Names from TIEBREAKS applied after score, in order
        scoring: How outcomes convert to points

    Returns:
        Standings ordered by score, then by the configured tiebreaks, with
        ``rank`` filled in from 1
    """
    unknown = [name for name in tiebreaks if name not in TIEBREAKS]
    if unknown:
        raise ValueError(f"Unknown tiebreak(s): {', '.join(unknown)}")

    finished = [g for g in games if g.is_finished]
    rows = {
        e.player_id: PlayerStanding(
            player_id=e.player_id,
            name=e.name,
            rating=e.rating or 0,
            pairing_number=e.pairing_number,
        )
        for e in entries
    }
    for game in finished:
        for player_id in (game.white_id, game.black_id):
            row = rows.get(player_id)
            if row is not None:
                row.record(game.opponent_of(player_id), game.outcome_for(player_id), scoring)

    # Opponents outside the ranked set still count towards tiebreaks
    scores = _player_scores(finished, scoring)
    for row in rows.values():
        row.buchholz = calculate_buchholz(row.opponent_results, scores)
        row.sonneborn_berger = calculate_sonneborn_berger(row.opponent_results, scores)

    standings = sorted(
        rows.values(),
        key=lambda r: r.sort_key(tiebreaks) + (r.pairing_number or 0, r.player_id),
    )
    for rank, row in enumerate(standings, 1):
        row.rank = rank
    return standings
