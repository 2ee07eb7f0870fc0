"""
Plain data records shared by the TRF codec and the standings calculation.

These carry no database state, so the core can be exercised without Django
models: the tournament app converts its rows into these records first.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Union

from swisstour.tournament_core.scoring import GameResult, Outcome, as_game_result, outcome_for


@dataclass(frozen=True)
class RosterEntry:
    """A registered player as seen by the pairing core."""

    player_id: int
    name: str
    rating: int = 0
    pairing_number: Optional[int] = None


@dataclass(frozen=True)
class GameRecord:
    """A persisted game between two registrations."""

    round_number: int
    white_id: int
    black_id: int
    result: Union[GameResult, str] = GameResult.ONGOING

    def __post_init__(self):
        object.__setattr__(self, "result", as_game_result(self.result))

    def opponent_of(self, player_id: int) -> int:
        return self.black_id if player_id == self.white_id else self.white_id

    def color_of(self, player_id: int) -> str:
        """TRF colour letter for a player in this game."""
        return "w" if player_id == self.white_id else "b"

    def outcome_for(self, player_id: int) -> Optional[Outcome]:
        return outcome_for(self.result, player_id == self.white_id)

    @property
    def is_finished(self) -> bool:
        return self.result != GameResult.ONGOING


def games_by_player_and_round(
    games: Iterable[GameRecord],
) -> Dict[int, Dict[int, GameRecord]]:
    """Index games as {player_id: {round_number: game}}.

    Each player has at most one game per round, so later duplicates would
    indicate corrupt data; the first game seen for a round wins.
    """
    index: Dict[int, Dict[int, GameRecord]] = {}
    for game in games:
        for player_id in (game.white_id, game.black_id):
            index.setdefault(player_id, {}).setdefault(game.round_number, game)
    return index


def sort_for_pairing(entries: Iterable[RosterEntry]) -> List[RosterEntry]:
    """Order entries by pairing number; unnumbered entries go last by rating."""
    return sorted(
        entries,
        key=lambda e: (
            e.pairing_number is None,
            e.pairing_number or 0,
            -(e.rating or 0),
            e.player_id,
        ),
    )
