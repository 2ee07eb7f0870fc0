"""
Game results and how they convert to points.

A stored result is always from White's point of view. The helpers here turn it
into an outcome for one side of the board, which is what both the TRF encoder
and the standings need.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class GameResult(Enum):
    """Result of a single game, as stored on a game row."""

    ONGOING = "ongoing"
    WHITE_WIN = "white_win"
    BLACK_WIN = "black_win"
    DRAW = "draw"
    FORFEIT_WHITE = "forfeit_white"  # White forfeited, Black wins
    FORFEIT_BLACK = "forfeit_black"  # Black forfeited, White wins


# Results that may be submitted for a game
RECORDABLE_RESULTS = frozenset(r for r in GameResult if r is not GameResult.ONGOING)


class Outcome(Enum):
    """A game result seen from one player's side."""

    WIN = "1"
    LOSS = "0"
    DRAW = "="
    FORFEIT_WIN = "+"
    FORFEIT_LOSS = "-"

    @property
    def trf_code(self) -> str:
        return self.value

    @property
    def is_win(self) -> bool:
        return self in (Outcome.WIN, Outcome.FORFEIT_WIN)

    @property
    def is_loss(self) -> bool:
        return self in (Outcome.LOSS, Outcome.FORFEIT_LOSS)

    @property
    def forfeit_code(self) -> str:
        """TRF code to use when the opponent cannot be named."""
        if self.is_win:
            return Outcome.FORFEIT_WIN.value
        if self.is_loss:
            return Outcome.FORFEIT_LOSS.value
        return Outcome.DRAW.value


def as_game_result(result: Union[GameResult, str]) -> GameResult:
    """Coerce a stored string into a GameResult.

    Raises:
        ValueError: if the value is not a known result
    """
    if isinstance(result, GameResult):
        return result
    return GameResult(result)


def outcome_for(result: Union[GameResult, str], is_white: bool) -> Optional[Outcome]:
    """Return the outcome for one side, or None while the game is ongoing."""
    result = as_game_result(result)
    if result == GameResult.WHITE_WIN:
        return Outcome.WIN if is_white else Outcome.LOSS
    elif result == GameResult.BLACK_WIN:
        return Outcome.LOSS if is_white else Outcome.WIN
    elif result == GameResult.DRAW:
        return Outcome.DRAW
    elif result == GameResult.FORFEIT_WHITE:
        return Outcome.FORFEIT_LOSS if is_white else Outcome.FORFEIT_WIN
    elif result == GameResult.FORFEIT_BLACK:
        return Outcome.FORFEIT_WIN if is_white else Outcome.FORFEIT_LOSS
    return None


@dataclass(frozen=True)
class ScoringSystem:
    """Defines how game outcomes are scored."""

    win_points: float = 1.0
    draw_points: float = 0.5
    loss_points: float = 0.0

    def points(self, outcome: Optional[Outcome]) -> float:
        """Points for an outcome. Unfinished games score nothing."""
        if outcome is None:
            return 0.0
        if outcome.is_win:
            return self.win_points
        if outcome == Outcome.DRAW:
            return self.draw_points
        return self.loss_points

    def game_points(self, result: Union[GameResult, str], is_white: bool) -> float:
        return self.points(outcome_for(result, is_white))


STANDARD_SCORING = ScoringSystem()
