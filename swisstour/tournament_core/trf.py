"""
TRF (FIDE Tournament Report File) encoding and decoding for the pairing engine.

The engine receives the tournament state as a TRF document and answers with
the pairings of the next round, either embedded in a TRF document of the same
layout or as a plain pair list. Both directions live here.

Player line layout (0-based offsets):

    0-2    "001"
    4-7    pairing number
    14-46  name
    48-51  rating
    79-83  score
    85-88  rank
    89-    one 10 character block per round: "  oooo c r"
           (opponent, colour, result)

Engines read these as byte columns, so names are folded to ASCII before
padding and every encoded document is pure ASCII.
"""

import logging
import unicodedata
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from swisstour.tournament_core.scoring import STANDARD_SCORING, ScoringSystem
from swisstour.tournament_core.structure import (
    GameRecord,
    RosterEntry,
    games_by_player_and_round,
)

logger = logging.getLogger(__name__)

PLAYER_RECORD = "001"
TOURNAMENT_NAME_RECORD = "012"
ROUND_COUNT_RECORD = "XXR"

NAME_WIDTH = 33
HEADER_NAME_WIDTH = 84
HEADER_DATE_WIDTH = 10
SCORE_FILLER = " " * 27

ROUND_BLOCK_OFFSET = 89
ROUND_BLOCK_WIDTH = 10

WHITE = "w"
BLACK = "b"
NO_COLOR = "-"
NO_RESULT = "-"
UNPLAYED = " "


def round_block_offset(round_number: int) -> int:
    """Offset of the result block of a round within a player line."""
    return ROUND_BLOCK_OFFSET + (round_number - 1) * ROUND_BLOCK_WIDTH


def ascii_fold(text: str) -> str:
    """Reduce free text to ASCII so that one character is one byte.

    Accents are stripped ("Lékó" becomes "Leko"); characters without an ASCII
    base letter become "?".
    """
    folded = []
    for char in unicodedata.normalize("NFKD", text or ""):
        if unicodedata.combining(char):
            continue
        folded.append(char if char.isascii() and char.isprintable() else "?")
    return "".join(folded)


@dataclass(frozen=True)
class TRFRoundResult:
    """One round of a player's history: opponent, colour and result code."""

    opponent: int = 0
    color: str = NO_COLOR
    code: str = NO_RESULT

    def render(self) -> str:
        return "  {0: >4} {1} {2}".format(self.opponent, self.color, self.code)

    @property
    def is_paired(self) -> bool:
        return self.opponent > 0 and self.color in (WHITE, BLACK)


NOT_PAIRED = TRFRoundResult()


@dataclass
class TRFPlayer:
    """A player line of a TRF document."""

    pairing_number: int
    name: str
    rating: int = 0
    score: float = 0.0
    rank: int = 0
    results: List[TRFRoundResult] = field(default_factory=list)

    def render(self) -> str:
        line = "001 {0: >4}      {1:<33.33} {2: >4}{3}{4:5.1f} {5: >4}".format(
            self.pairing_number,
            ascii_fold(self.name),
            self.rating or 0,
            SCORE_FILLER,
            self.score,
            self.rank or self.pairing_number,
        )
        return line + "".join(r.render() for r in self.results)


@dataclass(frozen=True)
class TRFPairing:
    """A pairing of the new round, in pairing numbers."""

    white: int
    black: int
    board_number: int


def build_trf_players(
    entries: Iterable[RosterEntry],
    games: Iterable[GameRecord],
    target_round: int,
    scoring: ScoringSystem = STANDARD_SCORING,
) -> List[TRFPlayer]:
    """Turn roster entries and game history into TRF player records.

    Only games of rounds before ``target_round`` are used. Every entry must
    already carry a pairing number.

    Args:
        entries: Roster entries in the order they should appear
        games: Game history; later rounds are ignored
        target_round: The round about to be paired
        scoring: How outcomes convert to points

    Returns:
        TRF player records with score and one result block per played round
    """
    entries = list(entries)
    number_by_id = {}
    for entry in entries:
        if entry.pairing_number is None:
            raise ValueError(f"Player {entry.player_id} has no pairing number")
        number_by_id[entry.player_id] = entry.pairing_number

    history = games_by_player_and_round(g for g in games if g.round_number < target_round)

    players = []
    for entry in entries:
        player_games = history.get(entry.player_id, {})
        score = 0.0
        results = []
        for round_number in range(1, target_round):
            game = player_games.get(round_number)
            if game is None:
                results.append(NOT_PAIRED)
                continue
            outcome = game.outcome_for(entry.player_id)
            score += scoring.points(outcome)
            opponent = number_by_id.get(game.opponent_of(entry.player_id))
            if opponent is None:
                # Opponent is no longer on the roster; keep the points only
                code = outcome.forfeit_code if outcome else NO_RESULT
                results.append(TRFRoundResult(0, NO_COLOR, code))
            else:
                code = outcome.trf_code if outcome else UNPLAYED
                results.append(
                    TRFRoundResult(opponent, game.color_of(entry.player_id), code)
                )
        players.append(
            TRFPlayer(
                pairing_number=entry.pairing_number,
                name=entry.name,
                rating=entry.rating or 0,
                score=score,
                rank=entry.pairing_number,
                results=results,
            )
        )
    return players


def generate_trf_content(
    tournament_name: str,
    target_round: int,
    players: Iterable[TRFPlayer],
    on_date: Optional[date] = None,
) -> str:
    """Generate the TRF document handed to the pairing engine.

    Arguments:
    tournament_name -- written to the 012 header record
    target_round -- the round to be paired; XXR holds the rounds before it
    players -- TRFPlayer records ordered by pairing number
    on_date -- date for the header, defaults to today

    Returns:
    A string containing the TRF file content
    """
    on_date = on_date or date.today()
    lines = []
    lines.append(
        "012 {0:<84.84}{1: >10}\n".format(
            ascii_fold(tournament_name), on_date.strftime("%Y%m%d")
        )
    )
    lines.append("XXR %d\n" % max(0, target_round - 1))
    for player in players:
        lines.append(player.render() + "\n")
    return "".join(lines)


def encode_tournament(
    tournament_name: str,
    entries: Iterable[RosterEntry],
    games: Iterable[GameRecord],
    target_round: int,
    on_date: Optional[date] = None,
) -> str:
    """Encode a roster and its history for pairing ``target_round``."""
    players = build_trf_players(entries, games, target_round)
    return generate_trf_content(tournament_name, target_round, players, on_date)


class TRFParser:
    """Parser for the TRF documents exchanged with the pairing engine.

    Reads are bounded by explicit length checks; a line that is too short or
    malformed is skipped rather than aborting the parse.
    """

    def __init__(self, content: str):
        self.lines = content.splitlines()
        self.players: Dict[int, TRFPlayer] = {}

    def player_lines(self) -> Iterable[Tuple[int, str]]:
        """Yield (pairing_number, line) for each readable player line."""
        for line in self.lines:
            if not line.startswith(PLAYER_RECORD) or len(line) < 8:
                continue
            number = line[4:8].strip()
            if not number.isdigit():
                logger.debug("Skipping player line without pairing number: %r", line)
                continue
            yield int(number), line

    def parse_players(self) -> Dict[int, TRFPlayer]:
        """Parse all player records, keyed by pairing number."""
        self.players = {}
        for number, line in self.player_lines():
            results = []
            round_number = 1
            while len(line) >= round_block_offset(round_number) + 8:
                result = self._read_block(line, round_number)
                results.append(result or NOT_PAIRED)
                round_number += 1
            self.players[number] = TRFPlayer(
                pairing_number=number,
                name=line[14:47].strip(),
                rating=self._int_field(line, 48, 52),
                score=self._float_field(line, 79, 84),
                rank=self._int_field(line, 85, 89),
                results=results,
            )
        return self.players

    def parse_round_pairings(self, round_number: int) -> List[TRFPairing]:
        """Recover the pairings of one round.

        Each player line names its opponent and colour for the round. The
        pairs are walked in file order and every player is used once, so a
        pairing that both players list is only emitted a single time.
        """
        opponents: Dict[int, Tuple[int, str]] = {}
        for number, line in self.player_lines():
            result = self._read_block(line, round_number)
            if result is None or not result.is_paired:
                continue
            opponents[number] = (result.opponent, result.color)

        pairings = []
        consumed = set()
        for number, (opponent, color) in opponents.items():
            if number in consumed or opponent in consumed or number == opponent:
                continue
            if color == WHITE:
                white, black = number, opponent
            else:
                white, black = opponent, number
            pairings.append(TRFPairing(white, black, len(pairings) + 1))
            consumed.add(number)
            consumed.add(opponent)
        return pairings

    def _read_block(self, line: str, round_number: int) -> Optional[TRFRoundResult]:
        start = round_block_offset(round_number)
        if len(line) < start + 8:
            return None
        opponent = line[start + 2 : start + 6].strip()
        if not opponent.isdigit():
            logger.debug("Malformed opponent in round %d block: %r", round_number, line)
            return None
        color = line[start + 7]
        code = line[start + 9] if len(line) > start + 9 else UNPLAYED
        return TRFRoundResult(int(opponent), color, code)

    @staticmethod
    def _int_field(line: str, start: int, end: int) -> int:
        value = line[start:end].strip()
        return int(value) if value.isdigit() else 0

    @staticmethod
    def _float_field(line: str, start: int, end: int) -> float:
        try:
            return float(line[start:end])
        except ValueError:
            return 0.0


def parse_pair_list(content: str) -> List[TRFPairing]:
    """Parse the pair list written by bbpPairings/JaVaFo with ``-p``.

    The first line holds the number of pairs, each following line
    ``white black``. A black of 0 is a bye and produces no pairing.
    """
    lines = [line for line in content.splitlines() if line.strip()]
    pairings = []
    consumed = set()
    for line in lines[1:]:
        parts = line.split()
        if len(parts) != 2 or not (parts[0].isdigit() and parts[1].isdigit()):
            logger.debug("Skipping malformed pair line: %r", line)
            continue
        white, black = int(parts[0]), int(parts[1])
        if white == 0 or black == 0 or white == black:
            continue
        if white in consumed or black in consumed:
            continue
        pairings.append(TRFPairing(white, black, len(pairings) + 1))
        consumed.update((white, black))
    return pairings


def decode_pairings(content: str, round_number: int) -> List[TRFPairing]:
    """Extract the pairings of ``round_number`` from engine output.

    The output is either a TRF document with the new round embedded in the
    player lines, or a pair list whose first line is the pair count.
    """
    first_line = next((line.strip() for line in content.splitlines() if line.strip()), "")
    if first_line.isdigit():
        return parse_pair_list(content)
    return TRFParser(content).parse_round_pairings(round_number)
