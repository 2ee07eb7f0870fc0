import reversion
from django.db import models
from django.db.models import Max, Q

from swisstour.tournament_core.scoring import STANDARD_SCORING, GameResult
from swisstour.tournament_core.structure import GameRecord, RosterEntry


class _BaseModel(models.Model):
    date_created = models.DateTimeField(auto_now_add=True)
    date_modified = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


# -------------------------------------------------------------------------------
@reversion.register()
class Tournament(_BaseModel):
    name = models.CharField(max_length=255)
    # Cache of max(Game.round_number); always recomputed, never incremented
    current_round = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ("-date_created",)

    def latest_round_number(self):
        return self.game_set.aggregate(max_round=Max("round_number"))["max_round"] or 0

    def refresh_current_round(self):
        self.current_round = self.latest_round_number()
        self.save(update_fields=["current_round", "date_modified"])
        return self.current_round

    def __str__(self):
        return self.name


REGISTRATION_STATUS_OPTIONS = (
    ("registered", "Registered"),
    ("confirmed", "Confirmed"),
    ("withdrawn", "Withdrawn"),
)

PAIRABLE_STATUSES = ("registered", "confirmed")


# -------------------------------------------------------------------------------
@reversion.register()
class Registration(_BaseModel):
    tournament = models.ForeignKey(Tournament, on_delete=models.CASCADE)
    player_name = models.CharField(max_length=255)
    rating = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=31, choices=REGISTRATION_STATUS_OPTIONS, default="registered"
    )
    pairing_number = models.PositiveIntegerField(blank=True, null=True)

    class Meta:
        ordering = ("tournament_id", "pairing_number", "-rating")
        constraints = [
            models.UniqueConstraint(
                fields=["tournament", "pairing_number"],
                name="unique_pairing_number_per_tournament",
            ),
        ]

    def to_roster_entry(self):
        return RosterEntry(
            player_id=self.id,
            name=self.player_name,
            rating=self.rating or 0,
            pairing_number=self.pairing_number,
        )

    def __str__(self):
        if self.pairing_number:
            return "%s (#%d)" % (self.player_name, self.pairing_number)
        return self.player_name


GAME_RESULT_OPTIONS = (
    (GameResult.ONGOING.value, "Ongoing"),
    (GameResult.WHITE_WIN.value, "White wins"),
    (GameResult.BLACK_WIN.value, "Black wins"),
    (GameResult.DRAW.value, "Draw"),
    (GameResult.FORFEIT_WHITE.value, "White forfeits"),
    (GameResult.FORFEIT_BLACK.value, "Black forfeits"),
)

GAME_STATUS_OPTIONS = (
    ("scheduled", "Scheduled"),
    ("completed", "Completed"),
)


# -------------------------------------------------------------------------------
@reversion.register()
class Game(_BaseModel):
    tournament = models.ForeignKey(Tournament, on_delete=models.CASCADE)
    round_number = models.PositiveIntegerField()
    white = models.ForeignKey(
        Registration, on_delete=models.CASCADE, related_name="games_as_white"
    )
    black = models.ForeignKey(
        Registration, on_delete=models.CASCADE, related_name="games_as_black"
    )
    board_number = models.PositiveIntegerField()
    result = models.CharField(
        max_length=15, choices=GAME_RESULT_OPTIONS, default=GameResult.ONGOING.value
    )
    status = models.CharField(
        max_length=15, choices=GAME_STATUS_OPTIONS, default="scheduled"
    )
    pgn = models.TextField(blank=True, null=True)

    class Meta:
        ordering = ("tournament_id", "round_number", "board_number")
        constraints = [
            models.UniqueConstraint(
                fields=["tournament", "round_number", "board_number"],
                name="unique_board_per_round",
            ),
            models.CheckConstraint(
                condition=~Q(white=models.F("black")),
                name="white_and_black_differ",
            ),
            models.CheckConstraint(
                condition=Q(round_number__gte=1),
                name="round_number_positive",
            ),
        ]

    def is_ongoing(self):
        return self.result == GameResult.ONGOING.value

    def white_score(self):
        if self.is_ongoing():
            return None
        return STANDARD_SCORING.game_points(self.result, is_white=True)

    def black_score(self):
        if self.is_ongoing():
            return None
        return STANDARD_SCORING.game_points(self.result, is_white=False)

    def to_game_record(self):
        return GameRecord(
            round_number=self.round_number,
            white_id=self.white_id,
            black_id=self.black_id,
            result=self.result,
        )

    def __str__(self):
        return "Round %d board %d: %s - %s" % (
            self.round_number,
            self.board_number,
            self.white,
            self.black,
        )
