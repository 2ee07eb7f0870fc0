import threading

from django.test import TestCase, override_settings
from reversion.models import Version

from swisstour.tournament import pairinggen
from swisstour.tournament.exceptions import (
    ConfigurationError,
    EngineExecutionError,
    NotFoundError,
    ParseError,
    ValidationError,
)
from swisstour.tournament.models import Game, Registration
from swisstour.tournament.pairinggen import (
    RoundSummary,
    delete_round,
    generate_and_save_pairings,
    get_all_rounds,
    get_current_round,
    get_round_pairings,
    regenerate_round,
    tournament_lock,
)
from swisstour.tournament.results import clear_result, submit_result
from swisstour.tournament.tests.testutils import (
    EMPTY_ENGINE,
    FAILING_ENGINE,
    PAIR_LIST_ENGINE,
    SEQUENTIAL_ENGINE,
    UNKNOWN_NUMBERS_ENGINE,
    SequentialPairingEngine,
    create_reg,
    create_tournament,
)
from swisstour.tournament_core.trf import TRFParser, TRFRoundResult, round_block_offset


def player_pairs(games):
    return [(g.white.pairing_number, g.black.pairing_number) for g in games]


@override_settings(PAIRING_ENGINE_BACKEND=SEQUENTIAL_ENGINE)
class GenerateRoundTestCase(TestCase):
    def setUp(self):
        SequentialPairingEngine.calls = []
        self.tournament = create_tournament(players=4, status="confirmed")

    def test_first_round(self):
        generated = generate_and_save_pairings(self.tournament.pk, "dutch")

        self.assertEqual(generated.round_number, 1)
        self.assertEqual(len(generated.games), 2)
        self.assertEqual([g.board_number for g in generated.games], [1, 2])
        self.assertEqual(player_pairs(generated.games), [(1, 2), (3, 4)])
        self.assertEqual(
            [(p.white, p.black, p.board_number) for p in generated.pairings],
            [(1, 2, 1), (3, 4, 2)],
        )
        for game in Game.objects.filter(tournament=self.tournament):
            self.assertEqual(game.result, "ongoing")
            self.assertEqual(game.status, "scheduled")

        self.tournament.refresh_from_db()
        self.assertEqual(self.tournament.current_round, 1)
        self.assertEqual(get_current_round(self.tournament.pk), 1)

    def test_pairing_numbers_follow_rating(self):
        generate_and_save_pairings(self.tournament.pk)

        numbers = dict(
            Registration.objects.filter(tournament=self.tournament).values_list(
                "player_name", "pairing_number"
            )
        )
        self.assertEqual(
            numbers, {"Player 1": 1, "Player 2": 2, "Player 3": 3, "Player 4": 4}
        )

    def test_engine_receives_tournament_state(self):
        generate_and_save_pairings(self.tournament.pk, "burstein")

        call = SequentialPairingEngine.calls[0]
        self.assertEqual(call["system"], "burstein")
        self.assertEqual(call["tournament_id"], self.tournament.pk)
        self.assertEqual(call["round_number"], 1)
        lines = call["trf_input"].splitlines()
        self.assertTrue(lines[0].startswith("012 Test Open"))
        self.assertEqual(lines[1], "XXR 0")
        self.assertEqual(len(lines), 6)

    def test_next_round_before_results_leaves_previous_round_alone(self):
        first = generate_and_save_pairings(self.tournament.pk)
        first_ids = sorted(g.pk for g in first.games)

        second = generate_and_save_pairings(self.tournament.pk)

        self.assertEqual(second.round_number, 2)
        round_one = Game.objects.filter(tournament=self.tournament, round_number=1)
        self.assertEqual(sorted(g.pk for g in round_one), first_ids)
        self.assertTrue(all(g.result == "ongoing" for g in round_one))
        self.assertEqual(get_current_round(self.tournament.pk), 2)

    def test_history_is_sent_to_engine(self):
        first = generate_and_save_pairings(self.tournament.pk)
        submit_result(first.games[0].pk, "white_win")
        generate_and_save_pairings(self.tournament.pk)

        trf_input = SequentialPairingEngine.calls[1]["trf_input"]
        self.assertIn("XXR 1", trf_input.splitlines())
        players = TRFParser(trf_input).parse_players()
        self.assertEqual(players[1].results, [TRFRoundResult(2, "w", "1")])
        self.assertEqual(players[1].score, 1.0)
        self.assertEqual(players[2].results, [TRFRoundResult(1, "b", "0")])
        self.assertEqual(players[3].results, [TRFRoundResult(4, "w", " ")])

    def test_no_player_paired_twice(self):
        for _ in range(3):
            generated = generate_and_save_pairings(self.tournament.pk)
            seen = []
            for game in generated.games:
                self.assertNotEqual(game.white_id, game.black_id)
                seen += [game.white_id, game.black_id]
            self.assertEqual(len(seen), len(set(seen)))

    def test_odd_player_gets_a_bye(self):
        tournament = create_tournament("Odd Open", players=5)
        generate_and_save_pairings(tournament.pk)

        bye = Registration.objects.get(tournament=tournament, pairing_number=5)
        round_one = Game.objects.filter(tournament=tournament, round_number=1)
        self.assertEqual(round_one.count(), 2)
        self.assertFalse(round_one.filter(white=bye).exists())
        self.assertFalse(round_one.filter(black=bye).exists())

        generate_and_save_pairings(tournament.pk)
        trf_input = SequentialPairingEngine.calls[-1]["trf_input"]
        line = next(l for l in trf_input.splitlines() if l.startswith("001    5"))
        start = round_block_offset(1)
        self.assertEqual(line[start : start + 10], "     0 - -")

    def test_withdrawn_players_are_not_paired(self):
        withdrawn = create_reg(self.tournament, "Quitter", 2800, status="withdrawn")
        generated = generate_and_save_pairings(self.tournament.pk)

        self.assertEqual(len(generated.games), 2)
        withdrawn.refresh_from_db()
        self.assertIsNone(withdrawn.pairing_number)
        self.assertNotIn("Quitter", SequentialPairingEngine.calls[0]["trf_input"])

    def test_pairing_numbers_are_stable(self):
        generate_and_save_pairings(self.tournament.pk)
        late = create_reg(self.tournament, "Latecomer", 2900)
        generate_and_save_pairings(self.tournament.pk)

        late.refresh_from_db()
        self.assertEqual(late.pairing_number, 5)
        self.assertEqual(
            Registration.objects.get(player_name="Player 1").pairing_number, 1
        )

    def test_revision_is_recorded(self):
        generated = generate_and_save_pairings(self.tournament.pk)
        versions = Version.objects.get_for_object(generated.games[0])
        self.assertEqual(versions.count(), 1)
        self.assertEqual(versions[0].revision.comment, "Generated pairings.")

    def test_unknown_tournament(self):
        with self.assertRaises(NotFoundError):
            generate_and_save_pairings(999999)

    def test_unknown_system(self):
        with self.assertRaises(ValidationError):
            generate_and_save_pairings(self.tournament.pk, "monrad")
        self.assertEqual(SequentialPairingEngine.calls, [])

    @override_settings(PAIRING_ALLOW_UNFINISHED_ROUNDS=False)
    def test_unfinished_round_blocks_next_round(self):
        first = generate_and_save_pairings(self.tournament.pk)
        submit_result(first.games[0].pk, "draw")

        with self.assertRaises(ValidationError):
            generate_and_save_pairings(self.tournament.pk)
        self.assertEqual(get_current_round(self.tournament.pk), 1)

        submit_result(first.games[1].pk, "black_win")
        self.assertEqual(generate_and_save_pairings(self.tournament.pk).round_number, 2)


class EngineOutputTestCase(TestCase):
    def setUp(self):
        self.tournament = create_tournament(players=5)

    @override_settings(PAIRING_ENGINE_BACKEND=PAIR_LIST_ENGINE)
    def test_pair_list_output(self):
        generated = generate_and_save_pairings(self.tournament.pk)
        self.assertEqual(player_pairs(generated.games), [(1, 2), (3, 4)])

    @override_settings(PAIRING_ENGINE_BACKEND=UNKNOWN_NUMBERS_ENGINE)
    def test_unknown_pairing_numbers_are_skipped(self):
        with self.assertLogs("swisstour.tournament.pairinggen", level="ERROR"):
            generated = generate_and_save_pairings(self.tournament.pk)
        self.assertEqual(player_pairs(generated.games), [(1, 2)])
        self.assertEqual(generated.games[0].board_number, 1)

    @override_settings(PAIRING_ENGINE_BACKEND=EMPTY_ENGINE)
    def test_output_without_pairings(self):
        with self.assertRaises(ParseError):
            generate_and_save_pairings(self.tournament.pk)
        self.assertFalse(Game.objects.exists())
        self.assertEqual(get_current_round(self.tournament.pk), 0)

    @override_settings(PAIRING_ENGINE_BACKEND=FAILING_ENGINE)
    def test_engine_failure_leaves_no_trace(self):
        with self.assertRaises(EngineExecutionError) as cm:
            generate_and_save_pairings(self.tournament.pk)

        self.assertIn("no valid pairing", str(cm.exception))
        self.assertFalse(Game.objects.exists())
        self.assertFalse(
            Registration.objects.filter(pairing_number__isnull=False).exists()
        )

    @override_settings(PAIRING_ENGINE_BACKEND="swisstour.tournament.tests.NoSuchEngine")
    def test_bad_backend_setting(self):
        with self.assertRaises(ConfigurationError):
            generate_and_save_pairings(self.tournament.pk)


@override_settings(PAIRING_ENGINE_BACKEND=SEQUENTIAL_ENGINE)
class RegenerateRoundTestCase(TestCase):
    def setUp(self):
        SequentialPairingEngine.calls = []
        self.tournament = create_tournament(players=4)

    def test_replaces_latest_round(self):
        first = generate_and_save_pairings(self.tournament.pk)
        regenerated = regenerate_round(self.tournament.pk)

        self.assertEqual(regenerated.round_number, 1)
        self.assertEqual(Game.objects.filter(tournament=self.tournament).count(), 2)
        self.assertFalse(Game.objects.filter(pk__in=[g.pk for g in first.games]).exists())
        self.assertEqual(get_current_round(self.tournament.pk), 1)
        self.assertEqual(SequentialPairingEngine.calls[1]["round_number"], 1)

    def test_nothing_to_regenerate(self):
        with self.assertRaises(NotFoundError):
            regenerate_round(self.tournament.pk)

    def test_round_with_results(self):
        first = generate_and_save_pairings(self.tournament.pk)
        submit_result(first.games[0].pk, "white_win")

        with self.assertRaises(ValidationError):
            regenerate_round(self.tournament.pk)
        self.assertEqual(Game.objects.get(pk=first.games[0].pk).result, "white_win")


@override_settings(PAIRING_ENGINE_BACKEND=SEQUENTIAL_ENGINE)
class DeleteRoundTestCase(TestCase):
    def setUp(self):
        self.tournament = create_tournament(players=4)
        self.first = generate_and_save_pairings(self.tournament.pk)

    def test_delete_round(self):
        delete_round(self.tournament.pk, 1)

        self.assertFalse(Game.objects.filter(tournament=self.tournament).exists())
        self.tournament.refresh_from_db()
        self.assertEqual(self.tournament.current_round, 0)

    def test_delete_latest_round_recomputes_current_round(self):
        generate_and_save_pairings(self.tournament.pk)
        delete_round(self.tournament.pk, 2)

        self.assertEqual(get_current_round(self.tournament.pk), 1)
        self.assertEqual(generate_and_save_pairings(self.tournament.pk).round_number, 2)

    def test_completed_games_block_delete(self):
        submit_result(self.first.games[0].pk, "white_win")

        with self.assertRaises(ValidationError) as cm:
            delete_round(self.tournament.pk, 1)
        self.assertIn("clear results first", str(cm.exception))
        self.assertEqual(Game.objects.filter(round_number=1).count(), 2)
        self.assertEqual(Game.objects.get(pk=self.first.games[0].pk).result, "white_win")

        clear_result(self.first.games[0].pk)
        delete_round(self.tournament.pk, 1)
        self.assertFalse(Game.objects.exists())

    def test_round_without_games(self):
        with self.assertRaises(NotFoundError):
            delete_round(self.tournament.pk, 5)

    def test_unknown_tournament(self):
        with self.assertRaises(NotFoundError):
            delete_round(999999, 1)


@override_settings(PAIRING_ENGINE_BACKEND=SEQUENTIAL_ENGINE)
class RoundQueryTestCase(TestCase):
    def setUp(self):
        self.tournament = create_tournament(players=4)
        self.first = generate_and_save_pairings(self.tournament.pk)
        submit_result(self.first.games[1].pk, "draw")
        generate_and_save_pairings(self.tournament.pk)

    def test_get_round_pairings(self):
        games = get_round_pairings(self.tournament.pk, 1)
        self.assertEqual([g.board_number for g in games], [1, 2])
        self.assertEqual(games[1].result, "draw")
        self.assertEqual(get_round_pairings(self.tournament.pk, 7), [])

    def test_get_all_rounds(self):
        self.assertEqual(
            get_all_rounds(self.tournament.pk),
            [RoundSummary(1, 2, 1, 1), RoundSummary(2, 2, 2, 0)],
        )

    def test_unknown_tournament(self):
        with self.assertRaises(NotFoundError):
            get_all_rounds(999999)


class TournamentLockTestCase(TestCase):
    def test_lock_is_per_tournament(self):
        other_entered = threading.Event()
        same_entered = threading.Event()

        def enter(tournament_id, event):
            with tournament_lock(tournament_id):
                event.set()

        with tournament_lock(1):
            other = threading.Thread(target=enter, args=(2, other_entered))
            same = threading.Thread(target=enter, args=(1, same_entered))
            other.start()
            same.start()
            self.assertTrue(other_entered.wait(timeout=5))
            self.assertFalse(same_entered.wait(timeout=0.2))

        same.join(timeout=5)
        other.join(timeout=5)
        self.assertTrue(same_entered.is_set())
        self.assertEqual(pairinggen._tournament_locks, {})

    def test_released_locks_are_forgotten(self):
        for tournament_id in range(100):
            with tournament_lock(tournament_id):
                self.assertIn(str(tournament_id), pairinggen._tournament_locks)
        self.assertEqual(pairinggen._tournament_locks, {})

    def test_lock_released_on_error(self):
        with self.assertRaises(RuntimeError):
            with tournament_lock(42):
                raise RuntimeError("engine crashed")
        self.assertEqual(pairinggen._tournament_locks, {})
        with tournament_lock(42):
            pass
