from django.test import TestCase

from swisstour.tournament.roster import (
    active_registrations,
    assign_pairing_numbers,
    roster_entries,
)
from swisstour.tournament.tests.testutils import create_reg
from swisstour.tournament.models import Tournament


class RosterTestCase(TestCase):
    def setUp(self):
        self.tournament = Tournament.objects.create(name="Roster Open")

    def test_active_registrations(self):
        create_reg(self.tournament, "Registered", 1500)
        create_reg(self.tournament, "Confirmed", 1600, status="confirmed")
        create_reg(self.tournament, "Withdrawn", 2700, status="withdrawn")

        names = [r.player_name for r in active_registrations(self.tournament)]
        self.assertEqual(names, ["Confirmed", "Registered"])

    def test_numbered_players_come_first(self):
        create_reg(self.tournament, "Strong", 2500)
        create_reg(self.tournament, "Numbered", 1200, pairing_number=1)

        names = [r.player_name for r in active_registrations(self.tournament)]
        self.assertEqual(names, ["Numbered", "Strong"])

    def test_assign_by_rating(self):
        create_reg(self.tournament, "Weak", 1200)
        create_reg(self.tournament, "Strong", 2500)
        create_reg(self.tournament, "Middle", 1800)

        assigned = assign_pairing_numbers(self.tournament)

        self.assertEqual(
            [(r.player_name, r.pairing_number) for r in assigned],
            [("Strong", 1), ("Middle", 2), ("Weak", 3)],
        )
        self.assertEqual(assign_pairing_numbers(self.tournament), [])

    def test_numbers_continue_after_highest(self):
        create_reg(self.tournament, "Gone", 2000, status="withdrawn", pairing_number=7)
        create_reg(self.tournament, "Seeded", 1900, pairing_number=2)
        create_reg(self.tournament, "New", 1500)

        assign_pairing_numbers(self.tournament)

        numbers = {
            r.player_name: r.pairing_number for r in active_registrations(self.tournament)
        }
        self.assertEqual(numbers, {"Seeded": 2, "New": 8})

    def test_roster_entries(self):
        reg = create_reg(self.tournament, "Solo", 1700, pairing_number=1)
        entries = roster_entries([reg])
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].player_id, reg.pk)
        self.assertEqual(entries[0].name, "Solo")
        self.assertEqual(entries[0].rating, 1700)
        self.assertEqual(entries[0].pairing_number, 1)
