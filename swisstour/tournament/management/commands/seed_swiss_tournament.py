"""
Management command to seed a Swiss tournament for manual testing:
- N players with random names and ratings
- a mix of registered and confirmed entries
- no rounds or pairings (ready for generate_round)
"""

import random

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from faker import Faker

from swisstour.tournament.models import Registration, Tournament


class Command(BaseCommand):
    help = "Seed a Swiss tournament with randomly generated players"

    def add_arguments(self, parser):
        parser.add_argument(
            "--name",
            type=str,
            default="Test Swiss Open",
            help="Name of the tournament (default: Test Swiss Open)",
        )
        parser.add_argument(
            "--players",
            type=int,
            default=16,
            help="Number of players to register (default: 16)",
        )
        parser.add_argument(
            "--seed",
            type=int,
            help="Random seed for reproducible rosters",
        )

    def handle(self, *args, **options):
        if options["players"] < 1:
            raise CommandError("At least one player is required")

        fake = Faker()
        if options["seed"] is not None:
            Faker.seed(options["seed"])
            random.seed(options["seed"])

        self.stdout.write(self.style.WARNING(f"Creating {options['name']}..."))

        with transaction.atomic():
            tournament = Tournament.objects.create(name=options["name"])
            for _ in range(options["players"]):
                Registration.objects.create(
                    tournament=tournament,
                    player_name=fake.name(),
                    rating=random.randint(1000, 2600),
                    status=random.choice(["registered", "confirmed"]),
                )

        self.stdout.write(
            self.style.SUCCESS(
                f"Created tournament {tournament.pk} with {options['players']} players"
            )
        )
