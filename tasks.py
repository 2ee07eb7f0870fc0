from pathlib import Path

from invoke import task

ROOT = Path(__file__).parent.absolute()
MANAGE_PY = str(ROOT / "manage.py")
TEST_SETTINGS = "swisstour.test_settings"


def manage(c, command, **kwargs):
    return c.run(f"python {MANAGE_PY} {command}", **kwargs)


@task
def update(c):
    """Refresh poetry.lock and the virtualenv."""
    c.run("poetry update")


@task
def migrate(c):
    """Apply the tournament migrations."""
    manage(c, "migrate")


@task
def makemigrations(c):
    """Write migrations for model changes."""
    manage(c, "makemigrations tournament")


@task
def shell(c):
    manage(c, "shell", pty=True)


@task
def test(c, path=None):
    """Run the test suite, or only PATH (a dotted test label)."""
    label = path or ""
    manage(c, f"test {label} --settings={TEST_SETTINGS}".replace("  ", " "))


@task
def seed(c, players=16, name="Test Swiss Open"):
    """Create a tournament with random players."""
    manage(c, f'seed_swiss_tournament --players {players} --name "{name}"')


@task(help={"system": "dutch or burstein"})
def pair(c, tournament, system="dutch", regenerate=False):
    """Pair the next round of TOURNAMENT (or re-pair the latest one)."""
    flag = " --regenerate" if regenerate else ""
    manage(c, f"generate_round {tournament} --system {system}{flag}")


@task
def standings(c, tournament):
    manage(c, f"show_standings {tournament}")
