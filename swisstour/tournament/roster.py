"""
Read-only view over the players taking part in pairings.

Registrations are owned by the registration subsystem; the only write made
here is the one-time assignment of a pairing number.
"""

import logging

import reversion
from django.db.models import Max

from swisstour.tournament.models import PAIRABLE_STATUSES, Registration
from swisstour.tournament_core.structure import sort_for_pairing

logger = logging.getLogger(__name__)


def _pairing_order(reg):
    return (reg.pairing_number is None, reg.pairing_number or 0, -(reg.rating or 0), reg.id)


def active_registrations(tournament):
    """Registered and confirmed players, in pairing number order.

    Players without a pairing number come last, strongest first.
    """
    registrations = Registration.objects.filter(
        tournament=tournament, status__in=PAIRABLE_STATUSES
    )
    return sorted(registrations, key=_pairing_order)


def assign_pairing_numbers(tournament, registrations=None):
    """Give every active player without a pairing number the next free one.

    Numbers continue after the highest number ever assigned in the tournament
    (withdrawn players included), in rating-descending order. Once saved a
    number is never changed.

    Returns:
        The registrations that received a number
    """
    if registrations is None:
        registrations = active_registrations(tournament)
    unnumbered = sorted(
        (r for r in registrations if r.pairing_number is None),
        key=lambda r: (-(r.rating or 0), r.id),
    )
    if not unnumbered:
        return []

    highest = Registration.objects.filter(tournament=tournament).aggregate(
        highest=Max("pairing_number")
    )["highest"]
    next_number = (highest or 0) + 1
    with reversion.create_revision():
        reversion.set_comment("Assigned pairing numbers.")
        for reg in unnumbered:
            reg.pairing_number = next_number
            reg.save(update_fields=["pairing_number", "date_modified"])
            logger.info(
                "Assigned pairing number %d to %s (tournament %s)",
                next_number,
                reg.player_name,
                tournament.pk,
            )
            next_number += 1
    return unnumbered


def roster_entries(registrations):
    """Convert registrations to core roster entries, in pairing order."""
    return sort_for_pairing(r.to_roster_entry() for r in registrations)
