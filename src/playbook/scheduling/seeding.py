"""Standings order, used both for the standings table and as playoff seeding."""

from typing import Iterable

from playbook.models import Team


def standings_key(team: Team) -> tuple[int, int, int]:
    return (-team.wins, team.losses, -team.rating)


def seed_order(teams: Iterable[Team]) -> list[Team]:
    """
    Rank teams best first: most wins, then fewest losses, then highest rating.

    Ties on all three keep their input order.
    """
    return sorted(teams, key=standings_key)
