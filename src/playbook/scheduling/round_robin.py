"""
Round-robin pairing generation.

Every team meets every other team exactly once. For n teams that is
n * (n - 1) / 2 pairings.

Two shapes are offered:
- generate_round_robin(): flat list in input order (i < j), used when the
  caller just needs the set of fixtures
- round_robin_rounds(): the same fixtures grouped into rounds with the
  circle method, so nobody plays twice in a round (odd counts get a bye)
"""

from itertools import combinations
from typing import Hashable, Sequence

from playbook.errors import ValidationError
from playbook.models import Pairing

_BYE = object()


def _check_unique(team_ids: list) -> None:
    if len(set(team_ids)) != len(team_ids):
        raise ValidationError("team ids must be unique")


def generate_round_robin(team_ids: Sequence[Hashable]) -> list[Pairing]:
    """
    Generate every unique pairing of the given teams.

    Order is deterministic for a given input order: team at position i
    is paired with every team at position j > i, i ascending.

    Fewer than two teams yields an empty list; rejecting such a schedule
    is the tournament service's job.

    Examples:
        >>> [(p.team1_id, p.team2_id) for p in generate_round_robin([1, 2, 3])]
        [(1, 2), (1, 3), (2, 3)]
        >>> generate_round_robin([7])
        []

    Raises:
        ValidationError: If an id appears more than once
    """
    ids = list(team_ids)
    _check_unique(ids)
    if len(ids) < 2:
        return []
    return [Pairing(a, b) for a, b in combinations(ids, 2)]


def round_robin_rounds(team_ids: Sequence[Hashable]) -> list[list[Pairing]]:
    """
    Group a round robin into rounds using the circle method.

    The first team stays fixed while the rest rotate one place per round.
    With an odd number of teams a bye is added and whoever meets it sits
    the round out.

    Returns:
        n - 1 rounds for even n, n rounds for odd n. Empty for < 2 teams.
    """
    ids = list(team_ids)
    _check_unique(ids)
    if len(ids) < 2:
        return []

    slots = ids + [_BYE] if len(ids) % 2 else ids
    size = len(slots)
    rounds = []
    for _ in range(size - 1):
        pairings = []
        for i in range(size // 2):
            a, b = slots[i], slots[size - 1 - i]
            if a is _BYE or b is _BYE:
                continue
            pairings.append(Pairing(a, b))
        rounds.append(pairings)
        slots = [slots[0], slots[-1]] + slots[1:-1]
    return rounds
