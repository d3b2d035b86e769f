"""
Bracket construction for knockout play.

Draw positions are 1-indexed within each round and follow standard
single-elimination progression:

    Round N, position p  ->  Round N+1, position ceil(p/2)

Odd positions feed the ``team1`` slot of the next match, even positions
feed ``team2``. So positions 1 and 2 in the quarterfinals feed semifinal 1,
positions 3 and 4 feed semifinal 2.

Brackets are built as plain MatchSpec values with symbolic keys. Turning
keys into stored match ids is a separate step
(playbook.services.tournament.persist_bracket), so the topology can be
checked without a store.

Two builders:
- build_single_elimination(): seeded playoff bracket for 4, 8 or 16 teams
- build_knockout(): unseeded knockout for any number of teams, with byes
  carried into later rounds
"""

import math
from dataclasses import dataclass
from typing import Hashable, Optional, Sequence

from playbook.errors import ValidationError
from playbook.models import MATCH_SLOTS

# Ordered round progression for seeded playoff brackets
ROUND_PROGRESSION = ["R16", "QF", "SF", "F"]

ROUND_NAMES = {
    "R16": "Round of 16",
    "QF": "Quarterfinals",
    "SF": "Semifinals",
    "F": "Finals",
}

# Key = bracket size, value = first round code
BRACKET_SIZE_TO_FIRST_ROUND = {
    16: "R16",
    8: "QF",
    4: "SF",
}

SUPPORTED_BRACKET_SIZES = tuple(sorted(BRACKET_SIZE_TO_FIRST_ROUND))

ROUND_MATCH_COUNT = {
    "R16": 8,
    "QF": 4,
    "SF": 2,
    "F": 1,
}


@dataclass(frozen=True)
class MatchSpec:
    """
    One match of a bracket before it is stored.

    ``next_key``/``winner_slot`` point at the match the winner moves on to;
    both are None for the final. Team ids are None for slots that will be
    filled by advancement.
    """
    key: str
    round_name: str
    round_number: int
    team1_id: Optional[Hashable] = None
    team2_id: Optional[Hashable] = None
    next_key: Optional[str] = None
    winner_slot: Optional[str] = None


def match_key(round_code: str, position: int) -> str:
    return f"{round_code}-{position}"


def get_next_round(round_code: str) -> Optional[str]:
    """
    Get the next round in playoff progression.

    Examples:
        >>> get_next_round("QF")
        'SF'
        >>> get_next_round("F")
    """
    try:
        idx = ROUND_PROGRESSION.index(round_code)
    except ValueError:
        return None

    if idx >= len(ROUND_PROGRESSION) - 1:
        return None
    return ROUND_PROGRESSION[idx + 1]


def get_next_draw_position(position: int) -> int:
    """
    Compute the draw position in the next round.

    Examples:
        >>> get_next_draw_position(1), get_next_draw_position(2), get_next_draw_position(3)
        (1, 1, 2)
    """
    return math.ceil(position / 2)


def winner_slot_for_position(position: int) -> str:
    return MATCH_SLOTS[0] if position % 2 else MATCH_SLOTS[1]


def bracket_seed_lines(size: int) -> list[int]:
    """
    Seeds in bracket line order, top to bottom.

    Each doubling pairs every seed with its complement (size + 1 - seed).
    Alternate lines are mirrored so the 2 seed ends up at the foot of the
    bracket, furthest from the 1 seed.

    Examples:
        >>> bracket_seed_lines(4)
        [1, 4, 3, 2]
        >>> bracket_seed_lines(8)
        [1, 8, 5, 4, 3, 6, 7, 2]
    """
    lines = [1]
    while len(lines) < size:
        width = len(lines) * 2
        expanded = []
        for index, seed in enumerate(lines):
            opponent = width + 1 - seed
            expanded.extend((seed, opponent) if index % 2 == 0 else (opponent, seed))
        lines = expanded
    return lines


def first_round_seed_pairs(size: int) -> list[tuple[int, int]]:
    """
    First-round pairings as (higher seed, lower seed), in draw order.

    Examples:
        >>> first_round_seed_pairs(8)
        [(1, 8), (4, 5), (3, 6), (2, 7)]
    """
    if size not in SUPPORTED_BRACKET_SIZES:
        raise ValidationError(
            f"bracket size must be one of {SUPPORTED_BRACKET_SIZES}, got {size}"
        )
    lines = bracket_seed_lines(size)
    return [tuple(sorted(lines[i:i + 2])) for i in range(0, size, 2)]


def build_single_elimination(seeded_ids: Sequence[Hashable]) -> list[MatchSpec]:
    """
    Build a seeded single-elimination bracket.

    Args:
        seeded_ids: Team ids ordered best seed first. Exactly 4, 8 or 16.

    Returns:
        Match specs built bottom-up: the final first, then each earlier
        round in draw order. Only first-round matches have teams.

    Raises:
        ValidationError: Unsupported size or duplicate ids

    Example:
        8 teams give QF 1v8, 4v5, 3v6, 2v7; QF-1/QF-2 feed SF-1 and
        QF-3/QF-4 feed SF-2, so seeds 1 and 2 can only meet in the final.
    """
    ids = list(seeded_ids)
    if len(ids) not in SUPPORTED_BRACKET_SIZES:
        raise ValidationError(
            f"bracket size must be one of {SUPPORTED_BRACKET_SIZES}, got {len(ids)}"
        )
    if len(set(ids)) != len(ids):
        raise ValidationError("seeded team ids must be unique")

    first_round = BRACKET_SIZE_TO_FIRST_ROUND[len(ids)]
    rounds = ROUND_PROGRESSION[ROUND_PROGRESSION.index(first_round):]
    seed_pairs = first_round_seed_pairs(len(ids))

    specs = []
    for depth, round_code in enumerate(reversed(rounds)):
        next_round = get_next_round(round_code)
        for position in range(1, ROUND_MATCH_COUNT[round_code] + 1):
            team1_id = team2_id = None
            if round_code == first_round:
                seed1, seed2 = seed_pairs[position - 1]
                team1_id, team2_id = ids[seed1 - 1], ids[seed2 - 1]

            next_key = winner_slot = None
            if next_round is not None:
                next_key = match_key(next_round, get_next_draw_position(position))
                winner_slot = winner_slot_for_position(position)

            specs.append(MatchSpec(
                key=match_key(round_code, position),
                round_name=ROUND_NAMES[round_code],
                round_number=len(rounds) - depth,
                team1_id=team1_id,
                team2_id=team2_id,
                next_key=next_key,
                winner_slot=winner_slot,
            ))
    return specs


def knockout_round_name(round_number: int, total_rounds: int) -> str:
    """
    Label a knockout round counted from the start.

    Examples:
        >>> knockout_round_name(3, 3), knockout_round_name(1, 3), knockout_round_name(1, 4)
        ('Finals', 'Quarterfinals', 'Round 1')
    """
    if round_number == total_rounds:
        return "Finals"
    if round_number == total_rounds - 1:
        return "Semifinals"
    if round_number == total_rounds - 2:
        return "Quarterfinals"
    return f"Round {round_number}"


def build_knockout(team_ids: Sequence[Hashable]) -> list[MatchSpec]:
    """
    Build a knockout for any number of teams.

    Entries are paired off in order, round by round. When a round has an
    odd number of entries the last one gets a bye and is carried into the
    next round, where it takes a slot like any match winner would. Teams
    are only placed in the match they actually start in.

    Returns:
        Match specs, final first, each round in draw order.

    Raises:
        ValidationError: Fewer than two teams, or duplicate ids
    """
    ids = list(team_ids)
    if len(ids) < 2:
        raise ValidationError("at least two teams are required for a knockout")
    if len(set(ids)) != len(ids):
        raise ValidationError("team ids must be unique")

    # Entries are ("team", id) or ("match", key)
    layer = [("team", team_id) for team_id in ids]
    nodes = []
    links: dict[str, tuple[str, str]] = {}
    round_number = 1

    while len(layer) > 1:
        next_layer = []
        position = 0
        for i in range(0, len(layer), 2):
            if i + 1 >= len(layer):
                next_layer.append(layer[i])
                continue
            position += 1
            key = match_key(f"R{round_number}", position)
            sources = (layer[i], layer[i + 1])
            for slot, (kind, ref) in zip(MATCH_SLOTS, sources):
                if kind == "match":
                    links[ref] = (key, slot)
            nodes.append((key, round_number, position, sources))
            next_layer.append(("match", key))
        layer = next_layer
        round_number += 1

    total_rounds = round_number - 1
    nodes.sort(key=lambda node: (-node[1], node[2]))

    specs = []
    for key, number, _, (source1, source2) in nodes:
        next_key, winner_slot = links.get(key, (None, None))
        specs.append(MatchSpec(
            key=key,
            round_name=knockout_round_name(number, total_rounds),
            round_number=number,
            team1_id=source1[1] if source1[0] == "team" else None,
            team2_id=source2[1] if source2[0] == "team" else None,
            next_key=next_key,
            winner_slot=winner_slot,
        ))
    return specs
