"""
Scheduling module.

Pure construction of fixtures; nothing here touches a store:
- Round-robin pairings (flat, or grouped into rounds)
- Seeded single-elimination brackets for 4, 8 or 16 teams
- Unseeded knockouts for any team count
- Standings-based seed order
- Timeslot and venue assignment across the tournament window
"""

from playbook.scheduling.bracket import (
    SUPPORTED_BRACKET_SIZES,
    MatchSpec,
    build_knockout,
    build_single_elimination,
    first_round_seed_pairs,
)
from playbook.scheduling.calendar import Timeslot, assign_timeslots
from playbook.scheduling.round_robin import generate_round_robin, round_robin_rounds
from playbook.scheduling.seeding import seed_order

__all__ = [
    "SUPPORTED_BRACKET_SIZES",
    "MatchSpec",
    "build_knockout",
    "build_single_elimination",
    "first_round_seed_pairs",
    "Timeslot",
    "assign_timeslots",
    "generate_round_robin",
    "round_robin_rounds",
    "seed_order",
]
