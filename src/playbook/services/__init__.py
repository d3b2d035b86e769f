"""
PlayBook services: the operations the API and scripts call.

- Result logging (MatchResultService, re-exported from playbook.results)
- Schedule generation: round robin, seeded playoff, shuffled knockout
- Standings, ratings reset and match finalization

Usage:
    from playbook.services import (
        generate_round_robin_schedule,
        generate_playoff_bracket,
        standings,
    )
"""

from playbook.results import MatchResultService
from playbook.services.tournament import (
    ScheduleStats,
    clear_schedule,
    finalize_match,
    generate_knockout_schedule,
    generate_playoff_bracket,
    generate_round_robin_schedule,
    persist_bracket,
    reset_ratings,
    standings,
)

__all__ = [
    # Results
    "MatchResultService",
    # Scheduling
    "ScheduleStats",
    "clear_schedule",
    "generate_knockout_schedule",
    "generate_playoff_bracket",
    "generate_round_robin_schedule",
    "persist_bracket",
    # Tournament housekeeping
    "finalize_match",
    "reset_ratings",
    "standings",
]
