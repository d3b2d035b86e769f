"""
Tournament service: schedule generation, standings and housekeeping.

Everything here goes through a TournamentStore, so the same functions run
against the database and against InMemoryStore in tests.

Schedule generation:
1. **Round robin** (generate_round_robin_schedule): every team meets every
   other team once. Replaces any existing schedule. Matches are dated when
   the tournament has a date window.
2. **Playoff bracket** (generate_playoff_bracket): top 4/8/16 teams by
   standings, seeded 1vN. Added alongside the existing round-robin matches.
3. **Knockout** (generate_knockout_schedule): shuffled single elimination
   for any team count with byes. Replaces any existing schedule and is
   always dated.

Brackets are stored round by round starting from the final, so every
match can be created with its forward link already pointing at a stored
match.

Usage:
    from playbook.services import generate_round_robin_schedule

    stats = generate_round_robin_schedule(store, tournament_id=1)
    print(stats.summary())
"""

import logging
import random
from dataclasses import dataclass, field, replace
from itertools import groupby
from typing import Optional, Sequence

from playbook.config import get_settings
from playbook.elo.constants import RatingConfig
from playbook.errors import ValidationError
from playbook.match_statuses import PENDING
from playbook.models import Match, Team, Tournament
from playbook.scheduling.bracket import (
    SUPPORTED_BRACKET_SIZES,
    MatchSpec,
    build_knockout,
    build_single_elimination,
)
from playbook.scheduling.calendar import Timeslot, assign_timeslots
from playbook.scheduling.round_robin import round_robin_rounds
from playbook.scheduling.seeding import seed_order

logger = logging.getLogger(__name__)

ROUND_ROBIN_LABEL = "Round Robin"


@dataclass
class ScheduleStats:
    """What a schedule generation run did."""
    tournament_id: int
    format: str
    teams: int = 0
    matches_created: int = 0
    matches_deleted: int = 0
    rounds: int = 0
    dated: bool = False
    matches: list[Match] = field(default_factory=list, repr=False)

    def summary(self) -> str:
        lines = [
            f"{self.format} schedule for tournament {self.tournament_id}:",
            f"  Teams:            {self.teams}",
            f"  Rounds:           {self.rounds}",
            f"  Matches created:  {self.matches_created}",
            f"  Matches replaced: {self.matches_deleted}",
            f"  Dated:            {'yes' if self.dated else 'no'}",
        ]
        return "\n".join(lines)


def _timeslots_for(
    tournament: Tournament,
    round_numbers: Sequence[int],
    venues: Optional[Sequence[str]] = None,
) -> Optional[list[Timeslot]]:
    if tournament.start_date is None or tournament.end_date is None:
        return None
    settings = get_settings()
    return assign_timeslots(
        round_numbers,
        tournament.start_date,
        tournament.end_date,
        venues or settings.default_venues,
        game_duration_minutes=settings.game_duration_minutes,
        day_start_hour=settings.day_start_hour,
        last_game_start_hour=settings.last_game_start_hour,
    )


def _apply_timeslot(match: Match, slot: Optional[Timeslot]) -> Match:
    if slot is None:
        return match
    return replace(match, match_date=slot.starts_at, venue=slot.venue)


def persist_bracket(
    store,
    tournament_id: int,
    specs: Sequence[MatchSpec],
    timeslots: Optional[Sequence[Timeslot]] = None,
) -> list[Match]:
    """
    Store bracket specs as pending matches with their forward links.

    Rounds are created latest first, each in one batch, so a match's
    next_match_id always refers to a match that already exists.

    Returns:
        Stored matches in the same order as ``specs``.
    """
    slots = list(timeslots) if timeslots is not None else [None] * len(specs)
    if len(slots) != len(specs):
        raise ValidationError("one timeslot per match is required")

    ids_by_key: dict[str, int] = {}
    stored_by_key: dict[str, Match] = {}
    indexed = sorted(enumerate(specs), key=lambda item: -item[1].round_number)

    for _, group in groupby(indexed, key=lambda item: item[1].round_number):
        batch = []
        keys = []
        for index, spec in group:
            if spec.next_key is not None and spec.next_key not in ids_by_key:
                raise ValidationError(f"match {spec.key} links to unknown match {spec.next_key}")
            match = Match(
                tournament_id=tournament_id,
                team1_id=spec.team1_id,
                team2_id=spec.team2_id,
                status=PENDING,
                round_name=spec.round_name,
                next_match_id=ids_by_key.get(spec.next_key) if spec.next_key else None,
                winner_advances_to_slot=spec.winner_slot,
            )
            batch.append(_apply_timeslot(match, slots[index]))
            keys.append(spec.key)
        for key, stored in zip(keys, store.create_matches(batch)):
            ids_by_key[key] = stored.id
            stored_by_key[key] = stored

    return [stored_by_key[spec.key] for spec in specs]


def clear_schedule(store, tournament_id: int) -> int:
    """Delete every match of a tournament."""
    store.get_tournament(tournament_id)
    deleted = store.delete_matches(tournament_id)
    logger.info("Cleared %s matches from tournament %s", deleted, tournament_id)
    return deleted


def generate_round_robin_schedule(
    store,
    tournament_id: int,
    venues: Optional[Sequence[str]] = None,
) -> ScheduleStats:
    """
    Replace a tournament's schedule with a full round robin.

    Pairings are grouped into rounds so no team plays twice in a round;
    every match is labelled "Round Robin".

    Raises:
        NotFoundError: Unknown tournament
        ValidationError: Fewer than two teams
    """
    tournament = store.get_tournament(tournament_id)
    teams = store.list_teams(tournament_id)
    if len(teams) < 2:
        raise ValidationError("At least two teams are required to generate a round robin schedule.")

    rounds = round_robin_rounds([team.id for team in teams])
    round_numbers = [number for number, pairings in enumerate(rounds, start=1) for _ in pairings]
    pairings = [pairing for pairings in rounds for pairing in pairings]
    slots = _timeslots_for(tournament, round_numbers, venues) or [None] * len(pairings)

    stats = ScheduleStats(tournament_id=tournament_id, format="Round robin", teams=len(teams))
    stats.matches_deleted = store.delete_matches(tournament_id)
    stats.matches = store.create_matches(
        _apply_timeslot(
            Match(
                tournament_id=tournament_id,
                team1_id=pairing.team1_id,
                team2_id=pairing.team2_id,
                status=PENDING,
                round_name=ROUND_ROBIN_LABEL,
            ),
            slot,
        )
        for pairing, slot in zip(pairings, slots)
    )
    stats.matches_created = len(stats.matches)
    stats.rounds = len(rounds)
    stats.dated = slots[0] is not None

    logger.info(
        "Generated round robin for tournament %s: %s teams, %s matches over %s rounds",
        tournament_id,
        stats.teams,
        stats.matches_created,
        stats.rounds,
    )
    return stats


def generate_playoff_bracket(store, tournament_id: int, num_teams: int) -> ScheduleStats:
    """
    Seed the top ``num_teams`` into a single-elimination playoff.

    Seeds follow standings (wins, then losses, then rating). Existing
    matches are kept, since the playoff normally follows a round robin.

    Raises:
        NotFoundError: Unknown tournament
        ValidationError: num_teams not 4, 8 or 16, or not enough teams
    """
    if num_teams not in SUPPORTED_BRACKET_SIZES:
        raise ValidationError(f"Playoff size must be one of {SUPPORTED_BRACKET_SIZES}, got {num_teams}.")
    store.get_tournament(tournament_id)
    teams = seed_order(store.list_teams(tournament_id))
    if len(teams) < num_teams:
        raise ValidationError(
            f"A {num_teams}-team playoff needs {num_teams} teams; tournament {tournament_id} has {len(teams)}."
        )

    specs = build_single_elimination([team.id for team in teams[:num_teams]])
    stats = ScheduleStats(tournament_id=tournament_id, format="Playoff", teams=num_teams)
    stats.matches = persist_bracket(store, tournament_id, specs)
    stats.matches_created = len(stats.matches)
    stats.rounds = max(spec.round_number for spec in specs)

    logger.info(
        "Generated %s-team playoff for tournament %s (top seed team %s)",
        num_teams,
        tournament_id,
        teams[0].id,
    )
    return stats


def generate_knockout_schedule(
    store,
    tournament_id: int,
    shuffle_seed: Optional[int] = None,
    venues: Optional[Sequence[str]] = None,
) -> ScheduleStats:
    """
    Replace a tournament's schedule with a shuffled knockout.

    Any number of teams (two or more) works; odd rounds give the last
    entry a bye. Matches are spread over the tournament window, so the
    tournament must have start and end dates.

    Args:
        shuffle_seed: Seed for the draw shuffle, for a reproducible draw
        venues: Venues to cycle through (defaults to settings.default_venues)

    Raises:
        NotFoundError: Unknown tournament
        ValidationError: Fewer than two teams, or no date window
    """
    tournament = store.get_tournament(tournament_id)
    if tournament.start_date is None or tournament.end_date is None:
        raise ValidationError(f"Tournament {tournament_id} needs a start and end date to schedule a knockout.")
    teams = store.list_teams(tournament_id)
    if len(teams) < 2:
        raise ValidationError("At least two teams are required to generate a knockout schedule.")

    team_ids = [team.id for team in teams]
    random.Random(shuffle_seed).shuffle(team_ids)
    specs = build_knockout(team_ids)
    slots = _timeslots_for(tournament, [spec.round_number for spec in specs], venues)

    stats = ScheduleStats(tournament_id=tournament_id, format="Knockout", teams=len(teams), dated=True)
    stats.matches_deleted = store.delete_matches(tournament_id)
    stats.matches = persist_bracket(store, tournament_id, specs, slots)
    stats.matches_created = len(stats.matches)
    stats.rounds = max(spec.round_number for spec in specs)

    logger.info(
        "Generated knockout for tournament %s: %s teams, %s matches, %s rounds",
        tournament_id,
        stats.teams,
        stats.matches_created,
        stats.rounds,
    )
    return stats


def standings(store, tournament_id: int) -> list[Team]:
    """Teams ranked by wins desc, losses asc, rating desc."""
    store.get_tournament(tournament_id)
    return seed_order(store.list_teams(tournament_id))


def reset_ratings(
    store,
    tournament_id: int,
    config: Optional[RatingConfig] = None,
    include_departments: bool = False,
) -> list[Team]:
    """
    Put every team of a tournament back to the starting rating with an
    empty record. Departments are shared across tournaments, so they are
    only reset when asked.
    """
    config = config or RatingConfig()
    store.get_tournament(tournament_id)

    reset = [
        store.save_team(replace(team, rating=config.default_rating, wins=0, losses=0, win_streak=0))
        for team in store.list_teams(tournament_id)
    ]
    if include_departments:
        for department in store.list_departments():
            store.save_department(replace(department, rating=config.default_rating))

    logger.info(
        "Reset %s teams of tournament %s to %s%s",
        len(reset),
        tournament_id,
        config.default_rating,
        " (departments too)" if include_departments else "",
    )
    return reset


def finalize_match(store, match_id: int) -> Match:
    """
    Lock a completed match against further corrections.

    Raises:
        NotFoundError: Unknown match
        ValidationError: The match has no result yet
    """
    match = store.get_match(match_id)
    if match.is_finalized:
        return match
    if not match.is_completed:
        raise ValidationError(f"Match {match_id} has no result to finalize.")

    match = store.save_match(replace(match, is_finalized=True))
    logger.info("Finalized match %s", match_id)
    return match

