"""
Timeslot assignment for generated schedules.

Rounds are spread evenly over the tournament window. Within a day, games
start at ``day_start_hour`` and run back to back (``game_duration_minutes``
each); once the next start would be at or after ``last_game_start_hour``
the schedule rolls over to the next morning. Venues are cycled across all
games in schedule order.

A round never starts before its share of the window begins, but if the
previous round ran long it simply continues from where that one stopped.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Sequence

from playbook.errors import ValidationError


@dataclass(frozen=True)
class Timeslot:
    starts_at: datetime
    venue: str


def _next_morning(moment: datetime, day_start_hour: int) -> datetime:
    return datetime.combine(moment.date() + timedelta(days=1), time(day_start_hour))


def assign_timeslots(
    round_numbers: Sequence[int],
    start_date: date,
    end_date: date,
    venues: Sequence[str],
    *,
    game_duration_minutes: int = 90,
    day_start_hour: int = 9,
    last_game_start_hour: int = 17,
) -> list[Timeslot]:
    """
    Assign a start time and venue to each match.

    Args:
        round_numbers: Round number (1 = first) of each match, in the
            order the matches should be played within a round
        start_date: First day of the tournament
        end_date: Last day of the tournament (inclusive)
        venues: Venue names to cycle through

    Returns:
        One Timeslot per entry of round_numbers, in the same order.

    Raises:
        ValidationError: Empty venue list or end_date before start_date
    """
    if not venues:
        raise ValidationError("at least one venue is required")
    if end_date < start_date:
        raise ValidationError("end_date must not be before start_date")
    if not round_numbers:
        return []

    total_rounds = max(round_numbers)
    total_days = max(1, (end_date - start_date).days + 1)
    days_per_round = total_days // total_rounds
    game_length = timedelta(minutes=game_duration_minutes)

    slots: list = [None] * len(round_numbers)
    cursor = datetime.combine(start_date, time(day_start_hour))
    scheduled = 0

    for round_number in range(1, total_rounds + 1):
        target = datetime.combine(
            start_date + timedelta(days=(round_number - 1) * days_per_round),
            time(day_start_hour),
        )
        if cursor < target:
            cursor = target
        if cursor.hour >= last_game_start_hour:
            cursor = _next_morning(cursor, day_start_hour)

        for index, number in enumerate(round_numbers):
            if number != round_number:
                continue
            slots[index] = Timeslot(starts_at=cursor, venue=venues[scheduled % len(venues)])
            scheduled += 1
            cursor += game_length
            if cursor.hour >= last_game_start_hour:
                cursor = _next_morning(cursor, day_start_hour)

    return slots
