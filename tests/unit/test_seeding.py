"""Tests for standings order / playoff seeding."""

from playbook.models import Team
from playbook.scheduling import seed_order


def test_wins_then_losses_then_rating():
    teams = [
        Team(id=1, wins=2, losses=1, rating=1250),
        Team(id=2, wins=3, losses=0, rating=1190),
        Team(id=3, wins=2, losses=0, rating=1180),
        Team(id=4, wins=2, losses=1, rating=1300),
    ]
    assert [t.id for t in seed_order(teams)] == [2, 3, 4, 1]


def test_full_ties_keep_input_order():
    teams = [Team(id=5), Team(id=3), Team(id=9)]
    assert [t.id for t in seed_order(teams)] == [5, 3, 9]
