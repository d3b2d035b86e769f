"""Tests for the JSON API, backed by the SQLite test database."""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from playbook.elo import RatingConfig
from playbook.models import Match
from playbook.web.main import app, get_rating_config, get_store


@pytest.fixture
def client(sql_store):
    app.dependency_overrides[get_store] = lambda: sql_store
    app.dependency_overrides[get_rating_config] = lambda: RatingConfig()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def tournament(sql_store, make_tournament):
    tournament, teams = make_tournament(
        sql_store, 4, start_date=date(2024, 3, 1), end_date=date(2024, 3, 3)
    )
    return tournament, teams


@pytest.fixture
def match(sql_store, tournament):
    t, teams = tournament
    [match] = sql_store.create_matches([
        Match(tournament_id=t.id, team1_id=teams[0].id, team2_id=teams[1].id)
    ])
    return match


class TestResults:

    def test_log_result(self, client, match, tournament):
        _, teams = tournament
        response = client.post(f"/api/matches/{match.id}/result", json={"team1_score": 10, "team2_score": 5})

        assert response.status_code == 200
        data = response.json()
        assert data["winner"]["id"] == teams[0].id
        assert data["winner"]["rating"] == 1216
        assert data["loser"]["rating"] == 1184
        assert data["match"]["status"] == "completed"
        assert data["correction"] is False

    def test_tie_is_bad_request(self, client, match):
        response = client.post(f"/api/matches/{match.id}/result", json={"team1_score": 3, "team2_score": 3})
        assert response.status_code == 400

    def test_missing_score_is_bad_request(self, client, match):
        response = client.post(f"/api/matches/{match.id}/result", json={"team1_score": 3})

        assert response.status_code == 400
        assert response.json() == {"error": "Team scores are required."}

    def test_unknown_match(self, client):
        response = client.post("/api/matches/999/result", json={"team1_score": 1, "team2_score": 0})
        assert response.status_code == 404

    def test_finalized_match_is_forbidden(self, client, match):
        client.post(f"/api/matches/{match.id}/result", json={"team1_score": 10, "team2_score": 5})
        assert client.post(f"/api/matches/{match.id}/finalize").status_code == 200

        response = client.post(f"/api/matches/{match.id}/result", json={"team1_score": 5, "team2_score": 10})
        assert response.status_code == 403

    def test_finalize_pending_is_bad_request(self, client, match):
        assert client.post(f"/api/matches/{match.id}/finalize").status_code == 400


class TestTournaments:

    def test_round_robin_schedule(self, client, tournament):
        t, _ = tournament
        response = client.post(f"/api/tournaments/{t.id}/schedule", json={"format": "round_robin"})

        assert response.status_code == 201
        data = response.json()
        assert data["matches_created"] == 6
        assert data["matches"][0]["match_date"] == "2024-03-01T09:00:00"

    def test_knockout_schedule(self, client, tournament):
        t, _ = tournament
        response = client.post(
            f"/api/tournaments/{t.id}/schedule", json={"format": "knockout", "shuffle_seed": 3}
        )

        assert response.status_code == 201
        assert response.json()["matches_created"] == 3

    def test_unknown_format(self, client, tournament):
        t, _ = tournament
        response = client.post(f"/api/tournaments/{t.id}/schedule", json={"format": "swiss"})
        assert response.status_code == 422

    def test_bracket(self, client, tournament):
        t, _ = tournament
        response = client.post(f"/api/tournaments/{t.id}/bracket", json={"num_teams": 4})

        assert response.status_code == 201
        assert [m["round"] for m in response.json()["matches"]] == ["Finals", "Semifinals", "Semifinals"]

    def test_bracket_bad_size(self, client, tournament):
        t, _ = tournament
        response = client.post(f"/api/tournaments/{t.id}/bracket", json={"num_teams": 6})
        assert response.status_code == 400

    def test_list_matches_by_status(self, client, tournament, match):
        t, _ = tournament
        client.post(f"/api/matches/{match.id}/result", json={"team1_score": 1, "team2_score": 0})

        completed = client.get(f"/api/tournaments/{t.id}/matches", params={"status": "completed"}).json()
        pending = client.get(f"/api/tournaments/{t.id}/matches", params={"status": "pending"}).json()

        assert [m["id"] for m in completed["matches"]] == [match.id]
        assert pending["matches"] == []

    def test_standings_and_reset(self, client, tournament, match):
        t, teams = tournament
        client.post(f"/api/matches/{match.id}/result", json={"team1_score": 1, "team2_score": 0})

        ranked = client.get(f"/api/tournaments/{t.id}/standings").json()["teams"]
        assert ranked[0]["id"] == teams[0].id
        assert ranked[0]["rank"] == 1

        reset = client.post(f"/api/tournaments/{t.id}/reset", json={}).json()
        assert all(team["rating"] == 1200 and team["wins"] == 0 for team in reset["teams"])

    def test_clear_schedule(self, client, tournament, match):
        t, _ = tournament
        response = client.delete(f"/api/tournaments/{t.id}/schedule")
        assert response.json()["matches_deleted"] == 1

    def test_unknown_tournament(self, client):
        assert client.get("/api/tournaments/77/standings").status_code == 404


class TestPrediction:

    def test_prediction_without_model(self, client, match):
        response = client.get(f"/api/matches/{match.id}/prediction")

        assert response.status_code == 200
        data = response.json()
        assert data["method"] == "elo"
        assert data["team1_win_percent"] == 50
        assert data["team2_win_percent"] == 50

    def test_store_model_then_predict(self, client, match):
        response = client.put(
            "/api/models/win_predictor",
            json={"intercept": 1.0, "elo_diff": 0.004, "win_streak_diff": 0.1},
        )
        assert response.status_code == 200
        assert response.json()["coefficients"]["intercept"] == 1.0

        data = client.get(f"/api/matches/{match.id}/prediction").json()
        assert data["method"] == "logistic"
        assert data["team1_win_percent"] == 73

    def test_partial_coefficients_rejected(self, client):
        response = client.put("/api/models/win_predictor", json={"intercept": 1.0})
        assert response.status_code == 400
