from datetime import datetime
from typing import Any, Literal, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from playbook.config import settings
from playbook.elo.constants import RatingConfig
from playbook.errors import (
    ConflictError,
    MatchLockedError,
    NotFoundError,
    PlaybookError,
    ValidationError,
)
from playbook.match_statuses import normalize_status_filter
from playbook.models import Match, Team
from playbook.prediction import predict_match, train_win_predictor
from playbook.results import MatchResultService
from playbook.services.tournament import (
    ScheduleStats,
    clear_schedule,
    finalize_match,
    generate_knockout_schedule,
    generate_playoff_bracket,
    generate_round_robin_schedule,
    reset_ratings,
    standings,
)
from playbook.store import SqlAlchemyStore, TournamentStore

app = FastAPI(title="PlayBook")


def get_store() -> TournamentStore:
    return SqlAlchemyStore()


def get_rating_config() -> RatingConfig:
    return RatingConfig.from_settings(settings)


def _status_code_for(exc: PlaybookError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, MatchLockedError):
        return 403
    if isinstance(exc, ConflictError):
        return 409
    return 500


@app.exception_handler(PlaybookError)
async def playbook_error_handler(request: Request, exc: PlaybookError):
    """Map domain errors onto HTTP status codes with a JSON error body."""
    return JSONResponse(status_code=_status_code_for(exc), content={"error": str(exc)})


# ==========================================================================
# Request bodies
# ==========================================================================


class ScheduleRequest(BaseModel):
    format: Literal["round_robin", "knockout"] = "round_robin"
    shuffle_seed: Optional[int] = None
    venues: Optional[list[str]] = None


class BracketRequest(BaseModel):
    num_teams: int = Field(..., description="Playoff size: 4, 8 or 16")


class ResetRequest(BaseModel):
    include_departments: bool = False


class ResultRequest(BaseModel):
    # Optional so a missing score reaches the processor's own validation
    team1_score: Optional[int] = None
    team2_score: Optional[int] = None


class ModelRequest(BaseModel):
    """Explicit coefficients, or an empty body to fit on completed matches."""
    intercept: Optional[float] = None
    elo_diff: Optional[float] = None
    win_streak_diff: Optional[float] = None


# ==========================================================================
# Serialization
# ==========================================================================


def _serialize_team(team: Team, rank: Optional[int] = None) -> dict:
    payload = {
        "id": team.id,
        "name": team.name,
        "department_id": team.department_id,
        "rating": team.rating,
        "wins": team.wins,
        "losses": team.losses,
        "win_streak": team.win_streak,
    }
    if rank is not None:
        payload["rank"] = rank
    return payload


def _serialize_match(match: Match) -> dict:
    return {
        "id": match.id,
        "tournament_id": match.tournament_id,
        "round": match.round_name,
        "status": match.status,
        "team1_id": match.team1_id,
        "team2_id": match.team2_id,
        "team1_score": match.team1_score,
        "team2_score": match.team2_score,
        "winner_id": match.winner_id,
        "next_match_id": match.next_match_id,
        "winner_advances_to_slot": match.winner_advances_to_slot,
        "match_date": match.match_date.isoformat() if match.match_date else None,
        "venue": match.venue,
        "is_finalized": match.is_finalized,
        "team1_rating_change": match.team1_rating_change,
        "team2_rating_change": match.team2_rating_change,
    }


def _serialize_schedule(stats: ScheduleStats) -> dict:
    return {
        "tournament_id": stats.tournament_id,
        "format": stats.format,
        "teams": stats.teams,
        "rounds": stats.rounds,
        "matches_created": stats.matches_created,
        "matches_deleted": stats.matches_deleted,
        "matches": [_serialize_match(m) for m in stats.matches],
    }


# ==========================================================================
# Tournament endpoints
# ==========================================================================


@app.get("/api/tournaments/{tournament_id}/standings")
async def api_standings(tournament_id: int, store: TournamentStore = Depends(get_store)):
    """Teams ranked by wins, then fewest losses, then rating."""
    ranked = standings(store, tournament_id)
    return {
        "tournament_id": tournament_id,
        "teams": [_serialize_team(team, rank) for rank, team in enumerate(ranked, start=1)],
    }


@app.get("/api/tournaments/{tournament_id}/matches")
async def api_tournament_matches(
    tournament_id: int,
    status: Optional[str] = Query(None, description="Comma-separated statuses (default: all)"),
    store: TournamentStore = Depends(get_store),
):
    store.get_tournament(tournament_id)
    raw_statuses = status.split(",") if status else None
    matches = store.list_matches(tournament_id, statuses=normalize_status_filter(raw_statuses))
    return {"tournament_id": tournament_id, "matches": [_serialize_match(m) for m in matches]}


@app.post("/api/tournaments/{tournament_id}/schedule", status_code=201)
async def api_generate_schedule(
    tournament_id: int,
    body: ScheduleRequest,
    store: TournamentStore = Depends(get_store),
):
    """Replace the tournament's schedule with a round robin or a knockout."""
    if body.format == "knockout":
        stats = generate_knockout_schedule(
            store, tournament_id, shuffle_seed=body.shuffle_seed, venues=body.venues
        )
    else:
        stats = generate_round_robin_schedule(store, tournament_id, venues=body.venues)
    return _serialize_schedule(stats)


@app.delete("/api/tournaments/{tournament_id}/schedule")
async def api_clear_schedule(tournament_id: int, store: TournamentStore = Depends(get_store)):
    return {"tournament_id": tournament_id, "matches_deleted": clear_schedule(store, tournament_id)}


@app.post("/api/tournaments/{tournament_id}/bracket", status_code=201)
async def api_generate_bracket(
    tournament_id: int,
    body: BracketRequest,
    store: TournamentStore = Depends(get_store),
):
    """Seed the top teams into a 4, 8 or 16 team playoff."""
    return _serialize_schedule(generate_playoff_bracket(store, tournament_id, body.num_teams))


@app.post("/api/tournaments/{tournament_id}/reset")
async def api_reset_ratings(
    tournament_id: int,
    body: Optional[ResetRequest] = None,
    store: TournamentStore = Depends(get_store),
    config: RatingConfig = Depends(get_rating_config),
):
    body = body or ResetRequest()
    teams = reset_ratings(store, tournament_id, config, include_departments=body.include_departments)
    return {"tournament_id": tournament_id, "teams": [_serialize_team(t) for t in teams]}


# ==========================================================================
# Match endpoints
# ==========================================================================


@app.post("/api/matches/{match_id}/result")
async def api_log_result(
    match_id: int,
    body: ResultRequest,
    store: TournamentStore = Depends(get_store),
    config: RatingConfig = Depends(get_rating_config),
):
    """
    Log (or correct) a match result.

    Updates both teams' ratings, records and streaks, the departments'
    ratings, and moves the winner into the next bracket match.
    """
    outcome = MatchResultService(store, config).log_result(
        match_id, body.team1_score, body.team2_score
    )
    return {
        "match": _serialize_match(outcome.match),
        "winner": _serialize_team(outcome.winner),
        "loser": _serialize_team(outcome.loser),
        "correction": outcome.correction,
        "advanced_to": (
            {"match_id": outcome.advance.match_id, "slot": outcome.advance.slot}
            if outcome.advance is not None
            else None
        ),
    }


@app.post("/api/matches/{match_id}/finalize")
async def api_finalize_match(match_id: int, store: TournamentStore = Depends(get_store)):
    return _serialize_match(finalize_match(store, match_id))


@app.get("/api/matches/{match_id}/prediction")
async def api_match_prediction(match_id: int, store: TournamentStore = Depends(get_store)):
    """Win probability for each side, from the logistic model or pure Elo."""
    prediction = predict_match(store, match_id, settings.win_predictor_model_name)
    return {"match_id": match_id, **prediction.to_dict()}


# ==========================================================================
# Win predictor
# ==========================================================================


@app.put("/api/models/{name}")
async def api_store_model(
    name: str,
    body: Optional[ModelRequest] = None,
    store: TournamentStore = Depends(get_store),
):
    coefficients: Optional[dict[str, Any]] = None
    if body is not None:
        given = body.model_dump(exclude_none=True)
        coefficients = given or None
    model = train_win_predictor(store, name, coefficients)
    return {
        "name": model.name,
        "coefficients": model.to_coefficients(),
        "updated_at": model.updated_at.isoformat() if isinstance(model.updated_at, datetime) else None,
    }
