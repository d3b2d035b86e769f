"""
PlayBook - intramural tournament core.

Rating, scheduling and prediction logic for the PlayBook tournament
platform. The web application stores everything in Postgres; this package
holds the parts with actual algorithmic content and the persistence
adapter they talk to.

Main components:
- elo: Elo rating updates for teams and departments
- scheduling: Round-robin pairings, seeded brackets, knockout trees, timeslots
- results: Match result processing (ratings, records, bracket advancement)
- prediction: Win-probability estimators (logistic model and pure Elo)
- store: Persistence adapters (in-memory and SQLAlchemy)
- services: Tournament-level orchestration
- web: FastAPI routes over the services
"""

__version__ = "1.0.0"
