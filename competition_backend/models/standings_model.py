# standings_model.py
# Materialized standings cache. Wholly derived from completed matches and
# safe to drop at any time; rebuilt wholesale, never patched.

from datetime import datetime, timezone
from sqlmodel import SQLModel, Field


class TeamSeasonStatistic(SQLModel, table=True):
    """One row per (season, team). Identity is the (season_id, team_id) key."""
    season_id: int = Field(foreign_key="season.id", primary_key=True)
    team_id: int = Field(foreign_key="team.id", primary_key=True)

    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_difference: int = 0
    points: int = 0
    rank: int = 0

    # "live" or "final": which ordering produced the rank column
    mode: str = Field(default="live")
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# -------------------------------
# Pydantic schemas for API responses
# -------------------------------
from pydantic import BaseModel


class StandingRow(BaseModel):
    """A ranked standings row as returned by compute_standings."""
    team_id: int
    team_name: str
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_difference: int = 0
    points: int = 0
    rank: int = 0
