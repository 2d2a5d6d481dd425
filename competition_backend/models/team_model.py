# team_model.py
# Defines the Team model and its per-season registration.

from typing import Optional
from sqlmodel import SQLModel, Field


class Team(SQLModel, table=True):
    """Database model representing a club taking part in competitions."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    short_name: Optional[str] = Field(default=None)


class SeasonTeam(SQLModel, table=True):
    """
    Registration of a team for one season.
    Every registered team gets a standings row, even before its first match.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="season.id", index=True)
    team_id: int = Field(foreign_key="team.id", index=True)
