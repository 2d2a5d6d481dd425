# player_model.py
# Season roster entries. A SeasonPlayer id is the player key used by events,
# suspensions and lineup checks.

from typing import Optional
from sqlmodel import SQLModel, Field


class SeasonPlayer(SQLModel, table=True):
    """A player registered to one team for one season."""
    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="season.id", index=True)
    team_id: int = Field(foreign_key="team.id", index=True)
    full_name: str
    shirt_number: Optional[int] = None


# -------------------------------
# Pydantic schemas for API responses
# -------------------------------
from pydantic import BaseModel


class SeasonPlayerRead(BaseModel):
    id: int
    season_id: int
    team_id: int
    full_name: str
    shirt_number: Optional[int] = None

    class Config:
        from_attributes = True
