# season_model.py
# Defines Season (one run of the competition) and Ruleset (disciplinary thresholds)

from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field


class Ruleset(SQLModel, table=True):
    """
    Disciplinary rules a season is played under.
    Thresholds are nullable so a half-configured ruleset is detectable;
    the engine refuses to answer suspension questions until they are set.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str

    red_card_ban_matches: Optional[int] = Field(default=None)
    yellow_accumulation_threshold: Optional[int] = Field(default=None)
    yellow_ban_matches: Optional[int] = Field(default=None)

    # Yellows beyond the threshold stay unconsumed when True. Cards are counted
    # one at a time, so the fold never holds a remainder to keep.
    carry_over_remainder: bool = Field(default=False)

    # Unconsumed yellows reset whenever the match stage changes when True
    reset_accumulation_per_stage: bool = Field(default=False)


class Season(SQLModel, table=True):
    """
    Represents one full run of a competition.
    Standings and card accumulation are both scoped to a season.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    start_date: Optional[datetime] = None

    ruleset_id: Optional[int] = Field(default=None, foreign_key="ruleset.id")

    # Optimistic concurrency token; any write that changes disciplinary inputs
    # or results bumps it
    disciplinary_version: int = Field(default=0)
    last_rebuilt_at: Optional[datetime] = None
