# match_model.py
# Defines the Match model (fixtures and results) and the MatchEvent ledger rows.

from typing import Optional
from datetime import datetime, timezone
from enum import Enum
from sqlmodel import SQLModel, Field


class MatchStatus(str, Enum):
    """Fixture lifecycle"""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"      # Score is final; only the correction path may change it
    CANCELLED = "cancelled"      # Never counts for standings or for serving a ban


class EventType(str, Enum):
    GOAL = "GOAL"
    OWN_GOAL = "OWN_GOAL"        # Scores for the opponent of event.team_id
    ASSIST = "ASSIST"
    CARD = "CARD"
    SUBSTITUTION = "SUBSTITUTION"


class CardType(str, Enum):
    YELLOW = "YELLOW"
    SECOND_YELLOW = "SECOND_YELLOW"  # Sending-off, handled like RED
    RED = "RED"


class Match(SQLModel, table=True):
    """
    A fixture between two teams in a season.
    round_number is the ordering key for every before/after decision.
    """
    id: Optional[int] = Field(default=None, primary_key=True)

    season_id: int = Field(foreign_key="season.id", index=True)
    home_team_id: int = Field(foreign_key="team.id")
    away_team_id: int = Field(foreign_key="team.id")

    round_number: int = Field(index=True)
    stage: str = Field(default="regular")                  # e.g. "regular", "playoff"
    match_time: Optional[datetime] = None

    status: MatchStatus = Field(default=MatchStatus.SCHEDULED)

    # Results (kept in sync with goal events by the ledger)
    home_score: Optional[int] = None
    away_score: Optional[int] = None

    # Set when a completed match went through the correction path
    corrected_at: Optional[datetime] = None

    def involves(self, team_id: int) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)

    def order_key(self) -> tuple:
        return (self.round_number, self.id)


class MatchEvent(SQLModel, table=True):
    """
    One row of the append-only event ledger.
    The id doubles as the insertion sequence. Rows are never updated except to
    void them; corrections void the old row and insert a new one.
    """
    id: Optional[int] = Field(default=None, primary_key=True)

    match_id: int = Field(foreign_key="match.id", index=True)
    season_id: int = Field(foreign_key="season.id", index=True)
    team_id: int = Field(foreign_key="team.id")

    event_type: EventType
    card_type: Optional[CardType] = None

    # Acting player and related player (assist provider, player coming on)
    player_id: Optional[int] = Field(default=None, foreign_key="seasonplayer.id", index=True)
    related_player_id: Optional[int] = Field(default=None, foreign_key="seasonplayer.id")

    # Display only; disciplinary ordering never looks at these
    minute: Optional[int] = None
    stoppage_minute: Optional[int] = None
    description: Optional[str] = None

    voided: bool = Field(default=False, index=True)
    voided_reason: Optional[str] = None
    voided_at: Optional[datetime] = None
    replaces_event_id: Optional[int] = Field(default=None, foreign_key="matchevent.id")

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_sending_off(self) -> bool:
        return self.event_type == EventType.CARD and self.card_type in (CardType.RED, CardType.SECOND_YELLOW)


# -------------------------------
# Pydantic schemas for API requests/responses
# -------------------------------
from pydantic import BaseModel


class MatchEventCreate(BaseModel):
    """Payload for recording (or correcting) an event."""
    team_id: int
    event_type: EventType
    card_type: Optional[CardType] = None
    player_id: Optional[int] = None
    related_player_id: Optional[int] = None
    minute: Optional[int] = None
    stoppage_minute: Optional[int] = None
    description: Optional[str] = None


class MatchEventRead(BaseModel):
    id: int
    match_id: int
    team_id: int
    event_type: EventType
    card_type: Optional[CardType] = None
    player_id: Optional[int] = None
    related_player_id: Optional[int] = None
    minute: Optional[int] = None
    stoppage_minute: Optional[int] = None
    voided: bool
    voided_reason: Optional[str] = None
    replaces_event_id: Optional[int] = None

    class Config:
        from_attributes = True


class MatchCompleteRequest(BaseModel):
    """Final score; omitted scores are taken from the goal events."""
    home_score: Optional[int] = None
    away_score: Optional[int] = None


class VoidEventRequest(BaseModel):
    reason: str
