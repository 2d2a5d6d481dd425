# suspension_model.py
# Defines the Suspension table.
# A Suspension represents a ban from playing matches (red card or accumulated yellows).
# Rows are only written by the recalculation coordinator; superseded rows are
# archived, never deleted.

from typing import Optional, List
from datetime import datetime, timezone
from enum import Enum
from sqlmodel import SQLModel, Field, JSON, Column


class SuspensionReason(str, Enum):
    RED_CARD = "RED_CARD"
    ACCUMULATION = "ACCUMULATION"


class SuspensionStatus(str, Enum):
    """Lifecycle: active -> served | archived | cancelled. The last three are terminal."""
    ACTIVE = "ACTIVE"
    SERVED = "SERVED"
    CANCELLED = "CANCELLED"      # Administrative override
    ARCHIVED = "ARCHIVED"        # Superseded by a recalculation


class Suspension(SQLModel, table=True):
    """Database model for one suspension of one player in one season."""
    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="season.id", index=True)
    player_id: int = Field(foreign_key="seasonplayer.id", index=True)
    team_id: int = Field(foreign_key="team.id")

    reason: SuspensionReason

    # Card event (and its match) that created the ban
    trigger_event_id: int = Field(foreign_key="matchevent.id")
    trigger_match_id: int = Field(foreign_key="match.id")
    trigger_round: int

    matches_required: int = Field(default=1, ge=1)
    matches_served: int = Field(default=0, ge=0)

    # Matches counted towards the ban, in the order they were served
    served_match_ids: List[int] = Field(default_factory=list, sa_column=Column(JSON))

    # Card events used up by this ban (the trigger itself for a red card)
    consumed_event_ids: List[int] = Field(default_factory=list, sa_column=Column(JSON))

    status: SuspensionStatus = Field(default=SuspensionStatus.ACTIVE, index=True)
    notes: Optional[str] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    archived_at: Optional[datetime] = None

    def key(self) -> tuple:
        """Identity used to decide whether a rebuild reproduced this row."""
        return (self.player_id, SuspensionReason(self.reason), self.trigger_event_id)


# -------------------------------
# Pydantic schemas for API responses
# -------------------------------
from pydantic import BaseModel


class SuspensionRead(BaseModel):
    id: int
    season_id: int
    player_id: int
    team_id: int
    reason: SuspensionReason
    trigger_event_id: int
    trigger_match_id: int
    trigger_round: int
    matches_required: int
    matches_served: int
    served_match_ids: List[int] = []
    status: SuspensionStatus
    notes: Optional[str] = None
    created_at: datetime
    archived_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CancelSuspensionRequest(BaseModel):
    notes: Optional[str] = None
