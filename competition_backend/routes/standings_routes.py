# standings_routes.py
# API routes for season standings.

from typing import List, Literal

from fastapi import APIRouter, Depends
from sqlmodel import Session

from competition_backend.core.database import get_session
from competition_backend.models.standings_model import StandingRow
from competition_backend.services.standings import compute_standings, materialize_standings

router = APIRouter()


@router.get("/{season_id}", response_model=List[StandingRow])
def get_standings(
    season_id: int,
    mode: Literal["live", "final"] = "live",
    session: Session = Depends(get_session),
):
    """
    Standings computed from completed matches.
    - live: points, goal difference, goals scored, then name
    - final: same keys, then head-to-head among the tied teams
    """
    return compute_standings(session, season_id, mode)


@router.post("/{season_id}/refresh", response_model=List[StandingRow])
def refresh_standings(
    season_id: int,
    mode: Literal["live", "final"] = "live",
    session: Session = Depends(get_session),
):
    """Rebuild the stored standings table for the season."""
    return materialize_standings(session, season_id, mode)
