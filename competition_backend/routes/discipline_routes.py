# discipline_routes.py
# API routes for cards, suspensions and disciplinary rebuilds.

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from competition_backend.core.database import get_session
from competition_backend.models.suspension_model import (
    CancelSuspensionRequest,
    SuspensionRead,
    SuspensionStatus,
)
from competition_backend.services.discipline_reports import (
    DisciplinaryOverview,
    PlayerCardSummary,
    card_summary,
    disciplinary_overview,
    list_active_suspensions,
    list_suspensions,
)
from competition_backend.services.disciplinary import SuspensionCheck, is_suspended
from competition_backend.services.recalculation import (
    RebuildReport,
    RecalculationCoordinator,
    get_coordinator,
)

router = APIRouter()


# ==========================================
# REPORTS
# ==========================================
@router.get("/{season_id}/cards", response_model=List[PlayerCardSummary])
def get_card_summary(season_id: int, session: Session = Depends(get_session)):
    return card_summary(session, season_id)


@router.get("/{season_id}/suspensions", response_model=List[SuspensionRead])
def get_suspensions(
    season_id: int,
    status: Optional[SuspensionStatus] = None,
    session: Session = Depends(get_session),
):
    """All suspensions of the season. Archived rows are only listed with ?status=ARCHIVED."""
    return list_suspensions(session, season_id, status)


@router.get("/{season_id}/suspensions/active", response_model=List[SuspensionRead])
def get_active_suspensions(season_id: int, session: Session = Depends(get_session)):
    return list_active_suspensions(session, season_id)


@router.get("/{season_id}/overview", response_model=DisciplinaryOverview)
def get_overview(season_id: int, session: Session = Depends(get_session)):
    return disciplinary_overview(session, season_id)


# ==========================================
# ELIGIBILITY
# ==========================================
@router.get("/{season_id}/check", response_model=SuspensionCheck)
def check_player(
    season_id: int,
    match_id: int = Query(...),
    player_id: int = Query(...),
    session: Session = Depends(get_session),
):
    """Is the player suspended for the given match?"""
    return is_suspended(session, season_id, match_id, player_id)


# ==========================================
# ADMIN
# ==========================================
@router.post("/{season_id}/recalculate", response_model=RebuildReport)
def recalculate(season_id: int, coordinator: RecalculationCoordinator = Depends(get_coordinator)):
    """Full rebuild of the season's suspensions from the event ledger."""
    return coordinator.rebuild_season(season_id)


@router.post("/suspensions/{suspension_id}/cancel", response_model=SuspensionRead)
def cancel_suspension(
    suspension_id: int,
    request: CancelSuspensionRequest,
    coordinator: RecalculationCoordinator = Depends(get_coordinator),
):
    return coordinator.cancel_suspension(suspension_id, request.notes)
