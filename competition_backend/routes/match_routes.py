# match_routes.py
# API routes for the match event ledger: recording, voiding and correcting
# events, match state changes and the lineup suspension check.

from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from competition_backend.core.database import get_session
from competition_backend.models.match_model import (
    MatchCompleteRequest,
    MatchEventCreate,
    MatchEventRead,
    VoidEventRequest,
)
from competition_backend.services.event_ledger import (
    cancel_match,
    complete_match,
    correct_event,
    get_match,
    list_match_events,
    record_event,
    start_match,
    void_event,
)
from competition_backend.services.recalculation import (
    RecalculationCoordinator,
    RefreshResult,
    get_coordinator,
)
from competition_backend.services.suspension_gate import (
    LineupCheckRequest,
    LineupCheckResponse,
    check_suspensions,
)

router = APIRouter()


# ==========================================
# EVENTS
# ==========================================
@router.get("/{match_id}/events", response_model=List[MatchEventRead])
def get_match_events(match_id: int, include_voided: bool = False, session: Session = Depends(get_session)):
    get_match(session, match_id)
    return list_match_events(session, match_id, include_voided)


@router.post("/{match_id}/events", response_model=MatchEventRead)
def create_match_event(match_id: int, payload: MatchEventCreate, session: Session = Depends(get_session)):
    """Append an event to a match in progress."""
    event = record_event(session, match_id, **payload.model_dump())
    return MatchEventRead.model_validate(event)


@router.post("/events/{event_id}/void", response_model=MatchEventRead)
def void_match_event(
    event_id: int,
    request: VoidEventRequest,
    session: Session = Depends(get_session),
    coordinator: RecalculationCoordinator = Depends(get_coordinator),
):
    """Void an event (e.g. disallowed goal, rescinded card)."""
    event = void_event(session, event_id, request.reason)
    result = MatchEventRead.model_validate(event)
    coordinator.refresh_after_correction(event.season_id)
    return result


@router.post("/events/{event_id}/correct", response_model=MatchEventRead)
def correct_match_event(
    event_id: int,
    payload: MatchEventCreate,
    reason: str = "Correction",
    session: Session = Depends(get_session),
    coordinator: RecalculationCoordinator = Depends(get_coordinator),
):
    """Void the event and record the corrected version in its place."""
    replacement = correct_event(session, event_id, reason, **payload.model_dump())
    result = MatchEventRead.model_validate(replacement)
    coordinator.refresh_after_correction(replacement.season_id)
    return result


# ==========================================
# MATCH STATE
# ==========================================
@router.post("/{match_id}/start")
def start(match_id: int, session: Session = Depends(get_session)):
    match = start_match(session, match_id)
    return {"match_id": match.id, "status": match.status}


@router.post("/{match_id}/complete", response_model=RefreshResult)
def complete(
    match_id: int,
    request: MatchCompleteRequest,
    session: Session = Depends(get_session),
    coordinator: RecalculationCoordinator = Depends(get_coordinator),
):
    """Finalize the score, then refresh suspensions and standings."""
    match = complete_match(session, match_id, request.home_score, request.away_score)
    return coordinator.refresh_after_correction(match.season_id)


@router.post("/{match_id}/cancel", response_model=RefreshResult)
def cancel(
    match_id: int,
    session: Session = Depends(get_session),
    coordinator: RecalculationCoordinator = Depends(get_coordinator),
):
    """Call off a match. Its cards stop counting and it never serves a ban."""
    match = cancel_match(session, match_id)
    return coordinator.refresh_after_correction(match.season_id)


# ==========================================
# LINEUP CHECK
# ==========================================
@router.post("/{match_id}/lineup/check", response_model=LineupCheckResponse)
def check_lineup(match_id: int, request: LineupCheckRequest, session: Session = Depends(get_session)):
    """Report every suspended player in a submitted lineup."""
    match = get_match(session, match_id)
    suspended = check_suspensions(session, match.season_id, match_id, request.player_ids)
    return LineupCheckResponse(match_id=match_id, valid=not suspended, suspended=suspended)
