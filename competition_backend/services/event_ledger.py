# event_ledger.py
# Access layer over the append-only match event ledger.
# Reads feed the standings and disciplinary folds; writes are the collaborator
# path (recording, voiding and correcting events, completing matches).

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy import update
from sqlmodel import Session, select

from competition_backend.core.config import TEST_MODE
from competition_backend.core.exceptions import (
    InvalidEventError,
    MatchStateError,
    NotFoundError,
)
from competition_backend.models.match_model import (
    CardType,
    EventType,
    Match,
    MatchEvent,
    MatchStatus,
)
from competition_backend.models.player_model import SeasonPlayer
from competition_backend.models.season_model import Season
from competition_backend.models.team_model import SeasonTeam, Team

GOAL_TYPES = (EventType.GOAL, EventType.OWN_GOAL)

# Cards from these matches count; scheduled/cancelled matches have none that matter
CARD_MATCH_STATUSES = (MatchStatus.IN_PROGRESS, MatchStatus.COMPLETED)


# =========================================
# LOOKUPS
# =========================================
def get_season(session: Session, season_id: int) -> Season:
    season = session.get(Season, season_id)
    if not season:
        raise NotFoundError(f"Season {season_id} not found.", season_id=season_id)
    return season


def get_match(session: Session, match_id: int) -> Match:
    match = session.get(Match, match_id)
    if not match:
        raise NotFoundError(f"Match {match_id} not found.", match_id=match_id)
    return match


def get_event(session: Session, event_id: int) -> MatchEvent:
    event = session.get(MatchEvent, event_id)
    if not event:
        raise NotFoundError(f"Match event {event_id} not found.", event_id=event_id)
    return event


def get_player(session: Session, player_id: int) -> SeasonPlayer:
    player = session.get(SeasonPlayer, player_id)
    if not player:
        raise NotFoundError(f"Player {player_id} not found.", player_id=player_id)
    return player


# =========================================
# READ CONTRACT (consumed by the engine)
# =========================================
def list_season_teams(session: Session, season_id: int) -> List[Team]:
    """
    Teams registered for the season plus any team that appears in one of its
    fixtures, ordered by id.
    """
    registered = set(session.exec(
        select(SeasonTeam.team_id).where(SeasonTeam.season_id == season_id)
    ).all())
    for home_id, away_id in session.exec(
        select(Match.home_team_id, Match.away_team_id).where(Match.season_id == season_id)
    ).all():
        registered.update((home_id, away_id))

    if not registered:
        return []
    return list(session.exec(select(Team).where(Team.id.in_(registered)).order_by(Team.id)).all())


def list_season_matches(session: Session, season_id: int) -> List[Match]:
    """All fixtures of a season in (round, match id) order."""
    return list(session.exec(
        select(Match)
        .where(Match.season_id == season_id)
        .order_by(Match.round_number, Match.id)
    ).all())


def list_completed_matches(session: Session, season_id: int) -> List[Match]:
    """Completed fixtures in (round, match id) order. Scores are not validated here."""
    return list(session.exec(
        select(Match)
        .where(Match.season_id == season_id, Match.status == MatchStatus.COMPLETED)
        .order_by(Match.round_number, Match.id)
    ).all())


def list_non_voided_card_events(session: Session, season_id: int) -> List[Tuple[Match, MatchEvent]]:
    """
    Card events of a season joined with their match, ordered by round, then
    match id, then insertion sequence. The on-pitch minute is never used for
    ordering: two cards can share a minute.
    """
    rows = session.exec(
        select(Match, MatchEvent)
        .join(Match, Match.id == MatchEvent.match_id)
        .where(
            MatchEvent.season_id == season_id,
            MatchEvent.event_type == EventType.CARD,
            MatchEvent.voided == False,  # noqa: E712
            Match.status.in_(CARD_MATCH_STATUSES),
        )
        .order_by(Match.round_number, Match.id, MatchEvent.id)
    ).all()
    return [(match, event) for match, event in rows]


def list_roster(session: Session, season_id: int) -> Dict[int, SeasonPlayer]:
    """Season roster keyed by player id."""
    players = session.exec(select(SeasonPlayer).where(SeasonPlayer.season_id == season_id)).all()
    return {p.id: p for p in players}


def list_match_events(session: Session, match_id: int, include_voided: bool = False) -> List[MatchEvent]:
    """Events of one match for display: minute, stoppage time, then insertion order."""
    stmt = select(MatchEvent).where(MatchEvent.match_id == match_id)
    if not include_voided:
        stmt = stmt.where(MatchEvent.voided == False)  # noqa: E712
    events = session.exec(stmt.order_by(MatchEvent.id)).all()
    return sorted(events, key=lambda e: (e.minute or 0, e.stoppage_minute or 0, e.id))


# ---------------------------------------------
# Helper: which side a goal event counts for
# ---------------------------------------------
def _scoring_side(match: Match, event: MatchEvent) -> Optional[str]:
    if event.event_type not in GOAL_TYPES:
        return None
    scored_by_home = event.team_id == match.home_team_id
    if event.event_type == EventType.OWN_GOAL:
        scored_by_home = not scored_by_home
    return "home" if scored_by_home else "away"


def tally_score(session: Session, match_id: int) -> Tuple[int, int]:
    """Recount the score from non-voided goal events."""
    match = get_match(session, match_id)
    home = away = 0
    for event in list_match_events(session, match_id):
        side = _scoring_side(match, event)
        if side == "home":
            home += 1
        elif side == "away":
            away += 1
    return home, away


# =========================================
# WRITE PATH (collaborator side)
# =========================================
def bump_disciplinary_version(session: Session, season_id: int) -> None:
    """
    Move the season's disciplinary version on, in the caller's transaction.
    Any rebuild that read its snapshot before this commit loses its swap.
    """
    session.execute(
        update(Season)
        .where(Season.id == season_id)
        .values(disciplinary_version=Season.disciplinary_version + 1)
    )


def record_event(
    session: Session,
    match_id: int,
    team_id: int,
    event_type: EventType,
    card_type: Optional[CardType] = None,
    player_id: Optional[int] = None,
    related_player_id: Optional[int] = None,
    minute: Optional[int] = None,
    stoppage_minute: Optional[int] = None,
    description: Optional[str] = None,
    replaces_event_id: Optional[int] = None,
    allow_completed: bool = False,
    commit: bool = True,
) -> MatchEvent:
    """
    Append one event to the ledger.
    - The team must be one of the match's two sides.
    - Cards need a card type; other events must not carry one.
    - Goals and own goals move the match score.
    - Completed matches only accept events through the correction path.
    """
    match = get_match(session, match_id)
    event_type = EventType(event_type)
    card_type = CardType(card_type) if card_type is not None else None

    if match.status == MatchStatus.CANCELLED:
        raise MatchStateError(f"Match {match_id} is cancelled; no events can be recorded.", match_id=match_id)
    if match.status == MatchStatus.SCHEDULED:
        raise MatchStateError(f"Match {match_id} has not started yet.", match_id=match_id)
    if match.status == MatchStatus.COMPLETED and not allow_completed:
        raise MatchStateError(
            f"Match {match_id} is completed; use the correction path to change its events.",
            match_id=match_id,
        )
    if not match.involves(team_id):
        raise InvalidEventError(f"Team {team_id} does not play in match {match_id}.", match_id=match_id)
    if event_type == EventType.CARD and card_type is None:
        raise InvalidEventError("Card events need a card_type.", match_id=match_id)
    if event_type != EventType.CARD and card_type is not None:
        raise InvalidEventError(f"{event_type.value} events cannot carry a card_type.", match_id=match_id)
    if event_type == EventType.CARD and player_id is None:
        raise InvalidEventError("Card events need a player.", match_id=match_id)

    for pid in (player_id, related_player_id):
        if pid is not None and get_player(session, pid).season_id != match.season_id:
            raise InvalidEventError(
                f"Player {pid} is not registered for season {match.season_id}.",
                match_id=match_id,
                player_id=pid,
            )

    event = MatchEvent(
        match_id=match.id,
        season_id=match.season_id,
        team_id=team_id,
        event_type=event_type,
        card_type=card_type,
        player_id=player_id,
        related_player_id=related_player_id,
        minute=minute,
        stoppage_minute=stoppage_minute,
        description=description,
        replaces_event_id=replaces_event_id,
    )

    side = _scoring_side(match, event)
    if side == "home":
        match.home_score = (match.home_score or 0) + 1
        match.away_score = match.away_score or 0
    elif side == "away":
        match.away_score = (match.away_score or 0) + 1
        match.home_score = match.home_score or 0

    session.add(event)
    session.add(match)
    if event_type == EventType.CARD:
        bump_disciplinary_version(session, match.season_id)
    if not commit:
        session.flush()
        return event
    session.commit()
    session.refresh(event)

    if TEST_MODE:
        print(f"📝 Event {event.id}: {event_type.value} {card_type.value if card_type else ''} "
              f"match={match_id} team={team_id} player={player_id}")
    return event


def void_event(session: Session, event_id: int, reason: str, commit: bool = True) -> MatchEvent:
    """
    Void an event (e.g. a disallowed goal). The row is kept for audit and
    excluded from every fold; a voided goal is taken off the score.
    """
    event = get_event(session, event_id)
    if event.voided:
        raise MatchStateError(f"Event {event_id} is already voided.", event_id=event_id)

    match = get_match(session, event.match_id)
    side = _scoring_side(match, event)
    if side == "home":
        match.home_score = max(0, (match.home_score or 0) - 1)
    elif side == "away":
        match.away_score = max(0, (match.away_score or 0) - 1)

    now = datetime.now(timezone.utc)
    event.voided = True
    event.voided_reason = reason
    event.voided_at = now
    if match.status == MatchStatus.COMPLETED:
        match.corrected_at = now

    session.add(event)
    session.add(match)
    if EventType(event.event_type) == EventType.CARD:
        bump_disciplinary_version(session, match.season_id)
    if not commit:
        session.flush()
        return event
    session.commit()
    session.refresh(event)

    print(f"🚫 Event {event_id} voided on match {match.id}: {reason}")
    return event


def correct_event(session: Session, event_id: int, reason: str, **changes) -> MatchEvent:
    """
    Void-and-reinsert: fields are never edited in place. The replacement keeps
    every field of the original unless overridden in `changes`.
    """
    original = get_event(session, event_id)
    if original.voided:
        raise MatchStateError(f"Event {event_id} is voided and cannot be corrected.", event_id=event_id)

    fields = {
        "team_id": original.team_id,
        "event_type": original.event_type,
        "card_type": original.card_type,
        "player_id": original.player_id,
        "related_player_id": original.related_player_id,
        "minute": original.minute,
        "stoppage_minute": original.stoppage_minute,
        "description": original.description,
    }
    fields.update(changes)

    match_id = original.match_id
    try:
        void_event(session, event_id, f"Corrected: {reason}", commit=False)
        replacement = record_event(
            session,
            match_id,
            replaces_event_id=event_id,
            allow_completed=True,
            commit=False,
            **fields,
        )
    except Exception:
        session.rollback()
        raise

    session.commit()
    session.refresh(replacement)
    print(f"✏️  Event {event_id} corrected on match {match_id} -> event {replacement.id}")
    return replacement


def start_match(session: Session, match_id: int) -> Match:
    match = get_match(session, match_id)
    if match.status != MatchStatus.SCHEDULED:
        raise MatchStateError(
            f"Match {match_id} cannot start from status {MatchStatus(match.status).value}.",
            match_id=match_id,
        )
    match.status = MatchStatus.IN_PROGRESS
    match.home_score = match.home_score or 0
    match.away_score = match.away_score or 0
    session.add(match)
    session.commit()
    session.refresh(match)
    return match


def complete_match(
    session: Session,
    match_id: int,
    home_score: Optional[int] = None,
    away_score: Optional[int] = None,
) -> Match:
    """
    Mark a match completed with its final score.
    Scores left out are taken from the non-voided goal events.
    """
    match = get_match(session, match_id)
    if match.status in (MatchStatus.COMPLETED, MatchStatus.CANCELLED):
        raise MatchStateError(
            f"Match {match_id} is already {MatchStatus(match.status).value}.",
            match_id=match_id,
        )
    if (home_score is None) != (away_score is None):
        raise InvalidEventError("Provide both scores or neither.", match_id=match_id)
    if home_score is None:
        home_score, away_score = tally_score(session, match_id)
    if home_score < 0 or away_score < 0:
        raise InvalidEventError("Scores cannot be negative.", match_id=match_id)

    match.home_score = home_score
    match.away_score = away_score
    match.status = MatchStatus.COMPLETED
    session.add(match)
    bump_disciplinary_version(session, match.season_id)
    session.commit()
    session.refresh(match)

    print(f"🏁 Match {match.id} (round {match.round_number}) completed {home_score}-{away_score}")
    return match


def cancel_match(session: Session, match_id: int) -> Match:
    match = get_match(session, match_id)
    if match.status == MatchStatus.COMPLETED:
        raise MatchStateError(f"Match {match_id} is completed and cannot be cancelled.", match_id=match_id)
    match.status = MatchStatus.CANCELLED
    session.add(match)
    bump_disciplinary_version(session, match.season_id)
    session.commit()
    session.refresh(match)
    return match
