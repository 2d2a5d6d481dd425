# discipline_reports.py
# Read-only disciplinary reports: card counts per player, suspension lists
# and the season overview used by the discipline dashboard.

from typing import List, Optional

from pydantic import BaseModel
from sqlmodel import Session, select

from competition_backend.models.match_model import CardType, MatchEvent
from competition_backend.models.suspension_model import Suspension, SuspensionRead, SuspensionStatus
from competition_backend.models.team_model import Team
from competition_backend.services.event_ledger import (
    get_season,
    list_non_voided_card_events,
    list_roster,
)

TOP_OFFENDERS = 10


class PlayerCardSummary(BaseModel):
    player_id: int
    player_name: str
    shirt_number: Optional[int] = None
    team_id: int
    team_name: str
    yellow_cards: int = 0
    red_cards: int = 0
    matches_with_events: int = 0


class DisciplinarySummary(BaseModel):
    total_yellow_cards: int
    total_red_cards: int
    total_cards: int
    active_suspensions: int
    players_with_cards: int


class DisciplinaryOverview(BaseModel):
    season_id: int
    summary: DisciplinarySummary
    top_offenders: List[PlayerCardSummary]
    active_suspensions: List[SuspensionRead]


def card_summary(session: Session, season_id: int) -> List[PlayerCardSummary]:
    """
    Yellow and red counts for every player booked in the season.
    Second yellows count as reds. Voided cards are ignored.
    Sorted by reds, yellows, then name.
    """
    get_season(session, season_id)
    roster = list_roster(session, season_id)
    team_names = {t.id: t.name for t in session.exec(select(Team)).all()}

    counts = {}
    for _, event in list_non_voided_card_events(session, season_id):
        if event.player_id is None or event.player_id not in roster:
            continue
        row = counts.setdefault(event.player_id, {"yellow": 0, "red": 0})
        if CardType(event.card_type) == CardType.YELLOW:
            row["yellow"] += 1
        else:
            row["red"] += 1

    if not counts:
        return []

    # Matches in which the player shows up in the ledger at all
    appearances = {}
    for player_id, match_id in session.exec(
        select(MatchEvent.player_id, MatchEvent.match_id).where(
            MatchEvent.season_id == season_id,
            MatchEvent.voided == False,  # noqa: E712
            MatchEvent.player_id.in_(list(counts)),
        )
    ).all():
        appearances.setdefault(player_id, set()).add(match_id)

    summaries = []
    for player_id, row in counts.items():
        player = roster[player_id]
        summaries.append(PlayerCardSummary(
            player_id=player_id,
            player_name=player.full_name,
            shirt_number=player.shirt_number,
            team_id=player.team_id,
            team_name=team_names.get(player.team_id, f"Team {player.team_id}"),
            yellow_cards=row["yellow"],
            red_cards=row["red"],
            matches_with_events=len(appearances.get(player_id, ())),
        ))

    summaries.sort(key=lambda s: (-s.red_cards, -s.yellow_cards, s.player_name))
    return summaries


def list_suspensions(
    session: Session,
    season_id: int,
    status: Optional[SuspensionStatus] = None,
) -> List[Suspension]:
    """Suspensions of a season, newest trigger first. Archived rows only when asked for."""
    get_season(session, season_id)
    stmt = select(Suspension).where(Suspension.season_id == season_id)
    if status is not None:
        stmt = stmt.where(Suspension.status == SuspensionStatus(status))
    else:
        stmt = stmt.where(Suspension.status != SuspensionStatus.ARCHIVED)
    stmt = stmt.order_by(
        Suspension.trigger_round.desc(), Suspension.trigger_match_id.desc(), Suspension.id.desc()
    )
    return list(session.exec(stmt).all())


def list_active_suspensions(session: Session, season_id: int) -> List[Suspension]:
    return list_suspensions(session, season_id, SuspensionStatus.ACTIVE)


def disciplinary_overview(session: Session, season_id: int) -> DisciplinaryOverview:
    cards = card_summary(session, season_id)
    active = list_active_suspensions(session, season_id)

    total_yellow = sum(c.yellow_cards for c in cards)
    total_red = sum(c.red_cards for c in cards)

    # A red weighs as much as two yellows
    offenders = sorted(cards, key=lambda c: -(c.red_cards * 2 + c.yellow_cards))[:TOP_OFFENDERS]

    return DisciplinaryOverview(
        season_id=season_id,
        summary=DisciplinarySummary(
            total_yellow_cards=total_yellow,
            total_red_cards=total_red,
            total_cards=total_yellow + total_red,
            active_suspensions=len(active),
            players_with_cards=len(cards),
        ),
        top_offenders=offenders,
        active_suspensions=[SuspensionRead.model_validate(s) for s in active],
    )
