# suspension_gate.py
# Lineup check: which of the submitted players are suspended for a match.
# Read-only; the lineup itself is owned by the submission workflow.

from typing import Iterable, List

from pydantic import BaseModel
from sqlmodel import Session, select

from competition_backend.core.config import TEST_MODE
from competition_backend.core.exceptions import NotFoundError
from competition_backend.models.player_model import SeasonPlayer
from competition_backend.models.suspension_model import SuspensionReason
from competition_backend.services.disciplinary import evaluate_player, load_ruleset, resolve_match
from competition_backend.services.event_ledger import get_season


class SuspendedPlayer(BaseModel):
    player_id: int
    reason: SuspensionReason
    suspension_id: int
    message: str


def check_suspensions(
    session: Session,
    season_id: int,
    match_id: int,
    player_ids: Iterable[int],
) -> List[SuspendedPlayer]:
    """
    Return one entry per suspended player in the lineup, in submission order.
    Every player is checked; an empty list means the lineup is clear.
    Unknown or unregistered player ids are reported together as NotFoundError.
    """
    season = get_season(session, season_id)
    rules = load_ruleset(session, season)
    match = resolve_match(session, season_id, match_id)

    # Keep submission order, drop duplicates
    ids = list(dict.fromkeys(player_ids))
    if not ids:
        return []

    registered = set(session.exec(
        select(SeasonPlayer.id).where(SeasonPlayer.season_id == season_id, SeasonPlayer.id.in_(ids))
    ).all())
    unknown = [pid for pid in ids if pid not in registered]
    if unknown:
        raise NotFoundError(
            f"Players not registered for season {season_id}: {unknown}",
            season_id=season_id,
            player_ids=unknown,
        )

    blocked = []
    for player_id in ids:
        check = evaluate_player(session, season_id, match, player_id, rules)
        if check.suspended:
            blocked.append(SuspendedPlayer(
                player_id=player_id,
                reason=check.reason,
                suspension_id=check.suspension_id,
                message=check.message,
            ))

    if blocked:
        print(f"⛔ Lineup for match {match_id}: {len(blocked)} suspended player(s) "
              f"{[b.player_id for b in blocked]}")
    elif TEST_MODE:
        print(f"✅ Lineup for match {match_id}: all {len(ids)} players eligible")
    return blocked


# -------------------------------
# Pydantic schemas for the lineup route
# -------------------------------
class LineupCheckRequest(BaseModel):
    player_ids: List[int]


class LineupCheckResponse(BaseModel):
    match_id: int
    valid: bool
    suspended: List[SuspendedPlayer] = []
