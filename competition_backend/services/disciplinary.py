# disciplinary.py
# Card accumulation and suspensions.
#
# The engine works in three steps, all pure except the snapshot read:
#   1) load_snapshot  - one consistent read of everything a rebuild needs
#   2) fold_cards     - replay card events into suspension drafts
#   3) plan_replacement - diff drafts against the persisted rows
# Writing the plan is the recalculation coordinator's job.
#
# is_suspended answers lineup questions from persisted rows plus completed
# fixtures; it never replays the card fold.

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from pydantic import BaseModel
from sqlmodel import Session, select

from competition_backend.core.config import TEST_MODE
from competition_backend.core.exceptions import (
    ConfigurationError,
    IntegrityError,
    NotFoundError,
)
from competition_backend.models.match_model import CardType, Match, MatchStatus
from competition_backend.models.season_model import Ruleset, Season
from competition_backend.models.suspension_model import (
    Suspension,
    SuspensionReason,
    SuspensionStatus,
)
from competition_backend.services.event_ledger import (
    get_match,
    get_player,
    get_season,
    list_non_voided_card_events,
    list_roster,
    list_season_matches,
)

SENDING_OFF_CARDS = (CardType.RED, CardType.SECOND_YELLOW)

# Rows a rebuild may supersede; CANCELLED and ARCHIVED rows are never touched
REPLACEABLE_STATUSES = (SuspensionStatus.ACTIVE, SuspensionStatus.SERVED)


# =========================================
# RULESET
# =========================================
@dataclass(frozen=True)
class RulesetConfig:
    red_card_ban_matches: int
    yellow_accumulation_threshold: int
    yellow_ban_matches: int
    carry_over_remainder: bool = False
    reset_accumulation_per_stage: bool = False


def load_ruleset(session: Session, season: Season) -> RulesetConfig:
    """
    Resolve and validate the season's ruleset.
    Fails closed: a missing ruleset or threshold raises ConfigurationError,
    it never means "no suspensions".
    """
    if season.ruleset_id is None:
        raise ConfigurationError(f"Season {season.id} has no disciplinary ruleset.", season_id=season.id)

    ruleset = session.get(Ruleset, season.ruleset_id)
    if ruleset is None:
        raise ConfigurationError(
            f"Ruleset {season.ruleset_id} for season {season.id} does not exist.",
            season_id=season.id,
        )

    values = {}
    for name in ("red_card_ban_matches", "yellow_accumulation_threshold", "yellow_ban_matches"):
        value = getattr(ruleset, name)
        if value is None:
            raise ConfigurationError(f"Ruleset '{ruleset.name}' is missing {name}.", season_id=season.id)
        if value < 1:
            raise ConfigurationError(
                f"Ruleset '{ruleset.name}' has invalid {name}={value}; must be at least 1.",
                season_id=season.id,
            )
        values[name] = value

    return RulesetConfig(
        carry_over_remainder=bool(ruleset.carry_over_remainder),
        reset_accumulation_per_stage=bool(ruleset.reset_accumulation_per_stage),
        **values,
    )


# =========================================
# SNAPSHOT (plain data, detached from the session)
# =========================================
@dataclass(frozen=True)
class CardRow:
    event_id: int
    match_id: int
    round_number: int
    stage: str
    team_id: int
    player_id: Optional[int]
    card_type: CardType

    @property
    def is_sending_off(self) -> bool:
        return self.card_type in SENDING_OFF_CARDS


@dataclass(frozen=True)
class FixtureRow:
    match_id: int
    round_number: int
    home_team_id: int
    away_team_id: int
    status: MatchStatus

    @property
    def order_key(self) -> Tuple[int, int]:
        return (self.round_number, self.match_id)

    @property
    def completed(self) -> bool:
        return self.status == MatchStatus.COMPLETED

    def involves(self, team_id: int) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)


@dataclass
class SuspensionDraft:
    """A suspension as computed by the fold, before it is persisted."""
    player_id: int
    team_id: int
    reason: SuspensionReason
    trigger_event_id: int
    trigger_match_id: int
    trigger_round: int
    matches_required: int
    consumed_event_ids: List[int] = field(default_factory=list)
    served_match_ids: List[int] = field(default_factory=list)
    status: SuspensionStatus = SuspensionStatus.ACTIVE

    @property
    def matches_served(self) -> int:
        return len(self.served_match_ids)

    def key(self) -> tuple:
        return (self.player_id, self.reason, self.trigger_event_id)


@dataclass
class ExistingSuspension:
    """Persisted suspension row as seen by the snapshot."""
    id: int
    player_id: int
    team_id: int
    reason: SuspensionReason
    trigger_event_id: int
    status: SuspensionStatus
    matches_required: int
    served_match_ids: List[int]
    consumed_event_ids: List[int]

    def key(self) -> tuple:
        return (self.player_id, self.reason, self.trigger_event_id)


@dataclass
class DisciplinarySnapshot:
    season_id: int
    version: int
    ruleset: RulesetConfig
    roster: Dict[int, int]              # player_id -> team_id
    cards: List[CardRow]
    fixtures: List[FixtureRow]
    existing: List[ExistingSuspension]


def _fixture_row(match: Match) -> FixtureRow:
    return FixtureRow(
        match_id=match.id,
        round_number=match.round_number,
        home_team_id=match.home_team_id,
        away_team_id=match.away_team_id,
        status=MatchStatus(match.status),
    )


def load_snapshot(session: Session, season_id: int) -> DisciplinarySnapshot:
    """
    Read everything a rebuild needs.

    The version is read first. Every ledger write that changes a fold input
    (cards, voids, completions, cancellations) bumps it, so a snapshot that
    straddles such a write can never be swapped in.
    """
    season = get_season(session, season_id)
    version = season.disciplinary_version
    ruleset = load_ruleset(session, season)

    cards = [
        CardRow(
            event_id=event.id,
            match_id=match.id,
            round_number=match.round_number,
            stage=match.stage,
            team_id=event.team_id,
            player_id=event.player_id,
            card_type=CardType(event.card_type) if event.card_type is not None else None,
        )
        for match, event in list_non_voided_card_events(session, season_id)
    ]

    existing = [
        ExistingSuspension(
            id=s.id,
            player_id=s.player_id,
            team_id=s.team_id,
            reason=SuspensionReason(s.reason),
            trigger_event_id=s.trigger_event_id,
            status=SuspensionStatus(s.status),
            matches_required=s.matches_required,
            served_match_ids=list(s.served_match_ids or []),
            consumed_event_ids=list(s.consumed_event_ids or []),
        )
        for s in session.exec(
            select(Suspension).where(Suspension.season_id == season_id).order_by(Suspension.id)
        ).all()
    ]

    return DisciplinarySnapshot(
        season_id=season_id,
        version=version,
        ruleset=ruleset,
        roster={pid: p.team_id for pid, p in list_roster(session, season_id).items()},
        cards=cards,
        fixtures=[_fixture_row(m) for m in list_season_matches(session, season_id)],
        existing=existing,
    )


# =========================================
# SERVING WALK
# =========================================
def allocate_served(
    suspensions: Iterable,
    fixtures: List[FixtureRow],
    before: Optional[Tuple[int, int]] = None,
) -> Dict[tuple, List[int]]:
    """
    Decide which completed matches count towards each suspension.

    - Only completed matches of the suspension's team strictly after the
      trigger match (round, match id) count; a ban never consumes the past.
    - A player's suspensions are served one after another: a match counted
      for one of them is not counted for another.
    - `before` limits the walk to matches strictly before that order key
      (used to answer "as of match M").

    Accepts drafts or persisted rows (anything with player_id, team_id,
    trigger_round, trigger_match_id, trigger_event_id, matches_required).
    Returns {key(): [match ids served, in order]}.
    """
    ordered_fixtures = sorted((f for f in fixtures if f.completed), key=lambda f: f.order_key)
    used: Dict[int, Set[int]] = {}
    allocation: Dict[tuple, List[int]] = {}

    queue = sorted(
        suspensions,
        key=lambda s: (s.player_id, s.trigger_round, s.trigger_match_id, s.trigger_event_id),
    )
    for sus in queue:
        taken = used.setdefault(sus.player_id, set())
        trigger_key = (sus.trigger_round, sus.trigger_match_id)
        served: List[int] = []
        for fixture in ordered_fixtures:
            if len(served) >= sus.matches_required:
                break
            if before is not None and fixture.order_key >= before:
                break
            if fixture.order_key <= trigger_key or not fixture.involves(sus.team_id):
                continue
            if fixture.match_id in taken:
                continue
            served.append(fixture.match_id)
            taken.add(fixture.match_id)
        allocation[sus.key()] = served
    return allocation


# =========================================
# CARD FOLD
# =========================================
@dataclass
class FoldResult:
    suspensions: List[SuspensionDraft]
    errors: List[dict]
    failed_players: Set[Optional[int]]


def _check_roster(player_id: int, cards: List[CardRow], roster: Dict[int, int]) -> None:
    team_id = roster.get(player_id)
    for card in cards:
        if team_id is None:
            raise IntegrityError(
                f"Card event {card.event_id} references player {player_id}, who is not registered for the season.",
                match_id=card.match_id, event_id=card.event_id, player_id=player_id,
            )
        if card.team_id != team_id:
            raise IntegrityError(
                f"Card event {card.event_id} books player {player_id} for team {card.team_id}, "
                f"but the player is registered to team {team_id}.",
                match_id=card.match_id, event_id=card.event_id, player_id=player_id,
            )


def _fold_player(player_id: int, cards: List[CardRow], rules: RulesetConfig) -> List[SuspensionDraft]:
    """
    Replay one player's cards in (round, match, insertion) order.
    Sending-offs create a RED_CARD ban each. Every yellow adds one to the
    unconsumed count; the yellow that reaches the threshold triggers an
    ACCUMULATION ban, consumes exactly the contributing cards and resets the
    count to zero.
    """
    drafts: List[SuspensionDraft] = []
    unconsumed: List[CardRow] = []
    current_stage: Optional[str] = None

    for card in cards:
        if rules.reset_accumulation_per_stage and current_stage is not None and card.stage != current_stage:
            unconsumed = []
        current_stage = card.stage

        if card.is_sending_off:
            drafts.append(SuspensionDraft(
                player_id=player_id,
                team_id=card.team_id,
                reason=SuspensionReason.RED_CARD,
                trigger_event_id=card.event_id,
                trigger_match_id=card.match_id,
                trigger_round=card.round_number,
                matches_required=rules.red_card_ban_matches,
                consumed_event_ids=[card.event_id],
            ))
            continue

        unconsumed.append(card)
        if len(unconsumed) < rules.yellow_accumulation_threshold:
            continue

        drafts.append(SuspensionDraft(
            player_id=player_id,
            team_id=card.team_id,
            reason=SuspensionReason.ACCUMULATION,
            trigger_event_id=card.event_id,
            trigger_match_id=card.match_id,
            trigger_round=card.round_number,
            matches_required=rules.yellow_ban_matches,
            consumed_event_ids=[c.event_id for c in unconsumed],
        ))
        # No remainder exists at this point, so carry_over_remainder has nothing to keep
        unconsumed = []

    return drafts


def fold_cards(snapshot: DisciplinarySnapshot) -> FoldResult:
    """
    Replay the season's non-voided cards into suspension drafts with their
    served matches and status filled in.

    - Integrity problems are collected per player; that player is skipped and
      the rest of the season still folds.
    - A draft matching a CANCELLED row is dropped; its cards stay consumed.
    """
    cancelled_keys = {e.key() for e in snapshot.existing if e.status == SuspensionStatus.CANCELLED}

    by_player: Dict[Optional[int], List[CardRow]] = {}
    for card in snapshot.cards:
        by_player.setdefault(card.player_id, []).append(card)

    drafts: List[SuspensionDraft] = []
    errors: List[dict] = []
    failed: Set[Optional[int]] = set()

    for player_id, cards in by_player.items():
        try:
            if player_id is None:
                raise IntegrityError(
                    f"Card event {cards[0].event_id} has no player.",
                    match_id=cards[0].match_id, event_id=cards[0].event_id,
                )
            _check_roster(player_id, cards, snapshot.roster)
            player_drafts = _fold_player(player_id, cards, snapshot.ruleset)
        except IntegrityError as exc:
            errors.append({"player_id": player_id, "message": exc.message, **exc.context})
            failed.add(player_id)
            print(f"⚠️ Disciplinary fold skipped player {player_id}: {exc.message}")
            continue

        for draft in player_drafts:
            if draft.key() in cancelled_keys:
                if TEST_MODE:
                    print(f"   ⏭️ Player {player_id}: {draft.reason.value} from event "
                          f"{draft.trigger_event_id} was cancelled, not re-created")
                continue
            drafts.append(draft)

    drafts.sort(key=lambda d: (d.trigger_round, d.trigger_match_id, d.trigger_event_id))

    allocation = allocate_served(drafts, snapshot.fixtures)
    for draft in drafts:
        draft.served_match_ids = allocation[draft.key()]
        draft.status = (
            SuspensionStatus.SERVED
            if draft.matches_served >= draft.matches_required
            else SuspensionStatus.ACTIVE
        )
        if TEST_MODE:
            print(f"   🟥 Player {draft.player_id}: {draft.reason.value} (event {draft.trigger_event_id}, "
                  f"round {draft.trigger_round}) {draft.matches_served}/{draft.matches_required} "
                  f"-> {draft.status.value}")

    return FoldResult(suspensions=drafts, errors=errors, failed_players=failed)


# =========================================
# REPLACEMENT PLAN
# =========================================
@dataclass
class ReplacementPlan:
    insert: List[SuspensionDraft] = field(default_factory=list)
    update: List[Tuple[int, SuspensionDraft]] = field(default_factory=list)
    archive: List[int] = field(default_factory=list)
    unchanged: List[int] = field(default_factory=list)


def _same_state(row: ExistingSuspension, draft: SuspensionDraft) -> bool:
    return (
        row.status == draft.status
        and row.team_id == draft.team_id
        and row.matches_required == draft.matches_required
        and row.served_match_ids == draft.served_match_ids
        and row.consumed_event_ids == draft.consumed_event_ids
    )


def plan_replacement(
    existing: List[ExistingSuspension],
    drafts: List[SuspensionDraft],
    skip_players: Iterable[Optional[int]] = (),
) -> ReplacementPlan:
    """
    Diff freshly folded drafts against persisted rows.
    - A draft whose key matches an ACTIVE/SERVED row reproduces it: identical
      rows are left alone, others are updated in place.
    - A SERVED row whose draft is back to ACTIVE is archived and replaced,
      since nothing moves a row out of SERVED.
    - ACTIVE/SERVED rows not reproduced are archived, never deleted.
    - Rows of players in skip_players (fold errors) are left untouched.
    """
    skip = set(skip_players)
    plan = ReplacementPlan()

    current: Dict[tuple, ExistingSuspension] = {}
    for row in existing:
        if row.status not in REPLACEABLE_STATUSES or row.player_id in skip:
            continue
        if row.key() in current:
            plan.archive.append(row.id)
            continue
        current[row.key()] = row

    for draft in drafts:
        if draft.player_id in skip:
            continue
        row = current.pop(draft.key(), None)
        if row is None:
            plan.insert.append(draft)
        elif row.status == SuspensionStatus.SERVED and draft.status == SuspensionStatus.ACTIVE:
            plan.archive.append(row.id)
            plan.insert.append(draft)
        elif _same_state(row, draft):
            plan.unchanged.append(row.id)
        else:
            plan.update.append((row.id, draft))

    plan.archive.extend(row.id for row in current.values())
    return plan


# =========================================
# SUSPENSION QUERY
# =========================================
class SuspensionCheck(BaseModel):
    """Answer to "may player P play match M"."""
    player_id: int
    match_id: int
    suspended: bool
    reason: Optional[SuspensionReason] = None
    suspension_id: Optional[int] = None
    matches_required: int = 0
    matches_served: int = 0
    message: Optional[str] = None


def describe_suspension(sus: Suspension, served: int, rules: Optional[RulesetConfig] = None) -> str:
    """Human-readable reason for lineup error messages."""
    remaining = sus.matches_required - served
    if SuspensionReason(sus.reason) == SuspensionReason.RED_CARD:
        cause = f"sent off in round {sus.trigger_round}"
    elif rules is not None:
        cause = f"reached {rules.yellow_accumulation_threshold} yellow cards in round {sus.trigger_round}"
    else:
        cause = f"yellow card accumulation in round {sus.trigger_round}"
    plural = "match" if remaining == 1 else "matches"
    return f"Suspended: {cause}; {remaining} {plural} left to serve ({served}/{sus.matches_required} served)."


def _player_suspensions(session: Session, season_id: int, player_id: int) -> List[Suspension]:
    return list(session.exec(
        select(Suspension)
        .where(
            Suspension.season_id == season_id,
            Suspension.player_id == player_id,
            Suspension.status.in_(REPLACEABLE_STATUSES),
        )
        .order_by(Suspension.trigger_round, Suspension.trigger_match_id, Suspension.trigger_event_id)
    ).all())


def _team_fixtures(session: Session, season_id: int, team_ids: Set[int]) -> List[FixtureRow]:
    if not team_ids:
        return []
    matches = session.exec(
        select(Match)
        .where(
            Match.season_id == season_id,
            Match.status == MatchStatus.COMPLETED,
            (Match.home_team_id.in_(team_ids)) | (Match.away_team_id.in_(team_ids)),
        )
        .order_by(Match.round_number, Match.id)
    ).all()
    return [_fixture_row(m) for m in matches]


def evaluate_player(
    session: Session,
    season_id: int,
    match: Match,
    player_id: int,
    rules: RulesetConfig,
) -> SuspensionCheck:
    """Suspension check for one player once season, match and ruleset are validated."""
    suspensions = _player_suspensions(session, season_id, player_id)
    target = (match.round_number, match.id)

    fixtures = _team_fixtures(session, season_id, {s.team_id for s in suspensions})
    allocation = allocate_served(suspensions, fixtures, before=target)

    for sus in suspensions:
        if SuspensionStatus(sus.status) != SuspensionStatus.ACTIVE:
            continue
        if (sus.trigger_round, sus.trigger_match_id) >= target:
            continue
        served = len(allocation.get(sus.key(), []))
        if served < sus.matches_required:
            return SuspensionCheck(
                player_id=player_id,
                match_id=match.id,
                suspended=True,
                reason=SuspensionReason(sus.reason),
                suspension_id=sus.id,
                matches_required=sus.matches_required,
                matches_served=served,
                message=describe_suspension(sus, served, rules),
            )

    return SuspensionCheck(player_id=player_id, match_id=match.id, suspended=False)


def resolve_match(session: Session, season_id: int, match_id: int) -> Match:
    match = get_match(session, match_id)
    if match.season_id != season_id:
        raise NotFoundError(
            f"Match {match_id} does not belong to season {season_id}.",
            season_id=season_id, match_id=match_id,
        )
    return match


def is_suspended(session: Session, season_id: int, match_id: int, player_id: int) -> SuspensionCheck:
    """
    Is the player suspended for this match?
    True when an ACTIVE suspension triggered strictly before the match (round,
    match id order) has fewer served matches than required, counting only
    completed team matches strictly before this one.
    Raises ConfigurationError when the season's ruleset is unusable.
    """
    season = get_season(session, season_id)
    rules = load_ruleset(session, season)
    match = resolve_match(session, season_id, match_id)

    player = get_player(session, player_id)
    if player.season_id != season_id:
        raise NotFoundError(
            f"Player {player_id} is not registered for season {season_id}.",
            season_id=season_id, player_id=player_id,
        )

    return evaluate_player(session, season_id, match, player_id, rules)
