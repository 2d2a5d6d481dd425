"""
Shared fixtures: a fresh in-memory database per test and a small builder for
seasons, teams, players, matches and cards.
"""
import os

os.environ.setdefault("COMPETITION_DATABASE_URL", "sqlite://")
os.environ.setdefault("COMPETITION_AUTO_SEED", "false")

import pytest
from sqlmodel import Session, select

from competition_backend.core.database import init_db, make_engine
from competition_backend.core.ruleset_config import DEFAULT_RULESET
from competition_backend.models import (
    CardType,
    EventType,
    Match,
    MatchStatus,
    Ruleset,
    Season,
    SeasonPlayer,
    SeasonTeam,
    Suspension,
    Team,
)
from competition_backend.services import event_ledger
from competition_backend.services.recalculation import RecalculationCoordinator


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def coordinator(engine):
    return RecalculationCoordinator(engine)


class LeagueBuilder:
    """Creates committed rows through the same ledger functions the API uses."""

    def __init__(self, session: Session):
        self.session = session

    def _save(self, obj):
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def ruleset(self, **overrides) -> Ruleset:
        values = dict(DEFAULT_RULESET)
        values.update(overrides)
        return self._save(Ruleset(**values))

    def season(self, ruleset: Ruleset = None, name: str = "Test Season", no_ruleset: bool = False) -> Season:
        if ruleset is None and not no_ruleset:
            ruleset = self.ruleset()
        return self._save(Season(name=name, ruleset_id=ruleset.id if ruleset else None))

    def team(self, season: Season, name: str) -> Team:
        team = self._save(Team(name=name))
        self._save(SeasonTeam(season_id=season.id, team_id=team.id))
        return team

    def player(self, season: Season, team: Team, name: str = "Player", shirt_number: int = None) -> SeasonPlayer:
        return self._save(SeasonPlayer(
            season_id=season.id, team_id=team.id, full_name=name, shirt_number=shirt_number,
        ))

    def match(self, season: Season, home: Team, away: Team, round_number: int, stage: str = "regular") -> Match:
        return self._save(Match(
            season_id=season.id,
            home_team_id=home.id,
            away_team_id=away.id,
            round_number=round_number,
            stage=stage,
        ))

    def card(self, match: Match, player: SeasonPlayer, card_type: CardType = CardType.YELLOW,
             team: Team = None, minute: int = None):
        if self.session.get(Match, match.id).status == MatchStatus.SCHEDULED:
            event_ledger.start_match(self.session, match.id)
        return event_ledger.record_event(
            self.session,
            match.id,
            team.id if team else player.team_id,
            EventType.CARD,
            card_type=card_type,
            player_id=player.id,
            minute=minute,
        )

    def goal(self, match: Match, team: Team, player: SeasonPlayer = None, own_goal: bool = False):
        if self.session.get(Match, match.id).status == MatchStatus.SCHEDULED:
            event_ledger.start_match(self.session, match.id)
        return event_ledger.record_event(
            self.session,
            match.id,
            team.id,
            EventType.OWN_GOAL if own_goal else EventType.GOAL,
            player_id=player.id if player else None,
        )

    def complete(self, match: Match, home_score: int = 0, away_score: int = 0) -> Match:
        if self.session.get(Match, match.id).status == MatchStatus.SCHEDULED:
            event_ledger.start_match(self.session, match.id)
        return event_ledger.complete_match(self.session, match.id, home_score, away_score)

    def suspensions(self, season: Season, status=None):
        """Fresh read of the season's suspension rows (other sessions may have written them)."""
        self.session.expire_all()
        stmt = select(Suspension).where(Suspension.season_id == season.id)
        if status is not None:
            stmt = stmt.where(Suspension.status == status)
        return list(self.session.exec(stmt.order_by(Suspension.id)).all())


@pytest.fixture
def build(session):
    return LeagueBuilder(session)


@pytest.fixture
def two_team_season(build):
    """
    Season with teams Home/Away, one player on each side and five rounds of
    Home vs Away (all scheduled).
    """
    season = build.season()
    home = build.team(season, "Home FC")
    away = build.team(season, "Away FC")
    player = build.player(season, home, "Booked Player", 4)
    opponent = build.player(season, away, "Opponent", 9)
    matches = [build.match(season, home, away, md) for md in range(1, 6)]
    return season, home, away, player, opponent, matches
