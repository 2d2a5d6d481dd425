# generate_fixtures.py
# Generates the fixture list (round-robin) for a season's registered teams.

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlmodel import Session, select

from competition_backend.core.exceptions import MatchStateError
from competition_backend.models.match_model import Match, MatchStatus
from competition_backend.models.team_model import SeasonTeam
from competition_backend.services.event_ledger import get_season


def round_robin_pairings(team_ids: List[int], double: bool = True) -> List[List[Tuple[int, int]]]:
    """
    Pairings per round using the circle method.
    Odd team counts get a bye each round. The second cycle swaps home/away.
    """
    ids: List[Optional[int]] = list(team_ids)
    if len(ids) % 2 != 0:
        ids.append(None)  # Bye

    half = len(ids) // 2
    rounds = []

    for cycle in range(2 if double else 1):
        rotated = ids[:]
        for _ in range(len(ids) - 1):
            pairs = []
            for i in range(half):
                home = rotated[i]
                away = rotated[-i - 1]
                if home is None or away is None:
                    continue
                if cycle == 1:
                    home, away = away, home
                pairs.append((home, away))
            rounds.append(pairs)

            # Keep the first team fixed, rotate the rest
            rotated = [rotated[0]] + [rotated[-1]] + rotated[1:-1]

    return rounds


def generate_fixtures_for_season(session: Session, season_id: int, double: bool = True) -> List[Match]:
    """
    Creates the season's fixtures, one round per week on Saturdays at 15:00 UTC.
    Refuses to run once any match has started; scheduled fixtures are replaced.
    """
    season = get_season(session, season_id)

    team_ids = sorted(session.exec(
        select(SeasonTeam.team_id).where(SeasonTeam.season_id == season_id)
    ).all())
    if len(team_ids) < 2:
        raise ValueError(f"Not enough teams in {season.name} to generate fixtures.")

    existing = session.exec(select(Match).where(Match.season_id == season_id)).all()
    if any(m.status != MatchStatus.SCHEDULED for m in existing):
        raise MatchStateError(
            f"Season {season.name} already has matches under way; fixtures are locked.",
            season_id=season_id,
        )
    for match in existing:
        session.delete(match)
    session.flush()

    # First Saturday on or after the season start
    kickoff = (season.start_date or datetime.now(timezone.utc)).replace(hour=15, minute=0, second=0, microsecond=0)
    while kickoff.weekday() != 5:
        kickoff += timedelta(days=1)

    matches = []
    for round_number, pairs in enumerate(round_robin_pairings(team_ids, double), start=1):
        match_time = kickoff + timedelta(weeks=round_number - 1)
        for home_id, away_id in pairs:
            match = Match(
                season_id=season_id,
                round_number=round_number,
                home_team_id=home_id,
                away_team_id=away_id,
                match_time=match_time,
            )
            session.add(match)
            matches.append(match)

    session.commit()
    print(f"✅ Fixtures generated for {season.name} ({len(matches)} matches total)")
    return matches
