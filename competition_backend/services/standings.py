# standings.py
# Standings table for a season, recomputed from completed matches on every call.
#
# Ordering (both modes): points, goal difference, goals scored (all desc).
# "final" mode breaks remaining ties with a head-to-head mini-table among
# exactly the tied teams, applied recursively; whatever is still level falls
# back to team name, then team id.

from collections import namedtuple
from datetime import datetime, timezone
from typing import Dict, Iterable, List

from sqlalchemy import delete
from sqlmodel import Session

from competition_backend.core.config import TEST_MODE
from competition_backend.core.exceptions import IntegrityError
from competition_backend.models.standings_model import StandingRow, TeamSeasonStatistic
from competition_backend.services.event_ledger import (
    get_season,
    list_completed_matches,
    list_season_teams,
)

LIVE = "live"
FINAL = "final"
MODES = (LIVE, FINAL)

# Minimal view of a completed match used by the fold
Result = namedtuple("Result", ["home_team_id", "away_team_id", "home_score", "away_score"])


# ---------------------------------------------
# Fold: per-team aggregates over a set of results
# ---------------------------------------------
def _fold(team_ids: Iterable[int], results: Iterable[Result]) -> Dict[int, dict]:
    table = {
        tid: {"played": 0, "won": 0, "drawn": 0, "lost": 0,
              "goals_for": 0, "goals_against": 0, "points": 0}
        for tid in team_ids
    }

    for r in results:
        home = table[r.home_team_id]
        away = table[r.away_team_id]

        home["played"] += 1
        away["played"] += 1
        home["goals_for"] += r.home_score
        home["goals_against"] += r.away_score
        away["goals_for"] += r.away_score
        away["goals_against"] += r.home_score

        if r.home_score > r.away_score:
            home["won"] += 1
            home["points"] += 3
            away["lost"] += 1
        elif r.home_score < r.away_score:
            away["won"] += 1
            away["points"] += 3
            home["lost"] += 1
        else:
            home["drawn"] += 1
            away["drawn"] += 1
            home["points"] += 1
            away["points"] += 1

    for stats in table.values():
        stats["goal_difference"] = stats["goals_for"] - stats["goals_against"]
    return table


def _ranking_key(stats: dict) -> tuple:
    return (stats["points"], stats["goal_difference"], stats["goals_for"])


def _group_by_key(team_ids: List[int], table: Dict[int, dict]) -> List[List[int]]:
    """Split teams into groups level on the three ranking keys, best group first."""
    groups: Dict[tuple, List[int]] = {}
    for tid in team_ids:
        groups.setdefault(_ranking_key(table[tid]), []).append(tid)
    return [groups[key] for key in sorted(groups, reverse=True)]


def _break_head_to_head(group: List[int], results: List[Result], names: Dict[int, str]) -> List[int]:
    """
    Order a tied group by a mini-table of the matches played among exactly
    these teams. Subgroups still level are broken again among themselves; a
    group the mini-table cannot split at all is ordered by name.
    """
    members = set(group)
    mini_results = [r for r in results if r.home_team_id in members and r.away_team_id in members]
    mini = _fold(group, mini_results)

    ordered: List[int] = []
    for bucket in _group_by_key(group, mini):
        if len(bucket) == 1:
            ordered.extend(bucket)
        elif len(bucket) == len(group):
            ordered.extend(_alphabetical(bucket, names))
        else:
            ordered.extend(_break_head_to_head(bucket, results, names))
    return ordered


def _alphabetical(team_ids: List[int], names: Dict[int, str]) -> List[int]:
    return sorted(team_ids, key=lambda tid: (names.get(tid, ""), tid))


def rank_table(names: Dict[int, str], results: List[Result], mode: str = LIVE) -> List[StandingRow]:
    """
    Pure ranking function.
    names: {team_id: team_name} for every team that gets a row.
    results: completed matches with scores.
    """
    if mode not in MODES:
        raise ValueError(f"Unknown standings mode '{mode}'. Expected one of {MODES}.")

    team_ids = sorted(names)
    table = _fold(team_ids, results)

    ordered: List[int] = []
    for group in _group_by_key(team_ids, table):
        if len(group) == 1:
            ordered.extend(group)
        elif mode == FINAL:
            ordered.extend(_break_head_to_head(group, results, names))
        else:
            ordered.extend(_alphabetical(group, names))

    return [
        StandingRow(team_id=tid, team_name=names[tid], rank=position, **table[tid])
        for position, tid in enumerate(ordered, start=1)
    ]


# =========================================
# SERVICE ENTRY POINTS
# =========================================
def compute_standings(session: Session, season_id: int, mode: str = LIVE) -> List[StandingRow]:
    """
    Calculate the standings of a season.
    - Only completed matches count.
    - A completed match without a score is an upstream integrity violation and
      fails the whole computation.
    - Every team registered in the season gets a row.
    No side effects.
    """
    if mode not in MODES:
        raise ValueError(f"Unknown standings mode '{mode}'. Expected one of {MODES}.")

    get_season(session, season_id)

    names = {team.id: team.name for team in list_season_teams(session, season_id)}

    results = []
    for match in list_completed_matches(session, season_id):
        if match.home_score is None or match.away_score is None:
            raise IntegrityError(
                f"Match {match.id} is completed but has no final score.",
                match_id=match.id,
            )
        results.append(Result(match.home_team_id, match.away_team_id, match.home_score, match.away_score))

    return rank_table(names, results, mode)


def materialize_standings(session: Session, season_id: int, mode: str = LIVE) -> List[StandingRow]:
    """
    Replace the season's TeamSeasonStatistic rows wholesale with a fresh
    computation. Rows are never patched in place.
    """
    rows = compute_standings(session, season_id, mode)
    now = datetime.now(timezone.utc)

    session.execute(
        delete(TeamSeasonStatistic).where(TeamSeasonStatistic.season_id == season_id),
        execution_options={"synchronize_session": "fetch"},
    )
    for row in rows:
        session.add(TeamSeasonStatistic(
            season_id=season_id,
            team_id=row.team_id,
            played=row.played,
            won=row.won,
            drawn=row.drawn,
            lost=row.lost,
            goals_for=row.goals_for,
            goals_against=row.goals_against,
            goal_difference=row.goal_difference,
            points=row.points,
            rank=row.rank,
            mode=mode,
            updated_at=now,
        ))
    session.commit()

    print(f"📊 Standings materialized for season {season_id} ({mode}, {len(rows)} teams)")
    if TEST_MODE:
        for row in rows:
            print(f"   {row.rank:>2}. {row.team_name} {row.points} pts (GD {row.goal_difference})")
    return rows
