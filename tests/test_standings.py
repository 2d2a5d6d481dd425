"""
Tests for the standings calculator: points, ordering keys, head-to-head in
final mode and the alphabetical fallback.
"""
import pytest

from competition_backend.core.exceptions import IntegrityError, NotFoundError
from competition_backend.models import Match, MatchStatus, TeamSeasonStatistic
from competition_backend.services.event_ledger import complete_match, void_event
from competition_backend.services.standings import (
    FINAL,
    LIVE,
    Result,
    compute_standings,
    materialize_standings,
    rank_table,
)
from sqlmodel import Session, select


def _names(rows):
    return [row.team_name for row in rows]


def test_points_and_aggregates(build, session):
    season = build.season()
    a = build.team(season, "Alpha")
    b = build.team(season, "Bravo")
    c = build.team(season, "Charlie")
    build.complete(build.match(season, a, b, 1), 3, 1)
    build.complete(build.match(season, b, c, 2), 2, 2)

    rows = compute_standings(session, season.id)
    by_name = {row.team_name: row for row in rows}

    assert _names(rows) == ["Alpha", "Charlie", "Bravo"]
    assert (by_name["Alpha"].points, by_name["Alpha"].won, by_name["Alpha"].goal_difference) == (3, 1, 2)
    assert (by_name["Bravo"].played, by_name["Bravo"].drawn, by_name["Bravo"].lost) == (2, 1, 1)
    assert (by_name["Bravo"].goals_for, by_name["Bravo"].goals_against) == (3, 5)
    assert [row.rank for row in rows] == [1, 2, 3]


def test_only_completed_matches_count(build, session):
    season = build.season()
    a = build.team(season, "Alpha")
    b = build.team(season, "Bravo")
    in_play = build.match(season, a, b, 1)
    build.goal(in_play, a)
    build.match(season, b, a, 2)

    rows = compute_standings(session, season.id)
    assert all(row.played == 0 and row.points == 0 for row in rows)


def test_team_without_matches_still_gets_a_row(build, session):
    season = build.season()
    build.team(season, "Lonely")
    rows = compute_standings(session, season.id)
    assert len(rows) == 1
    assert rows[0].played == 0


def test_voided_goal_changes_the_table(build, session):
    season = build.season()
    alpha = build.team(season, "Alpha")
    bravo = build.team(season, "Bravo")
    md1 = build.match(season, bravo, alpha, 1)
    disallowed = build.goal(md1, bravo)
    complete_match(session, md1.id)  # 1-0 from the goal events
    assert compute_standings(session, season.id)[0].team_name == "Bravo"

    void_event(session, disallowed.id, "Handball")
    rows = compute_standings(session, season.id)
    assert [(row.team_name, row.points) for row in rows] == [("Alpha", 1), ("Bravo", 1)]


def test_live_mode_ties_fall_back_to_name(build, session):
    season = build.season()
    zulu = build.team(season, "Zulu")
    alpha = build.team(season, "Alpha")
    build.complete(build.match(season, zulu, alpha, 1), 1, 1)

    assert _names(compute_standings(session, season.id, LIVE)) == ["Alpha", "Zulu"]


def test_final_mode_uses_head_to_head(build, session):
    season = build.season()
    alpha = build.team(season, "Alpha")
    bravo = build.team(season, "Bravo")
    charlie = build.team(season, "Charlie")
    delta = build.team(season, "Delta")
    build.complete(build.match(season, bravo, alpha, 1), 1, 0)
    build.complete(build.match(season, alpha, charlie, 2), 1, 0)
    build.complete(build.match(season, delta, bravo, 3), 1, 0)

    # Alpha and Bravo: 3 pts, GD 0, GF 1 each; Bravo won their meeting
    assert _names(compute_standings(session, season.id, LIVE)) == ["Delta", "Alpha", "Bravo", "Charlie"]
    assert _names(compute_standings(session, season.id, FINAL)) == ["Delta", "Bravo", "Alpha", "Charlie"]


def _tied_league(build, name, fixtures):
    season = build.season(name=name)
    teams = {n: build.team(season, n) for n in ("Alpha", "Bravo", "Charlie", "Delta")}
    for home, away, round_number, score in fixtures:
        build.complete(build.match(season, teams[home], teams[away], round_number), *score)
    return season


TIED_FIXTURES = [
    ("Bravo", "Alpha", 1, (1, 0)),
    ("Alpha", "Charlie", 2, (1, 0)),
    ("Delta", "Bravo", 3, (1, 0)),
    ("Charlie", "Delta", 4, (2, 2)),
]


def test_standings_are_deterministic(build, session, engine):
    season = _tied_league(build, "Season", TIED_FIXTURES)

    for mode in (LIVE, FINAL):
        first = compute_standings(session, season.id, mode)
        with Session(engine) as other:
            second = compute_standings(other, season.id, mode)
        assert [row.model_dump_json() for row in first] == [row.model_dump_json() for row in second]


def test_standings_ignore_match_insertion_order(build, session):
    forwards = _tied_league(build, "Forwards", TIED_FIXTURES)
    backwards = _tied_league(build, "Backwards", list(reversed(TIED_FIXTURES)))

    for mode in (LIVE, FINAL):
        a = compute_standings(session, forwards.id, mode)
        b = compute_standings(session, backwards.id, mode)
        assert [row.model_dump(exclude={"team_id"}) for row in a] == [row.model_dump(exclude={"team_id"}) for row in b]


def test_three_way_cycle_falls_back_to_name(build, session):
    season = build.season()
    charlie = build.team(season, "Charlie")
    alpha = build.team(season, "Alpha")
    bravo = build.team(season, "Bravo")
    build.complete(build.match(season, alpha, bravo, 1), 1, 0)
    build.complete(build.match(season, bravo, charlie, 2), 1, 0)
    build.complete(build.match(season, charlie, alpha, 3), 1, 0)

    assert _names(compute_standings(session, season.id, FINAL)) == ["Alpha", "Bravo", "Charlie"]


def test_head_to_head_mini_table_orders_tied_group():
    names = {1: "A", 2: "B", 3: "C", 4: "D", 5: "E"}
    results = [
        # A, B, C all finish on 4 pts, GD 0, GF 2
        Result(1, 2, 1, 1),
        Result(2, 3, 1, 0),
        Result(3, 1, 1, 0),
        Result(1, 4, 1, 0),
        Result(4, 2, 1, 0),
        Result(3, 5, 1, 1),
    ]
    live = rank_table(names, results, LIVE)
    tied = [row.team_name for row in live if row.points == 4]
    assert tied == ["A", "B", "C"]

    # Mini-table: A 1 pt, B 4 pts, C 3 pts
    final = rank_table(names, results, FINAL)
    assert [row.team_name for row in final][:3] == ["B", "C", "A"]


def test_completed_match_without_score_is_an_integrity_error(build, session):
    season = build.season()
    a = build.team(season, "Alpha")
    b = build.team(season, "Bravo")
    match = build.match(season, a, b, 1)
    row = session.get(Match, match.id)
    row.status = MatchStatus.COMPLETED
    session.add(row)
    session.commit()

    with pytest.raises(IntegrityError) as exc:
        compute_standings(session, season.id)
    assert exc.value.match_id == match.id


def test_unknown_season_and_mode(build, session):
    with pytest.raises(NotFoundError):
        compute_standings(session, 404)
    season = build.season()
    with pytest.raises(ValueError):
        compute_standings(session, season.id, "weekly")


def test_materialize_replaces_rows(build, session):
    season = build.season()
    a = build.team(season, "Alpha")
    b = build.team(season, "Bravo")
    build.complete(build.match(season, a, b, 1), 2, 0)

    materialize_standings(session, season.id)
    materialize_standings(session, season.id)

    stored = session.exec(
        select(TeamSeasonStatistic).where(TeamSeasonStatistic.season_id == season.id)
    ).all()
    assert len(stored) == 2
    assert {s.team_id: s.points for s in stored} == {a.id: 3, b.id: 0}
