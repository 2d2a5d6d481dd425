"""
API integration tests.
Uses TestClient against a fresh in-memory database per test.
"""
import pytest
from fastapi.testclient import TestClient

from competition_backend.core.database import get_session
from competition_backend.main import app
from competition_backend.models import Ruleset, Season
from competition_backend.services.recalculation import RecalculationCoordinator, get_coordinator


@pytest.fixture
def client(engine, session):
    def override_session():
        yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_coordinator] = lambda: RecalculationCoordinator(engine)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _card(client, match_id, team_id, player_id, card_type="YELLOW"):
    resp = client.post(f"/matches/{match_id}/events", json={
        "team_id": team_id, "event_type": "CARD", "card_type": card_type, "player_id": player_id,
    })
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_full_matchday_flow(client, two_team_season):
    season, home, away, player, opponent, (md1, md2, md3, md4, md5) = two_team_season

    assert client.post(f"/matches/{md1.id}/start").status_code == 200
    resp = client.post(f"/matches/{md1.id}/events", json={
        "team_id": home.id, "event_type": "GOAL", "player_id": player.id, "minute": 12,
    })
    assert resp.status_code == 200
    _card(client, md1.id, away.id, opponent.id, "RED")

    resp = client.post(f"/matches/{md1.id}/complete", json={})
    assert resp.status_code == 200
    body = resp.json()
    assert body["discipline"]["created"] == 1
    assert body["standings"][0]["team_name"] == "Home FC"

    resp = client.get(f"/standings/{season.id}", params={"mode": "final"})
    assert [row["points"] for row in resp.json()] == [3, 0]

    resp = client.post(f"/matches/{md2.id}/lineup/check", json={"player_ids": [opponent.id]})
    assert resp.status_code == 200
    lineup = resp.json()
    assert lineup["valid"] is False
    assert [s["player_id"] for s in lineup["suspended"]] == [opponent.id]

    resp = client.get(f"/discipline/{season.id}/check", params={"match_id": md2.id, "player_id": player.id})
    assert resp.json()["suspended"] is False


def test_void_event_refreshes_discipline(client, two_team_season):
    season, home, away, player, opponent, (md1, md2, md3, md4, md5) = two_team_season
    client.post(f"/matches/{md1.id}/start")
    card = _card(client, md1.id, home.id, player.id, "RED")
    client.post(f"/matches/{md1.id}/complete", json={"home_score": 0, "away_score": 0})

    active = client.get(f"/discipline/{season.id}/suspensions/active").json()
    assert len(active) == 1

    resp = client.post(f"/matches/events/{card['id']}/void", json={"reason": "Referee error"})
    assert resp.status_code == 200
    assert resp.json()["voided"] is True

    assert client.get(f"/discipline/{season.id}/suspensions/active").json() == []
    archived = client.get(f"/discipline/{season.id}/suspensions", params={"status": "ARCHIVED"}).json()
    assert len(archived) == 1


def test_cancel_suspension_and_overview(client, two_team_season):
    season, home, away, player, opponent, (md1, md2, md3, md4, md5) = two_team_season
    client.post(f"/matches/{md1.id}/start")
    _card(client, md1.id, home.id, player.id)
    _card(client, md1.id, away.id, opponent.id, "SECOND_YELLOW")
    client.post(f"/matches/{md1.id}/complete", json={"home_score": 1, "away_score": 1})

    overview = client.get(f"/discipline/{season.id}/overview").json()
    assert overview["summary"]["total_yellow_cards"] == 1
    assert overview["summary"]["total_red_cards"] == 1
    assert overview["summary"]["active_suspensions"] == 1
    assert overview["top_offenders"][0]["player_id"] == opponent.id

    cards = client.get(f"/discipline/{season.id}/cards").json()
    assert [c["player_id"] for c in cards] == [opponent.id, player.id]

    [suspension] = overview["active_suspensions"]
    resp = client.post(f"/discipline/suspensions/{suspension['id']}/cancel", json={"notes": "Appeal"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "CANCELLED"

    resp = client.post(f"/discipline/suspensions/{suspension['id']}/cancel", json={})
    assert resp.status_code == 409


def test_recalculate_endpoint(client, two_team_season):
    season, home, away, player, opponent, matches = two_team_season
    resp = client.post(f"/discipline/{season.id}/recalculate")
    assert resp.status_code == 200
    assert resp.json()["superseded"] is False
    assert resp.json()["version"] == 1


def test_error_mapping(client, session, two_team_season):
    season, home, away, player, opponent, (md1, md2, md3, md4, md5) = two_team_season

    resp = client.get("/standings/999")
    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFoundError"

    # Events on a match that has not kicked off
    resp = client.post(f"/matches/{md1.id}/events", json={"team_id": home.id, "event_type": "GOAL"})
    assert resp.status_code == 409

    client.post(f"/matches/{md1.id}/start")
    resp = client.post(f"/matches/{md1.id}/events", json={"team_id": home.id, "event_type": "CARD"})
    assert resp.status_code == 422

    resp = client.post(f"/matches/{md1.id}/lineup/check", json={"player_ids": [4242]})
    assert resp.status_code == 404

    # Ruleset lost its thresholds
    ruleset = session.get(Ruleset, session.get(Season, season.id).ruleset_id)
    ruleset.yellow_accumulation_threshold = None
    session.add(ruleset)
    session.commit()
    resp = client.get(f"/discipline/{season.id}/check", params={"match_id": md2.id, "player_id": player.id})
    assert resp.status_code == 422
    assert resp.json()["error"] == "ConfigurationError"


def test_invalid_standings_mode_rejected(client, two_team_season):
    season = two_team_season[0]
    assert client.get(f"/standings/{season.id}", params={"mode": "weekly"}).status_code == 422


def test_lifespan_creates_tables():
    from sqlalchemy import inspect

    from competition_backend.core.database import engine as app_engine

    with TestClient(app) as started:
        assert inspect(app_engine).has_table("season")
        assert started.get("/standings/999").status_code == 404
