"""Tests for the JSON API: status codes and the error payload shape."""

import pytest
from fastapi.testclient import TestClient

from playingxi.db.session import get_db
from playingxi.web.main import app, get_clock, get_session_scope


@pytest.fixture
def client(db_session, clock, session_scope):
    def override_db():
        yield db_session

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_session_scope] = lambda: session_scope
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def league_setup(make_league):
    return make_league()


def lineup_url(league, team, match):
    return f"/api/leagues/{league.id}/teams/{team.id}/matches/{match.id}/lineup"


def test_save_and_read_lineup(client, league_setup, base_xi):
    league, (alpha, _bravo), matches = league_setup
    payload = {"player_ids": base_xi, "captain_id": 3, "vice_captain_id": 11}

    response = client.post(lineup_url(league, alpha, matches[0]), json=payload)
    assert response.status_code == 200
    body = response.json()
    assert body["lineup"]["origin"] == "EXPLICIT"
    assert body["budget"]["transfers_remaining"] == 10

    response = client.get(lineup_url(league, alpha, matches[0]))
    assert response.status_code == 200
    assert response.json()["captain_id"] == 3


def test_invalid_composition_payload(client, league_setup, base_xi):
    league, (alpha, _bravo), matches = league_setup
    no_keeper = [8 if pid == 1 else pid for pid in base_xi]

    response = client.post(
        lineup_url(league, alpha, matches[0]),
        json={"player_ids": no_keeper, "captain_id": 3, "vice_captain_id": 11},
    )

    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "INVALID_COMPOSITION"
    assert body["details"]["violations"] == ["at least 1 wicketkeeper required"]


def test_sequential_lock_payload(client, clock, league_setup, base_xi):
    league, (alpha, _bravo), matches = league_setup
    payload = {"player_ids": base_xi, "captain_id": 3, "vice_captain_id": 11}
    client.post(lineup_url(league, alpha, matches[0]), json=payload)
    clock.set(matches[1].scheduled_start)

    response = client.post(lineup_url(league, alpha, matches[2]), json=payload)

    assert response.status_code == 409
    assert response.json()["error"] == "SEQUENTIAL_LOCK_VIOLATION"
    assert response.json()["details"]["match_id"] == matches[1].id


def test_missing_lineup_is_404(client, league_setup):
    league, (alpha, _bravo), matches = league_setup

    response = client.get(lineup_url(league, alpha, matches[0]))

    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"


def test_match_statuses_and_budget(client, clock, league_setup, base_xi):
    league, (alpha, _bravo), matches = league_setup
    client.post(
        lineup_url(league, alpha, matches[0]),
        json={"player_ids": base_xi, "captain_id": 3, "vice_captain_id": 11},
    )
    clock.set(matches[0].scheduled_start)

    statuses = client.get(f"/api/leagues/{league.id}/teams/{alpha.id}/matches-status").json()
    assert statuses["matches"][0]["locked"] is True
    assert statuses["matches"][0]["has_lineup"] is True
    assert statuses["matches"][1]["locked"] is False

    budget = client.get(f"/api/leagues/{league.id}/teams/{alpha.id}/budget").json()
    assert budget["transfers_used"] == 0
    assert budget["captain_changes_remaining"] == 1


def test_transfers_audit_log(client, league_setup, base_xi):
    league, (alpha, _bravo), matches = league_setup
    client.post(
        lineup_url(league, alpha, matches[0]),
        json={"player_ids": base_xi, "captain_id": 3, "vice_captain_id": 11},
    )
    swapped = [15 if pid == 14 else pid for pid in base_xi]
    client.post(
        lineup_url(league, alpha, matches[1]),
        json={"player_ids": swapped, "captain_id": 3, "vice_captain_id": 11},
    )

    transfers = client.get(f"/api/leagues/{league.id}/teams/{alpha.id}/transfers").json()

    assert [(t["player_out"], t["player_in"]) for t in transfers["transfers"]] == [(14, 15)]
    assert transfers["transfers"][0]["match_description"] == "Match 2"


def test_undo_endpoint(client, league_setup, base_xi):
    league, (alpha, _bravo), matches = league_setup
    client.post(
        lineup_url(league, alpha, matches[0]),
        json={"player_ids": base_xi, "captain_id": 3, "vice_captain_id": 11},
    )

    response = client.post(f"/api/leagues/{league.id}/teams/{alpha.id}/lineup/undo")

    assert response.status_code == 200
    assert response.json()["lineup"] is None
    assert client.get(lineup_url(league, alpha, matches[0])).status_code == 404


def test_delete_lineup_endpoint(client, clock, league_setup, base_xi):
    league, (alpha, _bravo), matches = league_setup
    payload = {"player_ids": base_xi, "captain_id": 3, "vice_captain_id": 11}
    client.post(lineup_url(league, alpha, matches[0]), json=payload)
    client.post(lineup_url(league, alpha, matches[1]), json=payload)
    clock.advance(minutes=10)

    blocked = client.delete(lineup_url(league, alpha, matches[0]))
    assert blocked.status_code == 409
    assert blocked.json()["details"]["reason"] == "later_lineup_exists"

    response = client.delete(lineup_url(league, alpha, matches[1]))
    assert response.status_code == 200
    assert response.json()["match_id"] == matches[1].id
    assert client.get(lineup_url(league, alpha, matches[1])).status_code == 404

    resaved = client.post(
        lineup_url(league, alpha, matches[0]),
        json={**payload, "captain_id": 4},
    )
    assert resaved.status_code == 200


def test_propagate_score_and_leaderboard(client, clock, league_setup, add_performance, base_xi):
    league, (alpha, bravo), matches = league_setup
    client.post(
        lineup_url(league, alpha, matches[0]),
        json={"player_ids": base_xi, "captain_id": 3, "vice_captain_id": 11},
    )
    clock.set(matches[1].scheduled_start)

    propagated = client.post(f"/api/leagues/{league.id}/propagate").json()
    assert {"team_id": alpha.id, "match_id": matches[1].id} in propagated["propagated"]

    add_performance(matches[1], 3, runs=55, balls=34, fours=4, sixes=1, strike_rate=160.0)
    scored = client.post(f"/api/leagues/{league.id}/matches/{matches[1].id}/score").json()
    assert scored["status"] == "scored"

    standings = client.get(f"/api/leagues/{league.id}/leaderboard").json()["standings"]
    assert standings[0]["team_id"] == alpha.id
    assert standings[0]["total_points"] == 262
    assert standings[1]["team_id"] == bravo.id

    history = client.get(f"/api/leagues/{league.id}/teams/{alpha.id}/score-history").json()
    assert history["total_points"] == 262


def test_recompute_endpoint(client, league_setup):
    league, _teams, matches = league_setup

    response = client.post(f"/api/leagues/{league.id}/recompute-scores", params={"workers": 1})

    assert response.status_code == 200
    assert response.json()["deferred"] == len(matches)


def test_unknown_league(client, tables):
    response = client.get("/api/leagues/999999/leaderboard")
    assert response.status_code == 404
    assert response.json()["details"] == {"league_id": 999999}


def test_run_serves_with_configured_host_and_port(monkeypatch):
    import uvicorn

    from playingxi.config import settings
    from playingxi.web import main

    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.setattr(settings, "api_host", "127.0.0.1")
    monkeypatch.setattr(settings, "api_port", 8123)
    monkeypatch.setattr(settings, "api_reload", True)

    main.run()

    assert calls == [(
        "playingxi.web.main:app",
        {"host": "127.0.0.1", "port": 8123, "reload": True, "log_level": "info"},
    )]
