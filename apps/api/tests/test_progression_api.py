"""
Integration tests for the Progression API endpoints
"""
from datetime import datetime, timedelta, timezone

from conftest import headers_for, make_user
from services.aliases import generate_alias
from services.progression_catalog import NODES_BY_ID


def _complete_workout(client, headers, exercise_name, hours_ago):
    start = datetime.now(timezone.utc) - timedelta(hours=hours_ago)
    response = client.post(
        "/v1/workout-sessions",
        json={
            "name": exercise_name,
            "start_time": start.isoformat(),
            "end_time": (start + timedelta(minutes=40)).isoformat(),
            "completed": True,
            "exercises": [{"name": exercise_name, "body_parts": ["chest"], "target_sets": 3}],
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text


class TestCatalog:

    def test_public_catalog(self, client):
        response = client.get("/v1/progression/catalog")

        assert response.status_code == 200
        branches = response.json()
        assert [b["id"] for b in branches] == ["push", "pull", "legs", "core"]
        first = branches[0]["milestones"][0]
        assert first["id"] == "push-foundations"
        assert first["target_sessions"] == 3
        assert first["prerequisites"] == []
        assert first["template"]["exercises"][0]["name"] == "Push-up"
        assert sum(len(b["milestones"]) for b in branches) == len(NODES_BY_ID)


class TestProgress:

    def test_requires_auth(self, client):
        assert client.get("/v1/progression/progress").status_code == 401

    def test_profile_created_on_first_read(self, client, auth_headers, test_user):
        response = client.get("/v1/progression/progress", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["profile"]["alias"] == generate_alias(str(test_user.id))
        assert data["profile"]["total_xp"] == 0
        assert data["records"] == []

    def test_completed_node_recorded(self, client, auth_headers):
        for hours_ago in (60, 40, 20):
            _complete_workout(client, auth_headers, "Push-up", hours_ago)

        data = client.get("/v1/progression/progress", headers=auth_headers).json()

        records = {r["node_id"]: r for r in data["records"]}
        assert records["push-foundations"]["status"] == "COMPLETED"
        assert records["push-foundations"]["completion_count"] == 3
        assert records["push-foundations"]["xp_earned"] == 100
        assert data["profile"]["total_xp"] == 100


class TestState:

    def test_fresh_state(self, client, auth_headers):
        response = client.get("/v1/progression/state", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["node_states"]["push-foundations"]["status"] == "AVAILABLE"
        assert data["node_states"]["push-overhead"]["status"] == "LOCKED"
        assert data["totals"]["ready_to_play"] == 4
        assert data["totals"]["xp_earned"] == 0

    def test_unlocks_after_completion(self, client, auth_headers):
        for hours_ago in (60, 40, 20):
            _complete_workout(client, auth_headers, "Dumbbell Row", hours_ago)

        data = client.get("/v1/progression/state", headers=auth_headers).json()

        assert data["node_states"]["pull-foundations"]["status"] == "COMPLETED"
        assert data["node_states"]["pull-vertical"]["status"] == "AVAILABLE"
        assert data["node_states"]["core-hanging"]["status"] == "LOCKED"
        assert data["branch_progress"]["pull"]["completed"] == 1
        assert data["totals"]["nodes_cleared"] == 1


class TestSync:

    def test_sync_is_idempotent(self, client, auth_headers):
        for hours_ago in (30, 10):
            _complete_workout(client, auth_headers, "Goblet Squat", hours_ago)

        first = client.post("/v1/progression/sync", headers=auth_headers).json()
        second = client.post("/v1/progression/sync", headers=auth_headers).json()

        # Completing a session already credits it
        assert first == {"sessions_scanned": 2, "new_credits": 0, "repaired_counts": 0, "total_xp": 0}
        assert second == first


class TestLeaderboard:

    def test_anonymous(self, client, auth_headers):
        client.get("/v1/progression/progress", headers=auth_headers)

        response = client.get("/v1/progression/leaderboard")

        assert response.status_code == 200
        data = response.json()
        assert data["total_players"] == 1
        assert data["current_player"] is None
        assert data["players"][0]["rank"] == 1

    def test_caller_rank_included(self, client, auth_headers, db_session, test_user):
        rival = make_user(db_session)
        for hours_ago in (60, 40, 20):
            _complete_workout(client, headers_for(rival), "Bench Press", hours_ago)
        client.get("/v1/progression/progress", headers=auth_headers)

        data = client.get("/v1/progression/leaderboard", headers=auth_headers).json()

        assert data["total_players"] == 2
        assert [p["xp"] for p in data["players"]] == [100, 0]
        assert data["current_player"]["alias"] == generate_alias(str(test_user.id))
        assert data["current_player"]["rank"] == 2
        cleared = {n["node_id"]: n["percent"] for n in data["nodes"]}
        assert cleared == {"push-foundations": 50.0}

    def test_bad_token_is_treated_as_anonymous(self, client):
        response = client.get("/v1/progression/leaderboard", headers={"Authorization": "Bearer junk"})

        assert response.status_code == 200
        assert response.json()["current_player"] is None

    def test_empty_board_for_caller_without_profile(self, client, auth_headers):
        response = client.get("/v1/progression/leaderboard", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"total_players": 0, "nodes": [], "players": [], "current_player": None}
