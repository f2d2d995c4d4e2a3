"""
Tests for leaderboard ranking and node clear rates.
"""
from datetime import datetime, timedelta, timezone

from conftest import make_user
from models import ProgressionNodeProgress, ProgressionProfile
from services.leaderboard import (
    ProfileSnapshot,
    build_leaderboard,
    node_clear_rates,
    rank_for,
    rank_profiles,
)


class TestRanking:

    def test_ties_share_rank(self):
        profiles = [ProfileSnapshot("A", 500), ProfileSnapshot("B", 500), ProfileSnapshot("C", 300)]
        entries = rank_profiles(profiles)

        assert [(e.alias, e.rank) for e in entries] == [("A", 1), ("B", 1), ("C", 3)]

    def test_sorted_by_xp_descending(self):
        entries = rank_profiles([ProfileSnapshot("low", 10), ProfileSnapshot("high", 900), ProfileSnapshot("mid", 400)])
        assert [e.alias for e in entries] == ["high", "mid", "low"]
        assert [e.rank for e in entries] == [1, 2, 3]

    def test_limit(self):
        entries = rank_profiles([ProfileSnapshot(str(i), i * 10) for i in range(20)], limit=5)
        assert len(entries) == 5
        assert entries[0].xp == 190

    def test_rank_for_counts_strictly_greater(self):
        all_xp = [500, 500, 300]
        assert rank_for(500, all_xp) == 1
        assert rank_for(300, all_xp) == 3
        assert rank_for(1000, all_xp) == 1

    def test_rank_law_holds_for_table(self):
        xp = [50, 700, 50, 0, 700, 300]
        entries = rank_profiles([ProfileSnapshot(str(i), x) for i, x in enumerate(xp)])
        for entry in entries:
            assert entry.rank == rank_for(entry.xp, xp)


class TestNodeClearRates:

    def test_percentages(self):
        rates = {r.node_id: r for r in node_clear_rates({"push-foundations": 1, "legs-squat": 2}, 3)}

        assert rates["push-foundations"].percent == 33.3
        assert rates["legs-squat"].percent == 66.7
        assert rates["legs-squat"].cleared_count == 2

    def test_rounds_half_up(self):
        assert node_clear_rates({"x": 1}, 8)[0].percent == 12.5
        assert node_clear_rates({"x": 1}, 16)[0].percent == 6.3

    def test_no_players(self):
        assert node_clear_rates({"x": 0}, 0)[0].percent == 0.0


def _profile(db, xp, crowns=0, created_offset=0):
    user = make_user(db)
    profile = ProgressionProfile(
        user_id=user.id,
        alias=f"Player {xp}-{created_offset}",
        total_xp=xp,
        crowns=crowns,
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=created_offset),
    )
    db.add(profile)
    db.flush()
    return user, profile


class TestBuildLeaderboard:

    def test_current_player_rank_matches_table(self, db_session):
        _profile(db_session, 500, created_offset=0)
        second_user, _ = _profile(db_session, 500, created_offset=1)
        third_user, _ = _profile(db_session, 300, created_offset=2)

        board = build_leaderboard(db_session, current_user_id=second_user.id)

        assert board.total_players == 3
        assert [(p.alias, p.rank) for p in board.players] == [
            ("Player 500-0", 1),
            ("Player 500-1", 1),
            ("Player 300-2", 3),
        ]
        assert board.current_player.rank == 1
        assert board.current_player.alias == "Player 500-1"

        board = build_leaderboard(db_session, current_user_id=third_user.id)
        assert board.current_player.rank == 3

    def test_anonymous_and_unknown_callers(self, db_session, test_user):
        _profile(db_session, 100)

        assert build_leaderboard(db_session).current_player is None
        assert build_leaderboard(db_session, current_user_id=test_user.id).current_player is None

    def test_limit_applies_to_players_only(self, db_session):
        for i in range(4):
            _profile(db_session, i * 100, created_offset=i)

        board = build_leaderboard(db_session, limit=2)
        assert board.total_players == 4
        assert [p.xp for p in board.players] == [300, 200]

    def test_node_clear_rates_from_completed_rows(self, db_session):
        user_a, _ = _profile(db_session, 100, created_offset=0)
        _profile(db_session, 0, created_offset=1)
        db_session.add(ProgressionNodeProgress(
            user_id=user_a.id, node_id="push-foundations", status="COMPLETED", completion_count=3, xp_earned=100,
        ))
        db_session.add(ProgressionNodeProgress(
            user_id=user_a.id, node_id="retired-node", status="COMPLETED", completion_count=3, xp_earned=0,
        ))
        db_session.flush()

        board = build_leaderboard(db_session)
        assert [(n.node_id, n.cleared_count, n.percent) for n in board.nodes] == [("push-foundations", 1, 50.0)]

    def test_no_profiles_yet(self, db_session, test_user):
        board = build_leaderboard(db_session, current_user_id=test_user.id)

        assert board.total_players == 0
        assert board.players == []
        assert board.nodes == []
        assert board.current_player is None
