"""
Tests for the progression engine.

Pure evaluation runs on hand-built counts and session records; crediting
runs against the transactional test database.
"""
import random
from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_user
from models import Exercise, ProgressionNodeProgress, ProgressionSessionCredit, WorkoutSession, WorkoutSessionExercise
from services.aliases import generate_alias
from services.progression_catalog import NODES_BY_ID, PROGRESSION_BRANCHES
from services.progression_engine import (
    NodeStatus,
    StoredProgress,
    completion_counts_from_sessions,
    count_qualifying_sessions,
    credit_session,
    credit_workout_session,
    ensure_profile,
    evaluate_progression,
    load_progression_state,
    session_matches_node,
    stored_progress_inputs,
    sync_progression,
)
from services.workout_history import ExerciseRecord, SessionRecord

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
ROOTS = {"push-foundations", "pull-foundations", "legs-squat", "core-stability"}


def _record(session_id, *names, status="completed"):
    return SessionRecord(
        id=session_id,
        name="Session",
        performed_at=NOW,
        exercises=tuple(ExerciseRecord(name) for name in names),
        status=status,
    )


def _state(counts=None, completed=()):
    return evaluate_progression(PROGRESSION_BRANCHES, counts or {}, completed)


class TestSessionMatching:

    def test_keyword_substring_case_insensitive(self):
        node = NODES_BY_ID["push-foundations"]
        assert session_matches_node(["Incline BENCH PRESS"], node)
        assert session_matches_node(["Knee Push-Up"], node)
        assert not session_matches_node(["Overhead Press"], node)
        assert not session_matches_node([], node)
        assert not session_matches_node(["", None], node)

    def test_one_exercise_can_match_several_nodes(self):
        names = ["Incline Bench Press"]
        assert session_matches_node(names, NODES_BY_ID["push-foundations"])
        assert session_matches_node(names, NODES_BY_ID["push-heavy"])

    def test_only_completed_distinct_sessions_count(self):
        node = NODES_BY_ID["legs-squat"]
        sessions = [
            _record("a", "Back Squat"),
            _record("a", "Back Squat"),
            _record("b", "Goblet Squat", "Calf Raise"),
            _record("c", "Front Squat", status="in_progress"),
            _record("d", "Leg Curl"),
        ]
        assert count_qualifying_sessions(sessions, node) == 2

    def test_counts_do_not_depend_on_order(self):
        sessions = [_record(str(i), name) for i, name in enumerate(
            ["Push-up", "Dumbbell Row", "Squat", "Plank", "Push-up", "Lat Pulldown", "Romanian Deadlift"] * 3
        )]
        shuffled = list(sessions)
        random.Random(7).shuffle(shuffled)
        assert completion_counts_from_sessions(sessions) == completion_counts_from_sessions(shuffled)


class TestEvaluateProgression:

    def test_fresh_user(self):
        state = _state()

        available = {nid for nid, s in state.node_states.items() if s.status is NodeStatus.AVAILABLE}
        assert available == ROOTS
        assert state.totals.nodes_total == len(NODES_BY_ID)
        assert state.totals.nodes_cleared == 0
        assert state.totals.ready_to_play == 4
        assert state.totals.xp_earned == 0
        assert state.totals.crowns == 0

    def test_partial_progress(self):
        node = _state({"push-foundations": 2}).node_states["push-foundations"]

        assert node.status is NodeStatus.AVAILABLE
        assert node.progress == pytest.approx(2 / 3)
        assert node.completion_count == 2
        assert node.target_sessions == 3

    def test_reaching_target_completes_and_unlocks_next(self):
        state = _state({"push-foundations": 3})

        assert state.node_states["push-foundations"].status is NodeStatus.COMPLETED
        assert state.node_states["push-foundations"].progress == 1.0
        assert state.node_states["push-overhead"].status is NodeStatus.AVAILABLE
        assert state.node_states["push-heavy"].status is NodeStatus.LOCKED
        assert state.branch_progress["push"].xp_earned == 100
        assert state.totals.xp_earned == 100

    def test_progress_capped_at_one(self):
        assert _state({"legs-squat": 10}).node_states["legs-squat"].progress == 1.0

    def test_every_prerequisite_required(self):
        state = _state({"core-stability": 3})
        assert state.node_states["core-hanging"].status is NodeStatus.LOCKED

        state = _state({"core-stability": 3, "pull-foundations": 3})
        assert state.node_states["core-hanging"].status is NodeStatus.AVAILABLE

    def test_persisted_completion_is_terminal(self):
        state = _state({"push-foundations": 1}, completed={"push-foundations"})
        assert state.node_states["push-foundations"].status is NodeStatus.COMPLETED
        assert state.node_states["push-overhead"].status is NodeStatus.AVAILABLE

    def test_crowns_count_top_tier_clears(self):
        state = _state({"core-stability": 3, "pull-foundations": 3, "core-hanging": 5})

        assert state.node_states["core-hanging"].status is NodeStatus.COMPLETED
        assert state.totals.crowns == 1
        assert state.totals.xp_earned == 80 + 100 + 300

    def test_branch_totals_add_up(self):
        state = _state({"push-foundations": 3, "legs-squat": 3, "legs-hinge": 1})
        for branch in PROGRESSION_BRANCHES:
            summary = state.branch_progress[branch.id]
            assert summary.completed + summary.available + summary.locked == summary.total
            assert summary.xp_total == sum(n.xp for n in branch.milestones)


def test_stored_progress_inputs_skips_unknown_nodes():
    counts, completed = stored_progress_inputs([
        StoredProgress("push-foundations", "COMPLETED", 3),
        StoredProgress("legs-squat", "AVAILABLE", 1),
        StoredProgress("retired-node", "COMPLETED", 9),
    ])

    assert counts == {"push-foundations": 3, "legs-squat": 1}
    assert completed == {"push-foundations"}


# ---------------------------------------------------------------------------
# Crediting against the database
# ---------------------------------------------------------------------------


def _log_session(db, user, *exercise_names, status="completed", hours_ago=1):
    started = datetime.now(timezone.utc) - timedelta(hours=hours_ago)
    session = WorkoutSession(
        user_id=user.id,
        name="Logged",
        status=status,
        start_time=started,
        end_time=started + timedelta(minutes=45) if status == "completed" else None,
    )
    for position, name in enumerate(exercise_names):
        exercise = Exercise(name=name, created_by_user_id=user.id)
        session.exercises.append(WorkoutSessionExercise(exercise=exercise, position=position, target_sets=3))
    db.add(session)
    db.flush()
    return session


class TestCrediting:

    def test_completed_session_credits_matching_nodes(self, db_session, test_user):
        session = _log_session(db_session, test_user, "Push-up", "Goblet Squat")

        credited = credit_workout_session(db_session, session)

        assert sorted(credited) == ["legs-squat", "push-foundations"]
        row = db_session.query(ProgressionNodeProgress).filter_by(user_id=test_user.id, node_id="legs-squat").one()
        assert row.completion_count == 1
        assert row.status == "AVAILABLE"
        assert row.last_completed_at is not None

    def test_recrediting_same_session_is_a_no_op(self, db_session, test_user):
        session = _log_session(db_session, test_user, "Push-up")

        assert credit_workout_session(db_session, session) == ["push-foundations"]
        assert credit_workout_session(db_session, session) == []

        row = db_session.query(ProgressionNodeProgress).filter_by(user_id=test_user.id, node_id="push-foundations").one()
        assert row.completion_count == 1
        assert db_session.query(ProgressionSessionCredit).filter_by(user_id=test_user.id).count() == 1

    def test_in_progress_session_is_not_credited(self, db_session, test_user):
        session = _log_session(db_session, test_user, "Push-up", status="in_progress")
        assert credit_workout_session(db_session, session) == []
        assert db_session.query(ProgressionNodeProgress).filter_by(user_id=test_user.id).count() == 0

    def test_reaching_target_completes_node_and_updates_profile(self, db_session, test_user):
        for hours_ago in (72, 48, 24):
            credit_workout_session(db_session, _log_session(db_session, test_user, "Bench Press", hours_ago=hours_ago))

        row = db_session.query(ProgressionNodeProgress).filter_by(user_id=test_user.id, node_id="push-foundations").one()
        assert row.status == "COMPLETED"
        assert row.completion_count == 3
        assert row.xp_earned == 100
        assert row.completed_at is not None

        profile = ensure_profile(db_session, test_user.id)
        assert profile.total_xp == 100
        assert profile.crowns == 0

        state = load_progression_state(db_session, test_user.id)
        assert state.node_states["push-overhead"].status is NodeStatus.AVAILABLE

    def test_credit_session_skips_non_completed_records(self, db_session, test_user):
        record = _record("00000000-0000-0000-0000-000000000001", "Push-up", status="in_progress")
        assert credit_session(db_session, test_user.id, record) == []

    def test_count_increments_on_the_stored_value(self, db_session, test_user):
        credit_workout_session(db_session, _log_session(db_session, test_user, "Push-up", hours_ago=5))
        row = db_session.query(ProgressionNodeProgress).filter_by(user_id=test_user.id, node_id="push-foundations").one()

        # Another writer bumps the count behind this session's back
        db_session.query(ProgressionNodeProgress).filter(ProgressionNodeProgress.id == row.id).update(
            {ProgressionNodeProgress.completion_count: 2},
            synchronize_session=False,
        )
        credit_workout_session(db_session, _log_session(db_session, test_user, "Push-up", hours_ago=1))

        assert row.completion_count == 3
        assert row.status == "COMPLETED"
        assert row.xp_earned == NODES_BY_ID["push-foundations"].xp

    def test_credit_order_does_not_change_counts(self, db_session, test_user):
        names = ["Push-up", "Dumbbell Row", "Goblet Squat", "Plank", "Bench Press", "Lat Pulldown", "Push-up"]
        other = make_user(db_session)

        for hours_ago, name in enumerate(names, start=1):
            credit_workout_session(db_session, _log_session(db_session, test_user, name, hours_ago=hours_ago))
        shuffled = list(names)
        random.Random(11).shuffle(shuffled)
        for hours_ago, name in enumerate(shuffled, start=1):
            credit_workout_session(db_session, _log_session(db_session, other, name, hours_ago=hours_ago))

        def counts(user):
            rows = db_session.query(ProgressionNodeProgress).filter_by(user_id=user.id).all()
            return {r.node_id: (r.completion_count, r.status) for r in rows}

        assert counts(test_user) == counts(other)
        assert counts(test_user)["push-foundations"] == (3, "COMPLETED")


class TestSyncProgression:

    def test_sync_is_idempotent(self, db_session, test_user):
        for hours_ago in (50, 30, 10):
            _log_session(db_session, test_user, "Dumbbell Row", hours_ago=hours_ago)
        _log_session(db_session, test_user, "Dumbbell Row", status="in_progress")

        first = sync_progression(db_session, test_user.id)
        assert first == {"sessions_scanned": 3, "new_credits": 3, "repaired_counts": 0, "total_xp": 100}

        second = sync_progression(db_session, test_user.id)
        assert second == {"sessions_scanned": 3, "new_credits": 0, "repaired_counts": 0, "total_xp": 100}

    def test_sync_creates_profile_with_alias(self, db_session, test_user):
        sync_progression(db_session, test_user.id)
        profile = ensure_profile(db_session, test_user.id)

        assert profile.alias == generate_alias(str(test_user.id))
        assert profile.total_xp == 0

    def test_sync_repairs_counts_behind_credits(self, db_session, test_user):
        for hours_ago in (30, 10):
            _log_session(db_session, test_user, "Plank", hours_ago=hours_ago)
        sync_progression(db_session, test_user.id)
        row = db_session.query(ProgressionNodeProgress).filter_by(user_id=test_user.id, node_id="core-stability").one()
        row.completion_count = 0
        db_session.flush()

        result = sync_progression(db_session, test_user.id)

        assert result["new_credits"] == 0
        assert result["repaired_counts"] == 1
        assert row.completion_count == 2

    def test_sync_repair_completes_node_at_target(self, db_session, test_user):
        for hours_ago in (50, 30, 10):
            _log_session(db_session, test_user, "Plank", hours_ago=hours_ago)
        sync_progression(db_session, test_user.id)
        row = db_session.query(ProgressionNodeProgress).filter_by(user_id=test_user.id, node_id="core-stability").one()
        row.completion_count = 1
        row.status = "AVAILABLE"
        row.xp_earned = 0
        db_session.flush()

        result = sync_progression(db_session, test_user.id)

        assert result["repaired_counts"] == 1
        assert row.status == "COMPLETED"
        assert row.completion_count == 3
        assert result["total_xp"] == NODES_BY_ID["core-stability"].xp
