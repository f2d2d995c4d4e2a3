"""
Progression Engine

Per (user, node) state machine:

    LOCKED  --all prerequisites COMPLETED-->  AVAILABLE
    any     --completion_count >= target-->   COMPLETED   (terminal)

Completion counts are the number of distinct completed sessions that
matched the node's exercise keywords, so they do not depend on the order in
which sessions are processed. COMPLETED is written the moment a node reaches
its target and never reverted here; AVAILABLE is always derived on read from
the prerequisites, never trusted from storage.

Crediting is idempotent: each (user, node, session) is counted once, enforced
by the progression_session_credit unique key.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import ProgressionNodeProgress, ProgressionProfile, ProgressionSessionCredit, WorkoutSession
from services.aliases import generate_alias
from services.progression_catalog import (
    BRANCH_BY_NODE_ID,
    NODES_BY_ID,
    PROGRESSION_BRANCHES,
    ProgressionBranch,
    ProgressionNode,
)
from services.workout_history import SessionRecord, as_utc, load_completed_sessions, session_to_record

logger = logging.getLogger(__name__)


class NodeStatus(str, Enum):
    LOCKED = "LOCKED"
    AVAILABLE = "AVAILABLE"
    COMPLETED = "COMPLETED"


@dataclass
class NodeProgressState:
    node_id: str
    status: NodeStatus
    completion_count: int
    target_sessions: int
    progress: float
    xp: int


@dataclass
class BranchProgressSummary:
    completed: int = 0
    available: int = 0
    locked: int = 0
    total: int = 0
    xp_earned: int = 0
    xp_total: int = 0


@dataclass
class ProgressionTotals:
    nodes_cleared: int = 0
    nodes_total: int = 0
    xp_earned: int = 0
    xp_total: int = 0
    ready_to_play: int = 0
    crowns: int = 0


@dataclass
class ProgressionExperienceState:
    node_states: Dict[str, NodeProgressState] = field(default_factory=dict)
    branch_progress: Dict[str, BranchProgressSummary] = field(default_factory=dict)
    totals: ProgressionTotals = field(default_factory=ProgressionTotals)


@dataclass(frozen=True)
class StoredProgress:
    node_id: str
    status: str
    completion_count: int


def _normalize(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def session_matches_node(exercise_names: Iterable[str], node: ProgressionNode) -> bool:
    """True iff any exercise name contains any of the node's keywords."""
    keywords = [k for k in (_normalize(k) for k in node.exercise_keywords) if k]
    for name in exercise_names:
        normalized = _normalize(name)
        if normalized and any(keyword in normalized for keyword in keywords):
            return True
    return False


def _exercise_names(session: SessionRecord) -> List[str]:
    return [exercise.name for exercise in session.exercises]


def count_qualifying_sessions(sessions: Iterable[SessionRecord], node: ProgressionNode) -> int:
    """Distinct completed sessions that match `node`."""
    matched: Set[str] = set()
    for session in sessions:
        if session.status != "completed":
            continue
        if session_matches_node(_exercise_names(session), node):
            matched.add(str(session.id))
    return len(matched)


def completion_counts_from_sessions(
    sessions: Sequence[SessionRecord],
    branches: Iterable[ProgressionBranch] = PROGRESSION_BRANCHES,
) -> Dict[str, int]:
    return {
        node.id: count_qualifying_sessions(sessions, node)
        for branch in branches
        for node in branch.milestones
    }


def stored_progress_inputs(
    records: Iterable[StoredProgress],
    nodes: Mapping[str, ProgressionNode] = NODES_BY_ID,
) -> Tuple[Dict[str, int], Set[str]]:
    """
    Split stored rows into completion counts and persisted COMPLETED flags.

    Rows for nodes that are no longer in the catalog are skipped.
    """
    counts: Dict[str, int] = {}
    completed: Set[str] = set()
    for record in records:
        if record.node_id not in nodes:
            logger.warning(f"Skipping orphaned progression row for unknown node {record.node_id}")
            continue
        counts[record.node_id] = max(0, int(record.completion_count or 0))
        if record.status == NodeStatus.COMPLETED.value:
            completed.add(record.node_id)
    return counts, completed


def evaluate_progression(
    branches: Sequence[ProgressionBranch],
    completion_counts: Mapping[str, int],
    persisted_completed: Iterable[str] = (),
) -> ProgressionExperienceState:
    """Derive node, branch and overall progression state."""
    persisted_completed = set(persisted_completed)
    all_nodes = [node for branch in branches for node in branch.milestones]

    completed_ids = {
        node.id for node in all_nodes
        if completion_counts.get(node.id, 0) >= node.target_sessions or node.id in persisted_completed
    }

    state = ProgressionExperienceState()
    totals = state.totals

    for branch in branches:
        summary = BranchProgressSummary(total=len(branch.milestones))
        top_tier = branch.top_tier

        for node in sorted(branch.milestones, key=lambda n: n.tier):
            count = max(0, int(completion_counts.get(node.id, 0)))
            if node.id in completed_ids:
                status = NodeStatus.COMPLETED
            elif all(prereq in completed_ids for prereq in node.prerequisites):
                status = NodeStatus.AVAILABLE
            else:
                status = NodeStatus.LOCKED

            progress = 1.0 if status is NodeStatus.COMPLETED else min(1.0, count / node.target_sessions)
            state.node_states[node.id] = NodeProgressState(
                node_id=node.id,
                status=status,
                completion_count=count,
                target_sessions=node.target_sessions,
                progress=progress,
                xp=node.xp,
            )

            summary.xp_total += node.xp
            if status is NodeStatus.COMPLETED:
                summary.completed += 1
                summary.xp_earned += node.xp
                if node.tier == top_tier:
                    totals.crowns += 1
            elif status is NodeStatus.AVAILABLE:
                summary.available += 1
            else:
                summary.locked += 1

        state.branch_progress[branch.id] = summary
        totals.nodes_total += summary.total
        totals.nodes_cleared += summary.completed
        totals.ready_to_play += summary.available
        totals.xp_earned += summary.xp_earned
        totals.xp_total += summary.xp_total

    return state


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def _stored_rows(db: Session, user_id: UUID) -> List[ProgressionNodeProgress]:
    return db.query(ProgressionNodeProgress).filter(ProgressionNodeProgress.user_id == user_id).all()


def _as_stored(row: ProgressionNodeProgress) -> StoredProgress:
    return StoredProgress(node_id=row.node_id, status=row.status, completion_count=row.completion_count)


def ensure_profile(db: Session, user_id: UUID) -> ProgressionProfile:
    profile = db.query(ProgressionProfile).filter(ProgressionProfile.user_id == user_id).first()
    if profile:
        return profile
    profile = ProgressionProfile(user_id=user_id, alias=generate_alias(str(user_id)), total_xp=0, crowns=0)
    db.add(profile)
    db.flush()
    logger.info(f"Created progression profile {profile.alias} for user {user_id}")
    return profile


def load_progression_state(db: Session, user_id: UUID) -> ProgressionExperienceState:
    counts, completed = stored_progress_inputs(_as_stored(row) for row in _stored_rows(db, user_id))
    return evaluate_progression(PROGRESSION_BRANCHES, counts, completed)


def refresh_profile(db: Session, user_id: UUID) -> ProgressionProfile:
    """Recompute total XP and crowns from the user's COMPLETED nodes."""
    profile = ensure_profile(db, user_id)
    total_xp = 0
    crowns = 0
    for row in _stored_rows(db, user_id):
        node = NODES_BY_ID.get(row.node_id)
        if node is None or row.status != NodeStatus.COMPLETED.value:
            continue
        total_xp += node.xp
        if node.tier == BRANCH_BY_NODE_ID[node.id].top_tier:
            crowns += 1
    profile.total_xp = total_xp
    profile.crowns = crowns
    db.flush()
    return profile


def _sync_derived_statuses(db: Session, user_id: UUID) -> None:
    """Write the derived LOCKED/AVAILABLE status onto non-terminal rows."""
    rows = _stored_rows(db, user_id)
    counts, completed = stored_progress_inputs(_as_stored(row) for row in rows)
    state = evaluate_progression(PROGRESSION_BRANCHES, counts, completed)
    for row in rows:
        node_state = state.node_states.get(row.node_id)
        if node_state is None or row.status == NodeStatus.COMPLETED.value:
            continue
        row.status = node_state.status.value


def _progress_query(db: Session, user_id: UUID, node_id: str):
    return db.query(ProgressionNodeProgress).filter(
        ProgressionNodeProgress.user_id == user_id,
        ProgressionNodeProgress.node_id == node_id,
    )


def _get_or_create_progress_row(db: Session, user_id: UUID, node_id: str) -> ProgressionNodeProgress:
    row = _progress_query(db, user_id, node_id).first()
    if row is not None:
        return row

    try:
        with db.begin_nested():
            row = ProgressionNodeProgress(
                user_id=user_id,
                node_id=node_id,
                status=NodeStatus.LOCKED.value,
                completion_count=0,
                xp_earned=0,
            )
            db.add(row)
    except IntegrityError:
        # A concurrent request created the row first
        row = _progress_query(db, user_id, node_id).one()
    return row


def _complete_if_reached(row: ProgressionNodeProgress, node: ProgressionNode, user_id: UUID, now: datetime) -> None:
    if row.completion_count < node.target_sessions or row.status == NodeStatus.COMPLETED.value:
        return
    row.status = NodeStatus.COMPLETED.value
    row.completed_at = now
    row.xp_earned = node.xp
    logger.info(
        f"Progression node completed: {node.id}",
        extra={"extra_fields": {"user_id": str(user_id), "node_id": node.id, "xp": node.xp}},
    )


def _credit_node(
    db: Session,
    user_id: UUID,
    node: ProgressionNode,
    session: SessionRecord,
    now: datetime,
) -> bool:
    session_uuid = UUID(str(session.id))
    already = db.query(ProgressionSessionCredit.id).filter(
        ProgressionSessionCredit.user_id == user_id,
        ProgressionSessionCredit.node_id == node.id,
        ProgressionSessionCredit.session_id == session_uuid,
    ).first()
    if already:
        return False

    try:
        with db.begin_nested():
            db.add(ProgressionSessionCredit(
                user_id=user_id,
                node_id=node.id,
                session_id=session_uuid,
                credited_at=now,
            ))
    except IntegrityError:
        # Lost a race with a concurrent credit for the same session
        logger.info(f"Session {session.id} already credited to {node.id}")
        return False

    row = _get_or_create_progress_row(db, user_id, node.id)
    db.flush()

    # Increment in SQL so concurrent credits for the same node serialize on the row lock
    db.query(ProgressionNodeProgress).filter(ProgressionNodeProgress.id == row.id).update(
        {ProgressionNodeProgress.completion_count: ProgressionNodeProgress.completion_count + 1},
        synchronize_session=False,
    )
    db.refresh(row)

    performed_at = as_utc(session.performed_at)
    if row.last_completed_at is None or performed_at > as_utc(row.last_completed_at):
        row.last_completed_at = performed_at

    _complete_if_reached(row, node, user_id, now)
    db.flush()
    return True


def credit_session(
    db: Session,
    user_id: UUID,
    session: SessionRecord,
    now: Optional[datetime] = None,
    refresh: bool = True,
) -> List[str]:
    """
    Count a completed session toward every node it matches.

    Returns the ids of nodes that received a new credit. Re-processing the
    same session returns [] and changes nothing.
    """
    if session.status != "completed":
        return []

    now = now or datetime.now(timezone.utc)
    names = _exercise_names(session)
    credited = [
        node.id for node in NODES_BY_ID.values()
        if session_matches_node(names, node) and _credit_node(db, user_id, node, session, now)
    ]

    if credited and refresh:
        _sync_derived_statuses(db, user_id)
        refresh_profile(db, user_id)
    return credited


def credit_workout_session(db: Session, session: WorkoutSession, now: Optional[datetime] = None) -> List[str]:
    return credit_session(db, session.user_id, session_to_record(session), now=now)


def reconcile_completion_counts(
    db: Session,
    user_id: UUID,
    sessions: Sequence[SessionRecord],
    now: Optional[datetime] = None,
) -> int:
    """
    Raise stored counts that fell behind the user's qualifying sessions.

    Counts only ever move up here; a session archived after it was credited
    keeps its credit. Returns the number of rows repaired.
    """
    now = now or datetime.now(timezone.utc)
    expected = completion_counts_from_sessions(sessions)
    repaired = 0
    for row in _stored_rows(db, user_id):
        node = NODES_BY_ID.get(row.node_id)
        target = expected.get(row.node_id, 0)
        if node is None or target <= (row.completion_count or 0):
            continue
        logger.warning(
            f"Repairing completion count for {row.node_id}: {row.completion_count} -> {target}",
            extra={"extra_fields": {"user_id": str(user_id), "node_id": row.node_id}},
        )
        row.completion_count = target
        _complete_if_reached(row, node, user_id, now)
        repaired += 1
    if repaired:
        db.flush()
    return repaired


def sync_progression(db: Session, user_id: UUID, now: Optional[datetime] = None) -> Dict[str, int]:
    """Credit every completed session the user has logged. Safe to re-run."""
    sessions = load_completed_sessions(db, user_id)
    credits = 0
    for session in sessions:
        credits += len(credit_session(db, user_id, session, now=now, refresh=False))
    repaired = reconcile_completion_counts(db, user_id, sessions, now=now)

    _sync_derived_statuses(db, user_id)
    profile = refresh_profile(db, user_id)
    logger.info(
        "Progression sync complete",
        extra={"extra_fields": {
            "user_id": str(user_id),
            "sessions": len(sessions),
            "new_credits": credits,
            "repaired": repaired,
        }},
    )
    return {
        "sessions_scanned": len(sessions),
        "new_credits": credits,
        "repaired_counts": repaired,
        "total_xp": profile.total_xp,
    }
