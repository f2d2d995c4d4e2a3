"""
Progression API Router

Endpoints for the progression tree:
- Static catalog (branches, nodes, templates)
- Stored progress and the user's profile
- Evaluated tree state (locked / available / completed)
- Backfill sync from logged sessions
- Community leaderboard
"""

import logging
from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.auth import get_current_user, get_optional_user
from core.database import get_db
from models import ProgressionNodeProgress, User
from schemas import (
    LeaderboardResponse,
    ProgressionBranchResponse,
    ProgressionProgressResponse,
    ProgressionStateResponse,
    ProgressionSyncResponse,
)
from services.leaderboard import build_leaderboard
from services.progression_catalog import NODES_BY_ID, PROGRESSION_BRANCHES
from services.progression_engine import ensure_profile, load_progression_state, sync_progression

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/progression", tags=["Progression"])


@router.get("/catalog", response_model=List[ProgressionBranchResponse])
def get_catalog():
    return [asdict(branch) for branch in PROGRESSION_BRANCHES]


@router.get("/progress", response_model=ProgressionProgressResponse)
def get_progress(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Profile plus raw per-node rows.

    The profile (and its alias) is created on first read.
    """
    profile = ensure_profile(db, current_user.id)
    records = (
        db.query(ProgressionNodeProgress)
        .filter(ProgressionNodeProgress.user_id == current_user.id)
        .order_by(ProgressionNodeProgress.node_id)
        .all()
    )
    return {
        "profile": profile,
        "records": [r for r in records if r.node_id in NODES_BY_ID],
    }


@router.get("/state", response_model=ProgressionStateResponse)
def get_state(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Evaluated tree. AVAILABLE is derived from prerequisites on every read."""
    return asdict(load_progression_state(db, current_user.id))


@router.post("/sync", response_model=ProgressionSyncResponse)
def sync(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Credit every completed session. Re-running adds nothing."""
    return sync_progression(db, current_user.id)


@router.get("/leaderboard", response_model=LeaderboardResponse)
def get_leaderboard(
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    """Top players by XP. Authentication is optional; when present, the caller's rank is included."""
    return asdict(build_leaderboard(db, current_user.id if current_user else None))
