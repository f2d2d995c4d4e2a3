"""
Progression Leaderboard

Ranks players by total XP. Rank is competition-style: a player's rank is one
plus the number of players with strictly more XP, so players on equal XP
share a rank (500, 500, 300 -> 1, 1, 3). The single-player lookup uses the
same count, which keeps it consistent with the full table without sorting
everyone.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.config import settings
from models import ProgressionNodeProgress, ProgressionProfile
from services.progression_catalog import NODES_BY_ID

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfileSnapshot:
    alias: str
    total_xp: int
    crowns: int = 0


@dataclass
class LeaderboardEntry:
    alias: str
    rank: int
    xp: int
    crowns: int = 0


@dataclass
class NodeClearRate:
    node_id: str
    cleared_count: int
    percent: float


@dataclass
class Leaderboard:
    total_players: int
    nodes: List[NodeClearRate]
    players: List[LeaderboardEntry]
    current_player: Optional[LeaderboardEntry]


def rank_for(xp: int, all_xp: Iterable[int]) -> int:
    return 1 + sum(1 for other in all_xp if other > xp)


def rank_profiles(profiles: Sequence[ProfileSnapshot], limit: int = 10) -> List[LeaderboardEntry]:
    """
    Top `limit` profiles by XP. Ties keep their input order and share a rank.
    """
    ordered = sorted(profiles, key=lambda p: -p.total_xp)
    entries: List[LeaderboardEntry] = []
    rank = 0
    previous_xp = None
    for index, profile in enumerate(ordered[:limit]):
        if profile.total_xp != previous_xp:
            rank = index + 1
            previous_xp = profile.total_xp
        entries.append(LeaderboardEntry(alias=profile.alias, rank=rank, xp=profile.total_xp, crowns=profile.crowns))
    return entries


def _round_half_up(value: float, digits: int = 1) -> float:
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def node_clear_rates(cleared_counts: Mapping[str, int], total_players: int) -> List[NodeClearRate]:
    """Share of players who cleared each node, in percent."""
    denominator = total_players or 1
    return [
        NodeClearRate(
            node_id=node_id,
            cleared_count=count,
            percent=_round_half_up(count / denominator * 100),
        )
        for node_id, count in sorted(cleared_counts.items())
    ]


def build_leaderboard(db: Session, current_user_id: Optional[UUID] = None, limit: Optional[int] = None) -> Leaderboard:
    limit = limit or settings.LEADERBOARD_SIZE

    total_players = db.query(func.count(ProgressionProfile.id)).scalar() or 0

    cleared_rows = (
        db.query(ProgressionNodeProgress.node_id, func.count(ProgressionNodeProgress.id))
        .filter(ProgressionNodeProgress.status == "COMPLETED")
        .group_by(ProgressionNodeProgress.node_id)
        .all()
    )
    cleared_counts = {node_id: count for node_id, count in cleared_rows if node_id in NODES_BY_ID}

    top = (
        db.query(ProgressionProfile)
        .order_by(
            ProgressionProfile.total_xp.desc(),
            ProgressionProfile.created_at.asc(),
            ProgressionProfile.id.asc(),
        )
        .limit(limit)
        .all()
    )
    players = rank_profiles(
        [ProfileSnapshot(alias=p.alias, total_xp=p.total_xp, crowns=p.crowns) for p in top],
        limit=limit,
    )

    current_player = None
    if current_user_id is not None:
        profile = db.query(ProgressionProfile).filter(ProgressionProfile.user_id == current_user_id).first()
        if profile:
            higher = (
                db.query(func.count(ProgressionProfile.id))
                .filter(ProgressionProfile.total_xp > profile.total_xp)
                .scalar()
            ) or 0
            current_player = LeaderboardEntry(
                alias=profile.alias,
                rank=higher + 1,
                xp=profile.total_xp,
                crowns=profile.crowns,
            )

    return Leaderboard(
        total_players=total_players,
        nodes=node_clear_rates(cleared_counts, total_players),
        players=players,
        current_player=current_player,
    )
