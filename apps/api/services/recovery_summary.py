"""
Recovery Summary Builder

Combines per-body-part history, the rest-window table and the athlete's own
feedback into the recovery view:

    BodyPartInsight  one row per body part (status, rest window, trend...)
    RecoverySummary  counts per status, what to train next, what to protect

Everything here except `build_recovery_response` is a pure function of its
inputs. Status is never stored; it is recomputed on every read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Mapping, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from core.config import settings
from models import RecoveryFeedback
from services.recovery_guidelines import (
    STATUS_ORDER,
    RecoveryStatus,
    classify_recovery_status,
    format_body_part_label,
    get_rest_window_hours,
    normalize_body_part_key,
)
from services.workout_history import (
    BodyPartHistory,
    SessionRecord,
    aggregate_workout_history,
    as_utc,
    extract_workout_events,
    load_all_time_last_worked,
    load_body_part_catalog,
    load_recent_sessions,
)

logger = logging.getLogger(__name__)

HOURS_IN_SECONDS = 3600
SUGGESTED_FOCUS_LIMIT = 5

PAIN_FEELINGS = frozenset({"INJURED"})


@dataclass(frozen=True)
class FeedbackRecord:
    body_part: str
    feeling: str  # GOOD | TIGHT | SORE | INJURED
    created_at: datetime
    intensity: Optional[int] = None
    note: Optional[str] = None
    id: Optional[str] = None

    @property
    def reports_pain(self) -> bool:
        return self.feeling in PAIN_FEELINGS


@dataclass
class BodyPartInsight:
    body_part: str
    label: str
    last_workout: Optional[datetime]
    hours_since_last: Optional[float]
    recommended_rest_hours: int
    status: RecoveryStatus
    recent_session_ids: List[str]
    seven_day_count: int
    average_sets: float
    feedback: Optional[FeedbackRecord]
    trend: List[Dict]


@dataclass
class EligibilityWindow:
    body_part: str
    remaining_hours: float


@dataclass
class RecoverySummary:
    ready_count: int = 0
    caution_count: int = 0
    rest_count: int = 0
    pain_count: int = 0
    suggested_focus: List[str] = field(default_factory=list)
    next_eligible_in_hours: List[EligibilityWindow] = field(default_factory=list)
    pain_alerts: List[str] = field(default_factory=list)
    last_updated: Optional[datetime] = None


@dataclass
class RecentSessionSummary:
    id: str
    name: str
    performed_at: datetime
    body_parts: List[str]
    duration_minutes: Optional[int]


@dataclass
class RecoveryResponse:
    summary: RecoverySummary
    body_parts: List[BodyPartInsight]
    recent_sessions: List[RecentSessionSummary]


def hours_since(moment: Optional[datetime], now: datetime) -> Optional[float]:
    if moment is None:
        return None
    elapsed = (as_utc(now) - as_utc(moment)).total_seconds() / HOURS_IN_SECONDS
    return max(0.0, elapsed)


def latest_feedback_by_part(entries: Iterable[FeedbackRecord]) -> Dict[str, FeedbackRecord]:
    """Most recent entry per normalized body part; earlier entries are superseded."""
    latest: Dict[str, FeedbackRecord] = {}
    for entry in entries:
        key = normalize_body_part_key(entry.body_part)
        current = latest.get(key)
        if current is None or as_utc(entry.created_at) > as_utc(current.created_at):
            latest[key] = entry
    return latest


def _insight_sort_key(insight: BodyPartInsight):
    return (STATUS_ORDER[insight.status], -(insight.hours_since_last or 0.0), insight.label)


def build_body_part_insights(
    histories: Mapping[str, BodyPartHistory],
    feedback_by_part: Mapping[str, FeedbackRecord],
    now: datetime,
) -> List[BodyPartInsight]:
    """
    One insight per body part in `histories` or in `feedback_by_part`.

    Sorted ready -> caution -> rest -> pain, longest-rested first within a status.
    """
    keys = set(histories) | set(feedback_by_part)
    insights: List[BodyPartInsight] = []

    for key in keys:
        history = histories.get(key)
        feedback = feedback_by_part.get(key)
        if history is None:
            history = BodyPartHistory(body_part=key, label=format_body_part_label(feedback.body_part))

        rest_window = get_rest_window_hours(key)
        elapsed = hours_since(history.last_workout, now)
        status = classify_recovery_status(
            elapsed,
            rest_window,
            has_pain=bool(feedback and feedback.reports_pain),
        )

        insights.append(BodyPartInsight(
            body_part=key,
            label=history.label,
            last_workout=history.last_workout,
            hours_since_last=elapsed,
            recommended_rest_hours=rest_window,
            status=status,
            recent_session_ids=sorted(history.session_ids),
            seven_day_count=history.seven_day_count,
            average_sets=history.average_sets,
            feedback=feedback,
            trend=history.trend(),
        ))

    insights.sort(key=_insight_sort_key)
    return insights


def build_recovery_summary(insights: Iterable[BodyPartInsight], now: datetime) -> RecoverySummary:
    summary = RecoverySummary(last_updated=as_utc(now))
    ready: List[BodyPartInsight] = []

    for insight in insights:
        if insight.status is RecoveryStatus.READY:
            summary.ready_count += 1
            ready.append(insight)
        elif insight.status is RecoveryStatus.CAUTION:
            summary.caution_count += 1
        elif insight.status is RecoveryStatus.REST:
            summary.rest_count += 1
        else:
            summary.pain_count += 1
            summary.pain_alerts.append(insight.label)

        if insight.status in (RecoveryStatus.REST, RecoveryStatus.CAUTION):
            remaining = max(0.0, insight.recommended_rest_hours - (insight.hours_since_last or 0.0))
            summary.next_eligible_in_hours.append(
                EligibilityWindow(body_part=insight.label, remaining_hours=round(remaining, 1))
            )

    # Worked-and-rested first (longest rest leading), never-worked after
    ready.sort(key=lambda i: (
        i.hours_since_last is None,
        -(i.hours_since_last or 0.0),
        i.label,
    ))
    summary.suggested_focus = [i.label for i in ready[:SUGGESTED_FOCUS_LIMIT]]
    summary.next_eligible_in_hours.sort(key=lambda w: (w.remaining_hours, w.body_part))
    return summary


def summarize_session(session: SessionRecord) -> RecentSessionSummary:
    labels: List[str] = []
    for exercise in session.exercises:
        for raw in exercise.body_parts or ("fullbody",):
            label = format_body_part_label(raw)
            if label not in labels:
                labels.append(label)
    return RecentSessionSummary(
        id=session.id,
        name=session.name,
        performed_at=session.performed_at,
        body_parts=labels,
        duration_minutes=round(session.duration_s / 60) if session.duration_s else None,
    )


def feedback_from_row(row: RecoveryFeedback) -> FeedbackRecord:
    return FeedbackRecord(
        id=str(row.id),
        body_part=row.body_part,
        feeling=row.feeling,
        intensity=row.intensity,
        note=row.note,
        created_at=as_utc(row.created_at),
    )


def build_recovery_response(db: Session, user_id: UUID, now: Optional[datetime] = None) -> RecoveryResponse:
    """Load the user's recent history and feedback and build the recovery view."""
    now = as_utc(now) if now else datetime.now(timezone.utc)
    since = now - timedelta(days=settings.RECOVERY_LOOKBACK_DAYS)

    sessions = load_recent_sessions(db, user_id, since, limit=settings.RECOVERY_SESSION_LIMIT)
    feedback_rows = (
        db.query(RecoveryFeedback)
        .filter(RecoveryFeedback.user_id == user_id)
        .order_by(RecoveryFeedback.created_at.desc())
        .all()
    )
    feedback_by_part = latest_feedback_by_part(feedback_from_row(row) for row in feedback_rows)

    histories = aggregate_workout_history(
        extract_workout_events(sessions),
        now,
        catalog=load_body_part_catalog(db),
        all_time_last_worked=load_all_time_last_worked(db, user_id),
    )

    insights = build_body_part_insights(histories, feedback_by_part, now)
    summary = build_recovery_summary(insights, now)

    logger.debug(
        "Built recovery view",
        extra={"extra_fields": {
            "user_id": str(user_id),
            "sessions": len(sessions),
            "body_parts": len(insights),
            "pain_count": summary.pain_count,
        }},
    )

    return RecoveryResponse(
        summary=summary,
        body_parts=insights,
        recent_sessions=[summarize_session(s) for s in sessions[:settings.RECOVERY_RECENT_SESSIONS]],
    )
