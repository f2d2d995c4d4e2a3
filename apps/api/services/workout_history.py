"""
Workout History Aggregator

Turns logged workout sessions into per-body-part facts:
- when the body part was last worked
- how many sets it received and across how many sessions
- how many of those sessions fall inside the last seven days
- a per-day volume trend

The aggregation itself is pure; the `load_*` helpers at the bottom are the
only functions that touch the database.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from models import BodyPart, Exercise, WorkoutSession, WorkoutSessionExercise, exercise_body_part
from services.recovery_guidelines import format_body_part_label, normalize_body_part_key

logger = logging.getLogger(__name__)

FULL_BODY_KEY = "fullbody"
SEVEN_DAYS = timedelta(days=7)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class ExerciseRecord:
    name: str
    body_parts: Sequence[str] = ()
    set_count: int = 1


@dataclass(frozen=True)
class SessionRecord:
    id: str
    name: str
    performed_at: datetime
    exercises: Sequence[ExerciseRecord] = ()
    duration_s: Optional[int] = None
    status: str = "completed"


@dataclass(frozen=True)
class WorkoutEvent:
    """One body part worked in one session."""
    body_part: str
    performed_at: datetime
    set_count: int
    session_id: str
    label: str = ""


@dataclass
class BodyPartHistory:
    body_part: str
    label: str
    last_workout: Optional[datetime] = None
    total_sets: int = 0
    session_ids: Set[str] = field(default_factory=set)
    seven_day_session_ids: Set[str] = field(default_factory=set)
    volume_by_day: Dict[date, int] = field(default_factory=dict)

    @property
    def session_count(self) -> int:
        return len(self.session_ids)

    @property
    def seven_day_count(self) -> int:
        return len(self.seven_day_session_ids)

    @property
    def average_sets(self) -> float:
        if not self.session_ids:
            return 0.0
        return round(self.total_sets / len(self.session_ids), 1)

    def trend(self) -> List[Dict]:
        return [
            {"date": day.isoformat(), "volume": volume}
            for day, volume in sorted(self.volume_by_day.items())
        ]


def extract_workout_events(sessions: Iterable[SessionRecord]) -> List[WorkoutEvent]:
    """
    Flatten sessions into one event per (session, body part).

    Exercises without any body-part tag count toward "fullbody".
    """
    events: List[WorkoutEvent] = []
    for session in sessions:
        performed_at = as_utc(session.performed_at)
        if performed_at is None:
            continue

        sets_by_part: Dict[str, int] = {}
        labels: Dict[str, str] = {}
        for exercise in session.exercises:
            raw_parts = list(exercise.body_parts) or [FULL_BODY_KEY]
            set_count = max(1, int(exercise.set_count or 1))
            for raw in raw_parts:
                key = normalize_body_part_key(raw)
                if not key:
                    continue
                sets_by_part[key] = sets_by_part.get(key, 0) + set_count
                labels.setdefault(key, format_body_part_label(raw))

        for key, set_count in sets_by_part.items():
            events.append(WorkoutEvent(
                body_part=key,
                performed_at=performed_at,
                set_count=set_count,
                session_id=str(session.id),
                label=labels[key],
            ))
    return events


def aggregate_workout_history(
    events: Iterable[WorkoutEvent],
    now: datetime,
    catalog: Iterable[str] = (),
    seven_day_window: timedelta = SEVEN_DAYS,
    all_time_last_worked: Optional[Mapping[str, datetime]] = None,
) -> Dict[str, BodyPartHistory]:
    """
    Group events by body part.

    Every catalog body part is present in the result; one that was never
    worked keeps `last_workout=None`. `all_time_last_worked` carries
    "last worked" facts older than the event window.
    """
    now = as_utc(now)
    window_start = now - seven_day_window
    histories: Dict[str, BodyPartHistory] = {}

    def _history(key: str, label: str) -> BodyPartHistory:
        if key not in histories:
            histories[key] = BodyPartHistory(body_part=key, label=label or format_body_part_label(key))
        return histories[key]

    for raw in catalog:
        key = normalize_body_part_key(raw)
        if key:
            _history(key, format_body_part_label(raw))

    for event in events:
        performed_at = as_utc(event.performed_at)
        history = _history(event.body_part, event.label)
        if history.last_workout is None or performed_at > history.last_workout:
            history.last_workout = performed_at
        history.total_sets += event.set_count
        history.session_ids.add(event.session_id)
        if performed_at >= window_start:
            history.seven_day_session_ids.add(event.session_id)
        day = performed_at.date()
        history.volume_by_day[day] = history.volume_by_day.get(day, 0) + event.set_count

    for key, last_worked in (all_time_last_worked or {}).items():
        if key not in histories:
            continue
        last_worked = as_utc(last_worked)
        history = histories[key]
        if history.last_workout is None or last_worked > history.last_workout:
            history.last_workout = last_worked

    return histories


# ---------------------------------------------------------------------------
# Database loaders
# ---------------------------------------------------------------------------


def session_to_record(session: WorkoutSession) -> SessionRecord:
    exercises = []
    for item in session.exercises:
        exercise = item.exercise
        set_count = len(item.sets) or item.target_sets or 1
        exercises.append(ExerciseRecord(
            name=exercise.name if exercise else "",
            body_parts=tuple(bp.name for bp in (exercise.body_parts if exercise else [])),
            set_count=set_count,
        ))
    return SessionRecord(
        id=str(session.id),
        name=session.name,
        performed_at=as_utc(session.end_time or session.start_time),
        exercises=tuple(exercises),
        duration_s=session.duration_s,
        status=session.status,
    )


def load_recent_sessions(
    db: Session,
    user_id: UUID,
    since: datetime,
    limit: int = 60,
) -> List[SessionRecord]:
    """Non-archived sessions started on or after `since`, newest first."""
    rows = (
        db.query(WorkoutSession)
        .options(
            selectinload(WorkoutSession.exercises).selectinload(WorkoutSessionExercise.sets),
        )
        .filter(
            WorkoutSession.user_id == user_id,
            WorkoutSession.is_archived.is_(False),
            WorkoutSession.start_time >= since,
        )
        .order_by(WorkoutSession.start_time.desc())
        .limit(limit)
        .all()
    )
    return [session_to_record(row) for row in rows]


def load_completed_sessions(db: Session, user_id: UUID) -> List[SessionRecord]:
    rows = (
        db.query(WorkoutSession)
        .options(
            selectinload(WorkoutSession.exercises).selectinload(WorkoutSessionExercise.sets),
        )
        .filter(
            WorkoutSession.user_id == user_id,
            WorkoutSession.status == "completed",
            WorkoutSession.is_archived.is_(False),
        )
        .order_by(WorkoutSession.start_time.asc())
        .all()
    )
    return [session_to_record(row) for row in rows]


def load_all_time_last_worked(db: Session, user_id: UUID) -> Dict[str, datetime]:
    """
    Most recent session per body part over the whole history.

    Grouped by stored body-part name; names are normalized here, so two
    stored spellings of the same muscle collapse to the later timestamp.
    """
    performed = func.coalesce(WorkoutSession.end_time, WorkoutSession.start_time)
    rows = (
        db.query(BodyPart.name, func.max(performed))
        .join(exercise_body_part, exercise_body_part.c.body_part_id == BodyPart.id)
        .join(Exercise, Exercise.id == exercise_body_part.c.exercise_id)
        .join(WorkoutSessionExercise, WorkoutSessionExercise.exercise_id == Exercise.id)
        .join(WorkoutSession, WorkoutSession.id == WorkoutSessionExercise.session_id)
        .filter(
            WorkoutSession.user_id == user_id,
            WorkoutSession.is_archived.is_(False),
        )
        .group_by(BodyPart.name)
        .all()
    )

    result: Dict[str, datetime] = {}
    for name, latest in rows:
        if latest is None:
            continue
        key = normalize_body_part_key(name)
        latest = as_utc(latest)
        current = result.get(key)
        if current is None or latest > current:
            result[key] = latest
    return result


def load_body_part_catalog(db: Session) -> List[str]:
    return [name for (name,) in db.query(BodyPart.name).order_by(BodyPart.name).all()]
