"""
Workout Sessions API Router

Minimal logging surface for the recovery and progression engines:
- Log a session (exercises, targeted body parts, sets)
- List recent sessions
- Complete a session, which credits progression nodes
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.database import get_db
from core.exceptions import ConflictError, NotFoundError
from models import BodyPart, Exercise, User, WorkoutSession, WorkoutSessionExercise, WorkoutSet
from schemas import SessionCompletionResponse, WorkoutSessionCreate, WorkoutSessionResponse
from services.progression_engine import credit_workout_session
from services.recovery_guidelines import normalize_body_part_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/workout-sessions", tags=["Workout Sessions"])


def _get_or_create_body_part(db: Session, raw_name: str) -> Optional[BodyPart]:
    key = normalize_body_part_key(raw_name)
    if not key:
        return None
    body_part = db.query(BodyPart).filter(BodyPart.name == key).first()
    if body_part is None:
        body_part = BodyPart(name=key)
        db.add(body_part)
        db.flush()
    return body_part


def _get_or_create_exercise(db: Session, user_id: UUID, name: str, body_part_names: List[str]) -> Exercise:
    clean_name = name.strip()
    exercise = (
        db.query(Exercise)
        .filter(
            func.lower(Exercise.name) == clean_name.lower(),
            or_(Exercise.created_by_user_id.is_(None), Exercise.created_by_user_id == user_id),
        )
        .order_by(Exercise.created_by_user_id.is_(None).desc())
        .first()
    )
    if exercise is None:
        exercise = Exercise(name=clean_name, created_by_user_id=user_id)
        db.add(exercise)

    for raw in body_part_names:
        body_part = _get_or_create_body_part(db, raw)
        if body_part is not None and body_part not in exercise.body_parts:
            exercise.body_parts.append(body_part)
    db.flush()
    return exercise


def _serialize_session(session: WorkoutSession) -> Dict:
    return {
        "id": session.id,
        "name": session.name,
        "status": session.status,
        "start_time": session.start_time,
        "end_time": session.end_time,
        "duration_s": session.duration_s,
        "exercises": [
            {
                "name": item.exercise.name,
                "body_parts": [bp.name for bp in item.exercise.body_parts],
                "target_sets": item.target_sets,
                "target_reps": item.target_reps,
                "set_count": len(item.sets) or item.target_sets or 1,
            }
            for item in session.exercises
        ],
    }


def _get_owned_session(db: Session, session_id: UUID, user: User) -> WorkoutSession:
    session = (
        db.query(WorkoutSession)
        .filter(WorkoutSession.id == session_id, WorkoutSession.user_id == user.id)
        .first()
    )
    if session is None:
        raise NotFoundError("Workout session", str(session_id))
    return session


@router.post("", response_model=WorkoutSessionResponse, status_code=status.HTTP_201_CREATED)
def create_session(
    payload: WorkoutSessionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Log a workout session.

    Exercises and body parts are matched by name and created on first use.
    A session logged with `completed=true` is credited to progression
    immediately.
    """
    session = WorkoutSession(
        user_id=current_user.id,
        name=payload.name.strip(),
        status="in_progress",
        start_time=payload.start_time,
        end_time=payload.end_time,
        duration_s=payload.duration_s,
    )
    db.add(session)

    for position, item in enumerate(payload.exercises):
        exercise = _get_or_create_exercise(db, current_user.id, item.name, item.body_parts)
        session_exercise = WorkoutSessionExercise(
            exercise=exercise,
            position=position,
            target_sets=item.target_sets,
            target_reps=item.target_reps,
        )
        for number, logged in enumerate(item.sets, start=1):
            session_exercise.sets.append(WorkoutSet(
                set_number=number,
                reps=logged.reps,
                weight_kg=logged.weight_kg,
                duration_s=logged.duration_s,
                completed=logged.completed,
            ))
        session.exercises.append(session_exercise)

    db.flush()

    if payload.completed:
        _complete(db, session)

    return _serialize_session(session)


@router.get("", response_model=List[WorkoutSessionResponse])
def list_sessions(
    limit: int = 20,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    sessions = (
        db.query(WorkoutSession)
        .filter(WorkoutSession.user_id == current_user.id, WorkoutSession.is_archived.is_(False))
        .order_by(WorkoutSession.start_time.desc())
        .limit(max(1, min(limit, 100)))
        .all()
    )
    return [_serialize_session(s) for s in sessions]


def _complete(db: Session, session: WorkoutSession) -> List[str]:
    session.status = "completed"
    if session.end_time is None:
        session.end_time = datetime.now(timezone.utc)
    db.flush()
    credited = credit_workout_session(db, session)
    logger.info(
        f"Workout session completed: {session.id}",
        extra={"extra_fields": {"user_id": str(session.user_id), "credited_nodes": credited}},
    )
    return credited


@router.post("/{session_id}/complete", response_model=SessionCompletionResponse)
def complete_session(
    session_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Mark a session completed and count it toward matching progression nodes."""
    session = _get_owned_session(db, session_id, current_user)
    if session.status == "completed":
        raise ConflictError(f"Workout session already completed: {session_id}")

    credited = _complete(db, session)
    return {"session": _serialize_session(session), "credited_nodes": credited}
