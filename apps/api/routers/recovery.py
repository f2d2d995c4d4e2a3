"""
Recovery API Router

Endpoints for per-body-part recovery readiness:
- Recovery overview (status per body part, what to train next)
- Subjective feedback (good / tight / sore / injured)
- Daily check-ins (energy level, per-body-part soreness)
"""

import logging
from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Union
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.database import get_db
from core.exceptions import ForbiddenError, NotFoundError, ValidationError
from models import BodyPartCheck, DailyCheckIn, RecoveryFeedback, User
from schemas import (
    DailyCheckInCreate,
    DailyCheckInResponse,
    RecoveryFeedbackCreate,
    RecoveryFeedbackResponse,
    RecoveryResponse,
)
from services.recovery_guidelines import normalize_body_part_key
from services.recovery_summary import build_recovery_response
from services.workout_history import as_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/recovery", tags=["Recovery"])


@router.get("", response_model=RecoveryResponse)
def get_recovery(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Recovery overview for the current user.

    Computed fresh on every call from the last 30 days of sessions and the
    latest feedback per body part.
    """
    return asdict(build_recovery_response(db, current_user.id))


@router.post("/feedback", response_model=RecoveryResponse, status_code=status.HTTP_201_CREATED)
def submit_feedback(
    payload: Union[List[Dict[str, Any]], Dict[str, Any]] = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Record one feedback entry or a batch of them.

    Invalid entries in a batch are dropped; if none are valid the request is
    rejected. Returns the refreshed recovery overview.
    """
    entries = payload if isinstance(payload, list) else [payload]
    if not entries:
        raise ValidationError("No feedback provided")

    parsed: List[RecoveryFeedbackCreate] = []
    for entry in entries:
        try:
            parsed.append(RecoveryFeedbackCreate.model_validate(entry))
        except PydanticValidationError as e:
            logger.info(f"Dropping invalid recovery feedback entry: {e.error_count()} error(s)")

    if not parsed:
        raise ValidationError("Invalid feedback payload")

    for item in parsed:
        db.add(RecoveryFeedback(
            user_id=current_user.id,
            body_part=normalize_body_part_key(item.body_part),
            feeling=item.feeling,
            intensity=item.intensity,
            note=item.note,
        ))
    db.flush()

    logger.info(
        "Recovery feedback saved",
        extra={"extra_fields": {"user_id": str(current_user.id), "count": len(parsed)}},
    )
    return asdict(build_recovery_response(db, current_user.id))


@router.get("/feedback", response_model=List[RecoveryFeedbackResponse])
def list_feedback(
    limit: int = 50,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Feedback history, newest first."""
    return (
        db.query(RecoveryFeedback)
        .filter(RecoveryFeedback.user_id == current_user.id)
        .order_by(RecoveryFeedback.created_at.desc())
        .limit(max(1, min(limit, 200)))
        .all()
    )


@router.delete("/feedback/{feedback_id}")
def delete_feedback(
    feedback_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Dict:
    feedback = db.query(RecoveryFeedback).filter(RecoveryFeedback.id == feedback_id).first()
    if not feedback:
        raise NotFoundError("Feedback", str(feedback_id))
    if feedback.user_id != current_user.id:
        raise ForbiddenError()

    db.delete(feedback)
    db.flush()
    return {"success": True}


@router.post("/daily-check-in", response_model=DailyCheckInResponse, status_code=status.HTTP_201_CREATED)
def create_daily_check_in(
    payload: DailyCheckInCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Record today's energy level and any sore body parts.

    Body parts are stored under their normalized key; if the same part is
    listed twice, the last soreness value wins.
    """
    soreness: Dict[str, int] = {}
    for check in payload.body_parts:
        key = normalize_body_part_key(check.body_part)
        if key:
            soreness[key] = check.soreness

    check_in = DailyCheckIn(
        user_id=current_user.id,
        date=as_utc(payload.date) if payload.date else datetime.now(timezone.utc),
        energy_level=payload.energy_level,
        notes=payload.notes,
    )
    for body_part, level in soreness.items():
        check_in.body_part_checks.append(BodyPartCheck(body_part=body_part, soreness_level=level))
    db.add(check_in)
    db.flush()

    logger.info(
        "Daily check-in saved",
        extra={"extra_fields": {
            "user_id": str(current_user.id),
            "energy_level": payload.energy_level,
            "body_parts": len(soreness),
        }},
    )
    return check_in


@router.get("/daily-check-in", response_model=List[DailyCheckInResponse])
def list_daily_check_ins(
    days: int = Query(default=30, ge=1, le=365),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Check-ins dated within the last `days` days, newest first."""
    since = datetime.now(timezone.utc) - timedelta(days=days)
    return (
        db.query(DailyCheckIn)
        .filter(
            DailyCheckIn.user_id == current_user.id,
            DailyCheckIn.date >= since,
        )
        .order_by(DailyCheckIn.date.desc())
        .all()
    )
