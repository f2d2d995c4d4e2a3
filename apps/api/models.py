from sqlalchemy import Column, Integer, Float, Boolean, CheckConstraint, DateTime, ForeignKey, Text, String, Index, UniqueConstraint, Table, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from core.database import Base
import uuid
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "app_user"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    email = Column(Text, unique=True, nullable=True)
    display_name = Column(Text, nullable=True)
    # Hard block a user from accessing the product (admin-only action).
    is_blocked = Column(Boolean, default=False, nullable=False)


# Many-to-many: an exercise targets one or more body parts.
exercise_body_part = Table(
    "exercise_body_part",
    Base.metadata,
    Column("exercise_id", Uuid(as_uuid=True), ForeignKey("exercise.id", ondelete="CASCADE"), primary_key=True),
    Column("body_part_id", Integer, ForeignKey("body_part.id", ondelete="CASCADE"), primary_key=True),
)


class BodyPart(Base):
    """Catalog of muscle groups. Names are stored as normalized keys."""
    __tablename__ = "body_part"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, unique=True, nullable=False)


class Exercise(Base):
    __tablename__ = "exercise"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False, index=True)
    # NULL for the shared library, set for user-created exercises
    created_by_user_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.id", ondelete="CASCADE"), nullable=True)

    body_parts = relationship("BodyPart", secondary=exercise_body_part, lazy="selectin", order_by="BodyPart.name")


class WorkoutSession(Base):
    __tablename__ = "workout_session"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    status = Column(String(32), default="in_progress", nullable=False)  # 'in_progress' | 'completed'
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    duration_s = Column(Integer, nullable=True)
    is_archived = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)

    exercises = relationship(
        "WorkoutSessionExercise",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="WorkoutSessionExercise.position",
    )

    __table_args__ = (
        CheckConstraint("status IN ('in_progress', 'completed')", name="ck_workout_session_status"),
        Index("ix_workout_session_user_start", "user_id", "start_time"),
    )


class WorkoutSessionExercise(Base):
    __tablename__ = "workout_session_exercise"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid(as_uuid=True), ForeignKey("workout_session.id", ondelete="CASCADE"), nullable=False, index=True)
    exercise_id = Column(Uuid(as_uuid=True), ForeignKey("exercise.id"), nullable=False)
    position = Column(Integer, default=0, nullable=False)
    target_sets = Column(Integer, nullable=True)
    target_reps = Column(Text, nullable=True)  # "8-12", "30s"

    session = relationship("WorkoutSession", back_populates="exercises")
    exercise = relationship("Exercise", lazy="joined")
    sets = relationship(
        "WorkoutSet",
        back_populates="session_exercise",
        cascade="all, delete-orphan",
        order_by="WorkoutSet.set_number",
    )


class WorkoutSet(Base):
    __tablename__ = "workout_set"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_exercise_id = Column(
        Uuid(as_uuid=True), ForeignKey("workout_session_exercise.id", ondelete="CASCADE"), nullable=False, index=True
    )
    set_number = Column(Integer, nullable=False)
    reps = Column(Integer, nullable=True)
    weight_kg = Column(Float, nullable=True)
    duration_s = Column(Integer, nullable=True)
    completed = Column(Boolean, default=True, nullable=False)

    session_exercise = relationship("WorkoutSessionExercise", back_populates="sets")


class RecoveryFeedback(Base):
    """Subjective per-body-part report. Latest entry per body part wins."""
    __tablename__ = "recovery_feedback"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False)
    body_part = Column(Text, nullable=False)  # normalized key
    feeling = Column(String(16), nullable=False)  # GOOD | TIGHT | SORE | INJURED
    intensity = Column(Integer, nullable=True)  # 1-5
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("feeling IN ('GOOD', 'TIGHT', 'SORE', 'INJURED')", name="ck_recovery_feedback_feeling"),
        CheckConstraint("intensity IS NULL OR (intensity >= 1 AND intensity <= 5)", name="ck_recovery_feedback_intensity"),
        Index("ix_recovery_feedback_user_created", "user_id", "created_at"),
    )


class DailyCheckIn(Base):
    """Morning check-in: overall energy plus soreness for any body parts the user flags."""
    __tablename__ = "daily_check_in"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    energy_level = Column(Integer, nullable=False)  # 1-10
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)

    body_part_checks = relationship(
        "BodyPartCheck",
        back_populates="check_in",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="BodyPartCheck.body_part",
    )

    __table_args__ = (
        CheckConstraint("energy_level >= 1 AND energy_level <= 10", name="ck_daily_check_in_energy"),
        Index("ix_daily_check_in_user_date", "user_id", "date"),
    )


class BodyPartCheck(Base):
    __tablename__ = "body_part_check"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    check_in_id = Column(Uuid(as_uuid=True), ForeignKey("daily_check_in.id", ondelete="CASCADE"), nullable=False, index=True)
    body_part = Column(Text, nullable=False)  # normalized key
    soreness_level = Column(Integer, nullable=False)  # 1-10

    check_in = relationship("DailyCheckIn", back_populates="body_part_checks")

    __table_args__ = (
        CheckConstraint("soreness_level >= 1 AND soreness_level <= 10", name="ck_body_part_check_soreness"),
    )


class ProgressionNodeProgress(Base):
    """
    Per-user counter for one catalog node.

    `status` caches the terminal facts (COMPLETED, or LOCKED/AVAILABLE as of the
    last write). AVAILABLE is always recomputed on read from prerequisites.
    """
    __tablename__ = "progression_node_progress"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False)
    node_id = Column(Text, nullable=False)
    status = Column(String(16), default="LOCKED", nullable=False)
    completion_count = Column(Integer, default=0, nullable=False)
    xp_earned = Column(Integer, default=0, nullable=False)
    last_completed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "node_id", name="uq_progression_node_progress_user_node"),
        CheckConstraint("completion_count >= 0", name="ck_progression_node_progress_count"),
        CheckConstraint("status IN ('LOCKED', 'AVAILABLE', 'COMPLETED')", name="ck_progression_node_progress_status"),
    )


class ProgressionSessionCredit(Base):
    """One row per session counted toward a node; guards against double counting."""
    __tablename__ = "progression_session_credit"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False)
    node_id = Column(Text, nullable=False)
    session_id = Column(Uuid(as_uuid=True), ForeignKey("workout_session.id", ondelete="CASCADE"), nullable=False)
    credited_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "node_id", "session_id", name="uq_progression_session_credit"),
    )


class ProgressionProfile(Base):
    __tablename__ = "progression_profile"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, unique=True)
    alias = Column(Text, nullable=False)
    total_xp = Column(Integer, default=0, nullable=False)
    crowns = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_progression_profile_total_xp", "total_xp"),
    )
