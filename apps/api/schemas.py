from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from uuid import UUID
from typing import Optional, List, Dict, Literal

from services.recovery_guidelines import RecoveryStatus
from services.progression_engine import NodeStatus


RecoveryFeeling = Literal["GOOD", "TIGHT", "SORE", "INJURED"]


# ---------------------------------------------------------------------------
# Recovery
# ---------------------------------------------------------------------------


class RecoveryFeedbackCreate(BaseModel):
    body_part: str = Field(min_length=1)
    feeling: RecoveryFeeling
    intensity: Optional[int] = Field(default=None, ge=1, le=5)
    note: Optional[str] = Field(default=None, max_length=300)

    @field_validator("body_part")
    @classmethod
    def body_part_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("body_part must not be blank")
        return value

    @field_validator("note", mode="before")
    @classmethod
    def strip_note(cls, value):
        # Runs ahead of max_length, so the limit applies to the trimmed text
        if isinstance(value, str):
            return value.strip() or None
        return value


class RecoveryFeedbackResponse(BaseModel):
    id: Optional[UUID] = None
    body_part: str
    feeling: RecoveryFeeling
    intensity: Optional[int] = None
    note: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BodyPartCheckCreate(BaseModel):
    body_part: str = Field(min_length=1)
    soreness: int = Field(ge=1, le=10)

    @field_validator("body_part")
    @classmethod
    def body_part_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("body_part must not be blank")
        return value


class DailyCheckInCreate(BaseModel):
    date: Optional[datetime] = None  # defaults to now
    energy_level: int = Field(ge=1, le=10)
    notes: Optional[str] = Field(default=None, max_length=500)
    body_parts: List[BodyPartCheckCreate] = Field(default_factory=list, max_length=50)

    @field_validator("notes", mode="before")
    @classmethod
    def strip_notes(cls, value):
        if isinstance(value, str):
            return value.strip() or None
        return value


class BodyPartCheckResponse(BaseModel):
    body_part: str
    soreness_level: int

    model_config = ConfigDict(from_attributes=True)


class DailyCheckInResponse(BaseModel):
    id: UUID
    date: datetime
    energy_level: int
    notes: Optional[str] = None
    created_at: datetime
    body_part_checks: List[BodyPartCheckResponse] = []

    model_config = ConfigDict(from_attributes=True)


class TrendPoint(BaseModel):
    date: str
    volume: int


class BodyPartInsightResponse(BaseModel):
    body_part: str
    label: str
    last_workout: Optional[datetime] = None
    hours_since_last: Optional[float] = None
    recommended_rest_hours: int
    status: RecoveryStatus
    recent_session_ids: List[str] = []
    seven_day_count: int = 0
    average_sets: float = 0.0
    feedback: Optional[RecoveryFeedbackResponse] = None
    trend: List[TrendPoint] = []

    model_config = ConfigDict(from_attributes=True)


class EligibilityWindowResponse(BaseModel):
    body_part: str
    remaining_hours: float


class RecoverySummaryResponse(BaseModel):
    ready_count: int
    caution_count: int
    rest_count: int
    pain_count: int
    suggested_focus: List[str]
    next_eligible_in_hours: List[EligibilityWindowResponse]
    pain_alerts: List[str]
    last_updated: datetime

    model_config = ConfigDict(from_attributes=True)


class RecentSessionResponse(BaseModel):
    id: str
    name: str
    performed_at: datetime
    body_parts: List[str]
    duration_minutes: Optional[int] = None


class RecoveryResponse(BaseModel):
    summary: RecoverySummaryResponse
    body_parts: List[BodyPartInsightResponse]
    recent_sessions: List[RecentSessionResponse]

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Workout sessions
# ---------------------------------------------------------------------------


class WorkoutSetCreate(BaseModel):
    reps: Optional[int] = Field(default=None, ge=0)
    weight_kg: Optional[float] = Field(default=None, ge=0)
    duration_s: Optional[int] = Field(default=None, ge=0)
    completed: bool = True


class WorkoutExerciseCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    body_parts: List[str] = []
    target_sets: Optional[int] = Field(default=None, ge=1, le=50)
    target_reps: Optional[str] = None
    sets: List[WorkoutSetCreate] = []


class WorkoutSessionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_s: Optional[int] = Field(default=None, ge=0)
    completed: bool = False
    exercises: List[WorkoutExerciseCreate] = []


class WorkoutSessionExerciseResponse(BaseModel):
    name: str
    body_parts: List[str]
    target_sets: Optional[int] = None
    target_reps: Optional[str] = None
    set_count: int


class WorkoutSessionResponse(BaseModel):
    id: UUID
    name: str
    status: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_s: Optional[int] = None
    exercises: List[WorkoutSessionExerciseResponse]


class SessionCompletionResponse(BaseModel):
    session: WorkoutSessionResponse
    credited_nodes: List[str]


# ---------------------------------------------------------------------------
# Progression
# ---------------------------------------------------------------------------


class TemplateExerciseResponse(BaseModel):
    name: str
    target_sets: int
    target_reps: str
    target_type: str

    model_config = ConfigDict(from_attributes=True)


class ProgressionTemplateResponse(BaseModel):
    slug: str
    name: str
    description: str
    category: str
    difficulty: str
    estimated_duration: int
    focus: str
    exercises: List[TemplateExerciseResponse]

    model_config = ConfigDict(from_attributes=True)


class ProgressionNodeResponse(BaseModel):
    id: str
    name: str
    tier: int
    xp: int
    focus: str
    description: str
    reward: str
    target_sessions: int
    prerequisites: List[str]
    exercise_keywords: List[str]
    template: ProgressionTemplateResponse

    model_config = ConfigDict(from_attributes=True)


class ProgressionBranchResponse(BaseModel):
    id: str
    title: str
    subtitle: str
    description: str
    milestones: List[ProgressionNodeResponse]

    model_config = ConfigDict(from_attributes=True)


class ProgressionProfileResponse(BaseModel):
    alias: str
    total_xp: int
    crowns: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class NodeProgressRecordResponse(BaseModel):
    node_id: str
    status: NodeStatus
    completion_count: int
    xp_earned: int
    last_completed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProgressionProgressResponse(BaseModel):
    profile: ProgressionProfileResponse
    records: List[NodeProgressRecordResponse]


class NodeProgressStateResponse(BaseModel):
    node_id: str
    status: NodeStatus
    completion_count: int
    target_sessions: int
    progress: float
    xp: int


class BranchProgressResponse(BaseModel):
    completed: int
    available: int
    locked: int
    total: int
    xp_earned: int
    xp_total: int


class ProgressionTotalsResponse(BaseModel):
    nodes_cleared: int
    nodes_total: int
    xp_earned: int
    xp_total: int
    ready_to_play: int
    crowns: int


class ProgressionStateResponse(BaseModel):
    node_states: Dict[str, NodeProgressStateResponse]
    branch_progress: Dict[str, BranchProgressResponse]
    totals: ProgressionTotalsResponse


class ProgressionSyncResponse(BaseModel):
    sessions_scanned: int
    new_credits: int
    repaired_counts: int = 0
    total_xp: int


class LeaderboardPlayerResponse(BaseModel):
    alias: str
    rank: int
    xp: int
    crowns: int = 0


class NodeClearRateResponse(BaseModel):
    node_id: str
    cleared_count: int
    percent: float


class LeaderboardResponse(BaseModel):
    total_players: int
    nodes: List[NodeClearRateResponse]
    players: List[LeaderboardPlayerResponse]
    current_player: Optional[LeaderboardPlayerResponse] = None
