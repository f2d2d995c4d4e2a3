"""
Recovery Guidelines

Static rest-window table plus the readiness rule built on top of it.

    status = pain     if the athlete reported an injury
             ready    if the body part was never worked
             rest     if hours since last work <  60% of the window
             caution  if hours since last work < 100% of the window
             ready    otherwise

The tables are read-only module constants shared by the aggregator and the
summary builder.
"""

import re
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


DEFAULT_REST_WINDOW_HOURS = 48

# Fraction of the rest window below which a body part should not be trained.
REST_THRESHOLD_FRACTION = 0.6


class RecoveryStatus(str, Enum):
    READY = "ready"
    CAUTION = "caution"
    REST = "rest"
    PAIN = "pain"


# Display/sort order: most trainable first
STATUS_ORDER = {
    RecoveryStatus.READY: 0,
    RecoveryStatus.CAUTION: 1,
    RecoveryStatus.REST: 2,
    RecoveryStatus.PAIN: 3,
}


REST_WINDOW_HOURS: Mapping[str, int] = MappingProxyType({
    "chest": 48,
    "back": 48,
    "upper back": 48,
    "lower back": 72,
    "shoulders": 48,
    "traps": 48,
    "upper arms": 48,
    "upper body": 48,
    "biceps": 36,
    "triceps": 36,
    "forearms": 36,
    "lower arms": 36,
    "core": 24,
    "abs": 24,
    "obliques": 24,
    "waist": 24,
    "glutes": 72,
    "hips": 72,
    "hamstrings": 72,
    "quadriceps": 72,
    "upper legs": 72,
    "calves": 48,
    "lower legs": 48,
    "cardio": 24,
    "neck": 24,
    "fullbody": 72,
    "mobility": 24,
    "arms": 48,
    "legs": 72,
})

# Raw label -> canonical key. Every value is itself a fixed point of the
# table (or absent from it) so normalization is idempotent.
BODY_PART_SYNONYMS: Mapping[str, str] = MappingProxyType({
    "upper legs": "upper legs",
    "lower legs": "lower legs",
    "quads": "quadriceps",
    "hams": "hamstrings",
    "glute": "glutes",
    "abdominals": "abs",
    "ab": "abs",
    "lower-body": "legs",
    "upper-body": "upper body",
    "upper body": "upper body",
    "cardio": "cardio",
    "waist": "waist",
    "shoulders": "shoulders",
    "arms": "arms",
    "legs": "legs",
})

_LABEL_SPLIT = re.compile(r"[\s\-]+")


def normalize_body_part_key(raw: Optional[str]) -> str:
    """Canonical lowercase key for a free-text body-part label. Never fails."""
    trimmed = (raw or "").strip().lower()
    return BODY_PART_SYNONYMS.get(trimmed, trimmed)


def format_body_part_label(raw: Optional[str]) -> str:
    """'upper-back' -> 'Upper Back'."""
    if not raw:
        return "Unknown"
    words = [w for w in _LABEL_SPLIT.split(raw) if w]
    if not words:
        return "Unknown"
    return " ".join(w[0].upper() + w[1:] for w in words)


def get_rest_window_hours(body_part: str) -> int:
    return REST_WINDOW_HOURS.get(normalize_body_part_key(body_part), DEFAULT_REST_WINDOW_HOURS)


def classify_recovery_status(
    hours_since_last: Optional[float],
    rest_window_hours: float,
    has_pain: bool = False,
) -> RecoveryStatus:
    """
    Readiness of one body part.

    Pain always wins. A body part that was never worked is ready.
    """
    if has_pain:
        return RecoveryStatus.PAIN

    if hours_since_last is None:
        return RecoveryStatus.READY

    if hours_since_last < rest_window_hours * REST_THRESHOLD_FRACTION:
        return RecoveryStatus.REST

    if hours_since_last < rest_window_hours:
        return RecoveryStatus.CAUTION

    return RecoveryStatus.READY
