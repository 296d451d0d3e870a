"""
Data model for captures, challenge completions and the app-state aggregate,
plus the result records returned by the scoring and anti-cheat checks.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


class ConfidenceLevel(Enum):
    """Coarse confidence label derived from metric variance"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Trend(Enum):
    """Direction of capture confidence over recent entries"""
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"
    BUILDING = "building"


@dataclass(frozen=True)
class MetricSample:
    """One generated value for a named metric"""
    id: str
    value: float
    range: Tuple[float, float]
    confidence_level: ConfidenceLevel
    variance: float


@dataclass(frozen=True)
class TimelineEntry:
    """A recorded capture with its confidence and derived metrics"""
    photo_ref: str
    timestamp: datetime
    confidence: float
    metrics: Dict[str, MetricSample] = field(default_factory=dict)


@dataclass(frozen=True)
class ChallengeCompletion:
    """A completed daily challenge"""
    id: str
    challenge_id: str
    date: date
    completed_at: datetime


@dataclass
class AppState:
    """
    Process-wide aggregate owning the capture timeline and challenge history.

    Both sequences are append-only. ``progress_unlocked_at`` is set the first
    time all unlock gates are met and is never cleared.
    """
    created_at: Optional[datetime] = None
    timeline: List[TimelineEntry] = field(default_factory=list)
    challenges: List[ChallengeCompletion] = field(default_factory=list)
    progress_unlocked_at: Optional[datetime] = None

    def add_timeline_entry(self, entry: TimelineEntry) -> None:
        self.timeline.append(entry)

    def complete_challenge(
        self,
        challenge_id: str,
        completed_at: datetime,
        completion_id: Optional[str] = None
    ) -> ChallengeCompletion:
        """Append a completion. Repeats for the same challenge and day are kept."""
        completion = ChallengeCompletion(
            id=completion_id or str(uuid.uuid4()),
            challenge_id=challenge_id,
            date=completed_at.date(),
            completed_at=completed_at,
        )
        self.challenges.append(completion)
        return completion

    def days_since_start(self, now: datetime) -> int:
        """Whole days elapsed since ``created_at`` (0 when unset)."""
        if self.created_at is None:
            return 0
        elapsed = (now - self.created_at).total_seconds()
        return max(0, int(elapsed // SECONDS_PER_DAY))

    def mark_progress_unlocked(self, at: datetime) -> None:
        if self.progress_unlocked_at is not None:
            return
        self.progress_unlocked_at = at
        logger.info("Progress score unlocked at %s", at.isoformat())

    def sorted_timeline(self) -> List[TimelineEntry]:
        return sorted(self.timeline, key=lambda entry: entry.timestamp)


@dataclass(frozen=True)
class RemainingRequirements:
    days: int
    photos: int
    challenges: int


@dataclass(frozen=True)
class UnlockStatus:
    is_unlocked: bool
    progress: float
    remaining: RemainingRequirements


@dataclass(frozen=True)
class ScoreBreakdown:
    consistency: int
    challenges: int
    quality: int
    improvement: int


@dataclass(frozen=True)
class ScoreResult:
    """Progress score, or the lock state while unlock gates are unmet"""
    score: Optional[int]
    is_locked: bool
    unlock_progress: Optional[float] = None
    requirements: Optional[RemainingRequirements] = None
    breakdown: Optional[ScoreBreakdown] = None
    trend: Optional[Trend] = None


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    reason: Optional[str] = None
    wait_minutes: Optional[int] = None


@dataclass(frozen=True)
class SuspiciousActivityResult:
    is_suspicious: bool
    reason: Optional[str] = None
    trust_score: float = 1.0


@dataclass(frozen=True)
class TimelineFlags:
    """Score-gaming patterns found in a capture timeline"""
    is_suspicious: bool
    flags: List[str] = field(default_factory=list)
    confidence_penalty: float = 0.0


@dataclass(frozen=True)
class CaptureQuality:
    """Raw capture quality on 0-100 scales; face size as a fraction of frame"""
    brightness: float
    sharpness: float
    contrast: float
    face_size: Optional[float] = None


@dataclass(frozen=True)
class CaptureMetadata:
    timestamp: datetime
    software: Optional[str] = None


@dataclass(frozen=True)
class ValidationIssue:
    type: str
    message: str
    severity: str  # "error" or "warning"


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    has_warnings: bool
    issues: List[ValidationIssue]
    confidence: float


@dataclass(frozen=True)
class CaptureFlag:
    type: str
    confidence: float
    message: str


@dataclass(frozen=True)
class FilterResult:
    is_probably_filtered: bool
    flags: List[CaptureFlag]
    overall_confidence: float


@dataclass(frozen=True)
class AngleResult:
    is_consistent: bool
    flags: List[CaptureFlag] = field(default_factory=list)
    confidence_penalty: float = 0.0


@dataclass(frozen=True)
class TrustScore:
    score: float
    level: ConfidenceLevel
    message: str
