"""
Progress Scoring Engine
=======================
Combines capture history, challenge completions and metric movement into a
single 0-100 progress score.

The score stays locked until the user has tracked for a minimum number of
days, captured a minimum number of photos and completed a minimum number of
challenges. All three gates are hard: meeting two of them unlocks nothing.

Sub-scores (each 0-100, neutral 50 when data is insufficient):
1. Consistency - average gap between captures, ideal every 1-3 days
2. Challenge completion - completions per day since start
3. Photo quality - recency-weighted capture confidence
4. Improvement - recent metric values against the previous window
"""

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Sequence

import numpy as np

from .config import ProgressConfig
from .confidence import weighted_moving_average
from .models import (
    SECONDS_PER_DAY,
    AppState,
    RemainingRequirements,
    ScoreBreakdown,
    ScoreResult,
    TimelineEntry,
    TimelineFlags,
    Trend,
    UnlockStatus,
)

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 50.0

# Per-metric change is halved then clamped to this magnitude
MAX_IMPROVEMENT_DELTA = 50.0

# Timeline-level anti-gaming checks
EXCESSIVE_UPLOADS_PER_DAY = 5
SUSPICIOUS_QUALITY_SPREAD = 0.02
SUSPICIOUS_QUALITY_FLOOR = 0.9
SUSPICIOUS_FLAG_PENALTY = 0.1


class ProgressLevel(Enum):
    """Named tiers of the progress score"""
    STARTER = "starter"
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    ELITE = "elite"


PROGRESS_LEVEL_MIN_SCORES = {
    ProgressLevel.STARTER: 0,
    ProgressLevel.BEGINNER: 25,
    ProgressLevel.INTERMEDIATE: 50,
    ProgressLevel.ADVANCED: 75,
    ProgressLevel.ELITE: 90,
}


def check_unlock_status(
    state: AppState,
    now: Optional[datetime] = None,
    config: Optional[ProgressConfig] = None
) -> UnlockStatus:
    """
    Evaluate the unlock gates without modifying the state.

    Returns:
        UnlockStatus with ``progress`` in [0, 1] and the remaining days,
        photos and challenges (never negative)
    """
    config = config or ProgressConfig()
    now = now or datetime.now()

    if state.created_at is None:
        return UnlockStatus(
            is_unlocked=False,
            progress=0.0,
            remaining=RemainingRequirements(
                days=config.min_days,
                photos=config.min_photos,
                challenges=config.min_challenges,
            ),
        )

    days = state.days_since_start(now)
    photos = len(state.timeline)
    challenges = len(state.challenges)

    remaining = RemainingRequirements(
        days=max(0, config.min_days - days),
        photos=max(0, config.min_photos - photos),
        challenges=max(0, config.min_challenges - challenges),
    )
    is_unlocked = remaining.days == 0 and remaining.photos == 0 and remaining.challenges == 0

    progress = (
        min(1.0, days / config.min_days) * config.unlock_days_weight
        + min(1.0, photos / config.min_photos) * config.unlock_photos_weight
        + min(1.0, challenges / config.min_challenges) * config.unlock_challenges_weight
    )

    return UnlockStatus(
        is_unlocked=is_unlocked,
        progress=min(1.0, progress),
        remaining=remaining,
    )


def calculate_progress_score(
    state: AppState,
    now: Optional[datetime] = None,
    config: Optional[ProgressConfig] = None
) -> ScoreResult:
    """
    Calculate the progress score for the app state.

    While locked, the result carries no score, only unlock progress and the
    remaining requirements. The first call that finds every gate met stamps
    ``state.progress_unlocked_at``; after that the gates are not re-checked.
    """
    config = config or ProgressConfig()
    now = now or datetime.now()

    if state.progress_unlocked_at is None:
        status = check_unlock_status(state, now, config)
        if not status.is_unlocked:
            return ScoreResult(
                score=None,
                is_locked=True,
                unlock_progress=status.progress,
                requirements=status.remaining,
            )
        state.mark_progress_unlocked(now)

    timeline = state.sorted_timeline()
    days = state.days_since_start(now)

    consistency = consistency_score(timeline)
    challenges = challenge_score(len(state.challenges), days, state.created_at is not None)
    quality = quality_score(timeline, config.quality_window)
    improvement = improvement_score(timeline, config.improvement_window)

    total = (
        consistency * config.consistency_weight
        + challenges * config.challenge_completion_weight
        + quality * config.photo_quality_weight
        + improvement * config.improvement_weight
    )

    result = ScoreResult(
        score=round_half_up(total),
        is_locked=False,
        breakdown=ScoreBreakdown(
            consistency=round_half_up(consistency),
            challenges=round_half_up(challenges),
            quality=round_half_up(quality),
            improvement=round_half_up(improvement),
        ),
        trend=score_trend(timeline, config.trend_window, config.trend_threshold),
    )
    logger.debug("Progress score %d (breakdown %s)", result.score, result.breakdown)
    return result


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with .5 always going up."""
    return int(np.floor(value + 0.5))


def consistency_score(timeline: Sequence[TimelineEntry]) -> float:
    """Score capture regularity from the average gap in days between entries."""
    if len(timeline) < 2:
        return NEUTRAL_SCORE

    stamps = sorted(entry.timestamp for entry in timeline)
    gaps = [(later - earlier).total_seconds() for earlier, later in zip(stamps, stamps[1:])]
    avg_gap = float(np.mean(gaps)) / SECONDS_PER_DAY

    if avg_gap < 1:
        return 70.0  # Capturing more than daily
    if avg_gap <= 3:
        return 100.0
    if avg_gap <= 7:
        return 80.0
    if avg_gap <= 14:
        return 60.0
    return 40.0


def challenge_score(completed: int, days_since_start: int, has_start: bool = True) -> float:
    """Score challenge completions per day since start."""
    if not has_start or days_since_start == 0:
        return NEUTRAL_SCORE

    rate = completed / days_since_start
    if rate >= 0.7:
        return 100.0
    if rate >= 0.5:
        return 85.0
    if rate >= 0.3:
        return 70.0
    if rate >= 0.1:
        return 55.0
    return 40.0


def quality_score(timeline: Sequence[TimelineEntry], window_size: int = 10) -> float:
    """Recency-weighted capture confidence on a 0-100 scale."""
    values = [entry.confidence * 100 for entry in timeline]
    average = weighted_moving_average(values, window_size)
    return NEUTRAL_SCORE if average is None else average


def _mean_metric(entries: Sequence[TimelineEntry], metric_id: str) -> Optional[float]:
    values = [e.metrics[metric_id].value for e in entries if metric_id in e.metrics]
    if not values:
        return None
    return float(np.mean(values))


def improvement_score(timeline: Sequence[TimelineEntry], window: int = 3) -> float:
    """
    Compare mean metric values of the most recent entries with the window
    before them.

    Each metric's change is halved and clamped to +/-50, then the changes
    are averaged over metrics present in both windows and added to 50.
    """
    if len(timeline) < window * 2:
        return NEUTRAL_SCORE

    recent = timeline[-window:]
    older = timeline[-2 * window:-window]

    metric_ids: List[str] = []
    for entry in recent:
        for metric_id in entry.metrics:
            if metric_id not in metric_ids:
                metric_ids.append(metric_id)

    deltas = []
    for metric_id in metric_ids:
        recent_avg = _mean_metric(recent, metric_id)
        older_avg = _mean_metric(older, metric_id)
        if recent_avg is None or older_avg is None:
            continue
        change = (recent_avg - older_avg) / 2
        deltas.append(float(np.clip(change, -MAX_IMPROVEMENT_DELTA, MAX_IMPROVEMENT_DELTA)))

    if not deltas:
        return NEUTRAL_SCORE
    return NEUTRAL_SCORE + float(np.mean(deltas))


def score_trend(
    timeline: Sequence[TimelineEntry],
    window: int = 5,
    threshold: float = 0.05
) -> Trend:
    """Compare mean confidence of the latest window against the one before."""
    if len(timeline) < window:
        return Trend.BUILDING

    recent = timeline[-window:]
    older = timeline[-2 * window:-window]
    if not older:
        return Trend.BUILDING

    diff = np.mean([e.confidence for e in recent]) - np.mean([e.confidence for e in older])
    if diff > threshold:
        return Trend.IMPROVING
    if diff < -threshold:
        return Trend.DECLINING
    return Trend.STABLE


def progress_level(score: float) -> ProgressLevel:
    level = ProgressLevel.STARTER
    for candidate, minimum in PROGRESS_LEVEL_MIN_SCORES.items():
        if score >= minimum:
            level = candidate
    return level


def score_message(score: Optional[float], trend: Optional[Trend] = None) -> Dict[str, str]:
    """Headline and subtitle shown alongside the score."""
    if score is None:
        return {
            'title': 'Building your baseline',
            'subtitle': 'Progress score unlocks after consistent tracking',
        }
    if score >= 80:
        subtitle = (
            'Your metrics show positive adaptation'
            if trend == Trend.IMPROVING
            else 'Maintain your current approach'
        )
        return {'title': 'Excellent consistency', 'subtitle': subtitle}
    if score >= 60:
        return {'title': 'Good progress', 'subtitle': 'Consistency is building reliable data'}
    if score >= 40:
        return {'title': 'Room to improve', 'subtitle': 'More frequent tracking increases accuracy'}
    return {'title': 'Getting started', 'subtitle': 'Regular engagement unlocks insights'}


def unlock_status_message(status: UnlockStatus) -> str:
    if status.is_unlocked:
        return 'Progress score unlocked!'

    missing = []
    if status.remaining.days:
        missing.append(f"{status.remaining.days} more days")
    if status.remaining.photos:
        missing.append(f"{status.remaining.photos} more photos")
    if status.remaining.challenges:
        missing.append(f"{status.remaining.challenges} more challenges")
    return f"Need {', '.join(missing)} to unlock"


def detect_suspicious_behavior(
    timeline: Sequence[TimelineEntry],
    now: Optional[datetime] = None
) -> TimelineFlags:
    """
    Flag timeline patterns that suggest gaming the score.

    Flags ``excessive_uploads`` for more than five captures in the trailing
    24 hours and ``suspicious_quality`` when the last five confidences are
    all above 0.9 and nearly identical.
    """
    now = now or datetime.now()
    flags = []

    day_ago = now - timedelta(days=1)
    recent_uploads = [e for e in timeline if e.timestamp > day_ago]
    if len(recent_uploads) > EXCESSIVE_UPLOADS_PER_DAY:
        flags.append('excessive_uploads')

    if len(timeline) >= 5:
        ordered = sorted(timeline, key=lambda e: e.timestamp)
        qualities = np.array([e.confidence for e in ordered[-5:]])
        spread = float(np.max(qualities) - np.min(qualities))
        if spread < SUSPICIOUS_QUALITY_SPREAD and np.all(qualities > SUSPICIOUS_QUALITY_FLOOR):
            flags.append('suspicious_quality')

    if flags:
        logger.info("Suspicious timeline behaviour: %s", ', '.join(flags))

    return TimelineFlags(
        is_suspicious=bool(flags),
        flags=flags,
        confidence_penalty=len(flags) * SUSPICIOUS_FLAG_PENALTY,
    )
