"""
Anti-cheat checks and upload rate limiting
==========================================
All checks here are advisory. They never block a capture from being stored;
their results drive user messaging and the trust multiplier applied to a
capture.

Components:
- UploadLedger: in-memory upload timestamps with hourly/daily caps
- Cadence checks over upload history (rapid bursts, same-hour uploads)
- Photo validation, editing-software detection and angle consistency,
  combined into a single trust score
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from .config import QualityThresholds, RateLimitConfig
from .models import (
    AngleResult,
    CaptureFlag,
    CaptureMetadata,
    CaptureQuality,
    ConfidenceLevel,
    FilterResult,
    RateLimitResult,
    SuspiciousActivityResult,
    TrustScore,
    ValidationIssue,
    ValidationResult,
)

logger = logging.getLogger(__name__)

HOURLY_LIMIT_REASON = "Hourly limit reached"
DAILY_LIMIT_REASON = "Daily limit reached"

# Cadence thresholds
MIN_HISTORY_FOR_PATTERNS = 3
RAPID_UPLOAD_SECONDS = 30
MAX_RAPID_PAIRS = 3
SAME_HOUR_MIN_UPLOADS = 5
RAPID_UPLOAD_TRUST = 0.5
SAME_HOUR_TRUST = 0.7

# Captures within this window before the current one count as a burst
RAPID_CAPTURE_WINDOW = timedelta(seconds=60)
MAX_RAPID_CAPTURES = 3
RAPID_CAPTURE_PENALTY = 0.15

ERROR_CONFIDENCE_PENALTY = 0.3
WARNING_CONFIDENCE_PENALTY = 0.1
MIN_TRUST = 0.1
MAX_TRUST = 1.0

EDITING_SOFTWARE = (
    'photoshop', 'lightroom', 'snapseed', 'vsco',
    'facetune', 'beautycam', 'meitu', 'snow',
)


class UploadLedger:
    """
    Upload timestamps for the current process, used only for rate limiting.

    Entries older than the retention window are pruned before every
    evaluation. Callers check ``check_rate_limit`` first and call
    ``record_upload`` only once an upload has been accepted.
    """

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.config = config or RateLimitConfig()
        self._clock = clock
        self._uploads: List[datetime] = []

    @property
    def uploads(self) -> List[datetime]:
        return list(self._uploads)

    def __len__(self) -> int:
        return len(self._uploads)

    def prune(self, now: Optional[datetime] = None) -> None:
        """Drop uploads older than the retention window."""
        now = now or self._clock()
        cutoff = now - timedelta(hours=self.config.retention_hours)
        self._uploads = [t for t in self._uploads if t >= cutoff]

    def _uploads_since(self, since: datetime) -> List[datetime]:
        return [t for t in self._uploads if t > since]

    @staticmethod
    def _start_of_day(now: datetime) -> datetime:
        return now.replace(hour=0, minute=0, second=0, microsecond=0)

    def check_rate_limit(self, now: Optional[datetime] = None) -> RateLimitResult:
        """
        Check whether another upload is allowed.

        Returns:
            RateLimitResult; rejections carry a reason and the number of
            minutes until the limiting window frees up
        """
        now = now or self._clock()
        self.prune(now)

        last_hour = self._uploads_since(now - timedelta(hours=1))
        if len(last_hour) >= self.config.max_uploads_per_hour:
            elapsed = now - min(last_hour)
            wait_minutes = 60 - int(elapsed.total_seconds() // 60)
            logger.info("Upload rejected: %d uploads in the last hour", len(last_hour))
            return RateLimitResult(
                allowed=False,
                reason=HOURLY_LIMIT_REASON,
                wait_minutes=wait_minutes,
            )

        day_start = self._start_of_day(now)
        today = [t for t in self._uploads if t >= day_start]
        if len(today) >= self.config.max_uploads_per_day:
            until_midnight = day_start + timedelta(days=1) - now
            logger.info("Upload rejected: %d uploads today", len(today))
            return RateLimitResult(
                allowed=False,
                reason=DAILY_LIMIT_REASON,
                wait_minutes=int(until_midnight.total_seconds() // 60),
            )

        return RateLimitResult(allowed=True)

    def record_upload(self, now: Optional[datetime] = None) -> None:
        now = now or self._clock()
        self._uploads.append(now)
        self.prune(now)
        logger.debug("Upload recorded at %s (%d in ledger)", now.isoformat(), len(self._uploads))

    def remaining_hourly_uploads(self, now: Optional[datetime] = None) -> int:
        now = now or self._clock()
        used = len(self._uploads_since(now - timedelta(hours=1)))
        return max(0, self.config.max_uploads_per_hour - used)

    def remaining_daily_uploads(self, now: Optional[datetime] = None) -> int:
        now = now or self._clock()
        day_start = self._start_of_day(now)
        used = len([t for t in self._uploads if t >= day_start])
        return max(0, self.config.max_uploads_per_day - used)

    def reset(self) -> None:
        self._uploads.clear()


def check_rate_limit(ledger: UploadLedger, now: Optional[datetime] = None) -> RateLimitResult:
    return ledger.check_rate_limit(now)


def record_upload(ledger: UploadLedger, now: Optional[datetime] = None) -> None:
    ledger.record_upload(now)


def check_suspicious_activity(upload_history: Sequence[datetime]) -> SuspiciousActivityResult:
    """
    Look for upload cadence that suggests gaming.

    Rapid bursts (more than three adjacent uploads under 30 seconds apart)
    weigh heavier than a history where every upload falls in the same hour
    of the day.
    """
    if len(upload_history) < MIN_HISTORY_FOR_PATTERNS:
        return SuspiciousActivityResult(is_suspicious=False)

    ordered = sorted(upload_history, reverse=True)
    rapid_pairs = sum(
        1 for newer, older in zip(ordered, ordered[1:])
        if (newer - older).total_seconds() < RAPID_UPLOAD_SECONDS
    )

    if rapid_pairs > MAX_RAPID_PAIRS:
        logger.info("Suspicious activity: %d rapid upload pairs", rapid_pairs)
        return SuspiciousActivityResult(
            is_suspicious=True,
            reason="Unusually rapid uploads detected",
            trust_score=RAPID_UPLOAD_TRUST,
        )

    hours = {t.hour for t in upload_history}
    if len(hours) == 1 and len(upload_history) > SAME_HOUR_MIN_UPLOADS:
        logger.info("Suspicious activity: all uploads at hour %d", next(iter(hours)))
        return SuspiciousActivityResult(
            is_suspicious=True,
            reason="Suspicious upload pattern detected",
            trust_score=SAME_HOUR_TRUST,
        )

    return SuspiciousActivityResult(is_suspicious=False, trust_score=1.0)


def validate_photo(
    quality: CaptureQuality,
    thresholds: Optional[QualityThresholds] = None
) -> ValidationResult:
    """Check capture quality against the capture thresholds."""
    thresholds = thresholds or QualityThresholds()
    issues = []

    if quality.brightness < thresholds.min_brightness:
        issues.append(ValidationIssue('brightness_low', 'Lighting is too dark', 'error'))
    elif quality.brightness > thresholds.max_brightness:
        issues.append(ValidationIssue('brightness_high', 'Lighting is too bright', 'warning'))

    if quality.sharpness < thresholds.min_sharpness:
        issues.append(ValidationIssue('blur', 'Image is blurry', 'error'))

    if quality.contrast < thresholds.min_contrast:
        issues.append(ValidationIssue('contrast_low', 'Low contrast detected', 'warning'))

    if quality.face_size is not None:
        if quality.face_size < thresholds.min_face_size:
            issues.append(ValidationIssue('face_small', 'Move closer to camera', 'warning'))
        elif quality.face_size > thresholds.max_face_size:
            issues.append(ValidationIssue('face_large', 'Move back from camera', 'warning'))

    errors = sum(1 for issue in issues if issue.severity == 'error')
    warnings = sum(1 for issue in issues if issue.severity == 'warning')
    confidence = 1.0 - errors * ERROR_CONFIDENCE_PENALTY - warnings * WARNING_CONFIDENCE_PENALTY

    return ValidationResult(
        is_valid=errors == 0,
        has_warnings=warnings > 0,
        issues=issues,
        confidence=max(MIN_TRUST, confidence),
    )


def is_editing_software(software: str) -> bool:
    lowered = software.lower()
    return any(name in lowered for name in EDITING_SOFTWARE)


def detect_filters(metadata: CaptureMetadata) -> FilterResult:
    """
    Flag captures whose metadata names photo-editing software.

    Pixel-level smoothing and colour-grading detection is not attempted.
    """
    flags = []
    if metadata.software and is_editing_software(metadata.software):
        flags.append(CaptureFlag(
            type='editing_software',
            confidence=0.9,
            message='Image was processed in editing software',
        ))

    if flags:
        mean_confidence = sum(f.confidence for f in flags) / len(flags)
        overall = 1 - mean_confidence * 0.5
        logger.info("Editing software detected: %s", metadata.software)
    else:
        overall = 1.0

    return FilterResult(
        is_probably_filtered=bool(flags),
        flags=flags,
        overall_confidence=overall,
    )


def detect_angle_manipulation(
    current: CaptureMetadata,
    history: Optional[Sequence[CaptureMetadata]]
) -> AngleResult:
    """Flag bursts of captures just before the current one (cherry-picking)."""
    if not history or len(history) < MIN_HISTORY_FOR_PATTERNS:
        return AngleResult(is_consistent=True)

    flags = []
    recent = [
        m for m in history
        if timedelta(0) <= current.timestamp - m.timestamp < RAPID_CAPTURE_WINDOW
    ]
    if len(recent) > MAX_RAPID_CAPTURES:
        flags.append(CaptureFlag(
            type='rapid_captures',
            confidence=0.6,
            message='Multiple rapid captures detected',
        ))

    return AngleResult(
        is_consistent=not flags,
        flags=flags,
        confidence_penalty=len(flags) * RAPID_CAPTURE_PENALTY,
    )


def _trust_level(score: float) -> ConfidenceLevel:
    if score >= 0.8:
        return ConfidenceLevel.HIGH
    if score >= 0.5:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def _trust_message(
    score: float,
    validation: ValidationResult,
    filters: FilterResult,
    angle: AngleResult
) -> str:
    if score >= 0.8:
        return 'High-quality capture suitable for analysis'
    if not validation.is_valid:
        return 'Photo quality issues may affect accuracy'
    if filters.is_probably_filtered:
        return 'Possible image processing detected'
    if not angle.is_consistent:
        return 'Capture conditions vary from baseline'
    return 'Moderate confidence in capture quality'


def calculate_trust_score(
    validation: ValidationResult,
    filters: FilterResult,
    angle: AngleResult
) -> TrustScore:
    """
    Combine validation, filter and angle checks into one trust score.

    Returns:
        TrustScore with ``score`` in [0.1, 1.0], a level and the message for
        the highest-priority reason
    """
    score = 1.0 * validation.confidence

    if filters.is_probably_filtered:
        score *= filters.overall_confidence

    if not angle.is_consistent:
        score -= angle.confidence_penalty

    score = max(MIN_TRUST, min(MAX_TRUST, score))
    return TrustScore(
        score=score,
        level=_trust_level(score),
        message=_trust_message(score, validation, filters, angle),
    )


def calculate_behavior_trust(
    total_uploads: int,
    days_since_start: int,
    challenges_completed: int
) -> float:
    """Trust earned through steady, long-running usage (0.5 is neutral)."""
    if days_since_start == 0:
        return 0.5

    score = 0.5

    upload_rate = total_uploads / days_since_start
    if 0.3 < upload_rate < 3:
        score += 0.2

    if challenges_completed / days_since_start > 0.5:
        score += 0.2

    if days_since_start > 14:
        score += 0.1
    if days_since_start > 30:
        score += 0.1

    return max(0.0, min(1.0, score))
