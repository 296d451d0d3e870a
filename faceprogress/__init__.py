"""
faceprogress: progress scoring and anti-cheat checks for periodic face
captures.
"""

from .anti_cheat import (
    UploadLedger,
    calculate_trust_score,
    check_rate_limit,
    check_suspicious_activity,
    detect_angle_manipulation,
    detect_filters,
    record_upload,
    validate_photo,
)
from .confidence import (
    classify_confidence,
    is_significant_change,
    moving_average,
    weighted_moving_average,
)
from .config import ProgressConfig, QualityThresholds, RateLimitConfig
from .metrics import METRIC_DEFINITIONS, MetricDefinition, generate_metrics, image_seed
from .models import (
    AppState,
    CaptureMetadata,
    CaptureQuality,
    ChallengeCompletion,
    ConfidenceLevel,
    MetricSample,
    ScoreResult,
    TimelineEntry,
    TimelineFlags,
    Trend,
    UnlockStatus,
)
from .scoring import calculate_progress_score, check_unlock_status, detect_suspicious_behavior

__version__ = "0.1.0"
