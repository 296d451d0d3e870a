"""
Configuration dataclasses for progress scoring, rate limiting and capture
quality thresholds.
"""

from dataclasses import dataclass


@dataclass
class ProgressConfig:
    """Unlock requirements and scoring weights for the progress score"""
    # Unlock gates (all inclusive, all required)
    min_days: int = 14
    min_photos: int = 7
    min_challenges: int = 5

    # Unlock progress weights (days, photos, challenges)
    unlock_days_weight: float = 0.5
    unlock_photos_weight: float = 0.3
    unlock_challenges_weight: float = 0.2

    # Sub-score weights, must sum to 1.0
    consistency_weight: float = 0.35
    challenge_completion_weight: float = 0.25
    photo_quality_weight: float = 0.20
    improvement_weight: float = 0.20

    # Window used for the photo quality weighted moving average
    quality_window: int = 10

    # Entries compared on each side for improvement and trend
    improvement_window: int = 3
    trend_window: int = 5
    trend_threshold: float = 0.05

    def __post_init__(self):
        if min(self.min_days, self.min_photos, self.min_challenges) <= 0:
            raise ValueError("Unlock requirements must be positive")

        total = (
            self.consistency_weight
            + self.challenge_completion_weight
            + self.photo_quality_weight
            + self.improvement_weight
        )
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total:.4f}")


@dataclass
class RateLimitConfig:
    """Upload caps enforced by the upload ledger"""
    max_uploads_per_hour: int = 10
    max_uploads_per_day: int = 20

    # Entries older than this are pruned before each evaluation
    retention_hours: int = 24

    def __post_init__(self):
        if self.max_uploads_per_hour <= 0 or self.max_uploads_per_day <= 0:
            raise ValueError("Upload caps must be positive")


@dataclass
class QualityThresholds:
    """Capture validation limits (0-100 scales, face size as frame fraction)"""
    min_brightness: float = 30.0
    max_brightness: float = 90.0
    min_sharpness: float = 25.0
    min_contrast: float = 30.0
    min_face_size: float = 0.2
    max_face_size: float = 0.7

    # Mean luminance band (0-255) considered well exposed
    optimal_brightness_min: float = 40.0
    optimal_brightness_max: float = 120.0

    # Overall quality score required for a capture to be acceptable
    min_quality_score: float = 50.0
