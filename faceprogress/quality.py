"""
Capture quality analysis using OpenCV.

Scores exposure, contrast and sharpness of a captured frame on 0-100 scales
so the anti-cheat validation and timeline confidence have real inputs.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import cv2
import numpy as np

from .config import QualityThresholds
from .models import CaptureQuality

logger = logging.getLogger(__name__)

# Sub-score weights for the overall quality score
BRIGHTNESS_WEIGHT = 0.3
CONTRAST_WEIGHT = 0.3
SHARPNESS_WEIGHT = 0.4


@dataclass(frozen=True)
class QualityScore:
    """Quality sub-scores for one frame (all 0-100)"""
    brightness: float
    contrast: float
    sharpness: float
    overall: float
    min_acceptable: float = 50.0

    @property
    def is_acceptable(self) -> bool:
        return self.overall >= self.min_acceptable

    def as_capture_quality(self, face_size: Optional[float] = None) -> CaptureQuality:
        return CaptureQuality(
            brightness=self.brightness,
            sharpness=self.sharpness,
            contrast=self.contrast,
            face_size=face_size,
        )


@dataclass(frozen=True)
class QualityFeedback:
    type: str  # "success" or "warning"
    message: str


def _to_gray(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def brightness_score(mean_luminance: float, thresholds: QualityThresholds) -> float:
    """Map mean luminance (0-255) to a score peaking inside the optimal band."""
    low = thresholds.optimal_brightness_min
    high = thresholds.optimal_brightness_max

    if mean_luminance < low:
        return mean_luminance / low * 50
    if mean_luminance > high:
        excess = mean_luminance - high
        return max(0.0, 100 - (excess / 135) * 50)
    return 70 + (mean_luminance - low) / (high - low) * 30


def contrast_score(std_luminance: float) -> float:
    """Map luminance standard deviation to a score; 20-80 is the usable band."""
    if std_luminance < 20:
        return std_luminance * 2
    if std_luminance > 80:
        return max(50.0, 100 - (std_luminance - 80))
    return 60 + (std_luminance - 20) / 60 * 40


def sharpness_score(mean_edge: float) -> float:
    return min(100.0, mean_edge * 2)


def analyze_quality(
    image: Optional[np.ndarray],
    thresholds: Optional[QualityThresholds] = None
) -> QualityScore:
    """
    Analyze a BGR, BGRA or grayscale uint8 frame.

    Args:
        image: Frame as a numpy array (as returned by ``cv2.imread``)
        thresholds: Brightness band and acceptance threshold

    Returns:
        QualityScore; an empty or missing frame scores zero everywhere
    """
    thresholds = thresholds or QualityThresholds()

    if image is None or image.size == 0:
        logger.warning("Empty frame passed to quality analysis")
        return QualityScore(0.0, 0.0, 0.0, 0.0, thresholds.min_quality_score)

    gray = _to_gray(image)
    luminance = gray.astype(np.float64)

    brightness = brightness_score(float(np.mean(luminance)), thresholds)
    contrast = contrast_score(float(np.std(luminance)))

    # 4-neighbour Laplacian; larger mean response means crisper edges
    laplacian = cv2.Laplacian(luminance, cv2.CV_64F)
    if min(gray.shape[:2]) > 2:
        laplacian = laplacian[1:-1, 1:-1]
    sharpness = sharpness_score(float(np.mean(np.abs(laplacian))))

    overall = (
        brightness * BRIGHTNESS_WEIGHT
        + contrast * CONTRAST_WEIGHT
        + sharpness * SHARPNESS_WEIGHT
    )

    score = QualityScore(
        brightness=float(brightness),
        contrast=float(contrast),
        sharpness=float(sharpness),
        overall=float(overall),
        min_acceptable=thresholds.min_quality_score,
    )
    logger.debug(
        "Quality: brightness=%.1f contrast=%.1f sharpness=%.1f overall=%.1f",
        score.brightness, score.contrast, score.sharpness, score.overall
    )
    return score


def quality_feedback(score: QualityScore) -> List[QualityFeedback]:
    """User-facing hints for a quality score."""
    feedback = []

    if score.brightness < 50:
        feedback.append(QualityFeedback('warning', 'Image is too dark. Try better lighting.'))
    elif score.brightness > 90:
        feedback.append(QualityFeedback('warning', 'Image is overexposed. Reduce lighting.'))

    if score.contrast < 40:
        feedback.append(QualityFeedback('warning', 'Low contrast. Ensure even lighting.'))

    if score.sharpness < 40:
        feedback.append(QualityFeedback('warning', 'Image is blurry. Hold camera steady.'))

    if score.is_acceptable and not feedback:
        feedback.append(QualityFeedback('success', 'Good photo quality!'))

    return feedback
