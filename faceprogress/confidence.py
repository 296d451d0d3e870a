"""
Confidence and uncertainty helpers
==================================
Small numeric utilities shared by the metric generator and the scoring
engine: variance-to-confidence classification, moving averages and a
significance test for metric changes.
"""

from typing import Dict, Mapping, Optional, Sequence, Tuple

import numpy as np

from .models import ConfidenceLevel

# Normalized variance cut-offs for the confidence labels
HIGH_CONFIDENCE_CUTOFF = 0.33
MEDIUM_CONFIDENCE_CUTOFF = 0.66

# A change must exceed this multiple of the variance to count
SIGNIFICANCE_FACTOR = 1.5

CONFIDENCE_FACTOR_WEIGHTS = {
    'photo_quality': 0.3,
    'consistency': 0.25,
    'sample_size': 0.25,
    'timespan': 0.2,
}

CONFIDENCE_DESCRIPTIONS = {
    ConfidenceLevel.HIGH: {'label': 'High', 'description': 'Reliable measurement'},
    ConfidenceLevel.MEDIUM: {'label': 'Medium', 'description': 'Some variance expected'},
    ConfidenceLevel.LOW: {'label': 'Low', 'description': 'High uncertainty'},
}


def classify_confidence(
    variance_value: float,
    variance_range: Tuple[float, float]
) -> ConfidenceLevel:
    """
    Map a variance onto a coarse confidence label.

    The variance is normalized against ``variance_range``; the lower third is
    high confidence, the middle third medium and the rest low.

    Raises:
        ZeroDivisionError: if the range has zero width.
    """
    low, high = variance_range
    normalized = (variance_value - low) / (high - low)

    if normalized <= HIGH_CONFIDENCE_CUTOFF:
        return ConfidenceLevel.HIGH
    if normalized <= MEDIUM_CONFIDENCE_CUTOFF:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def moving_average(values: Sequence[float], window_size: int = 5) -> Optional[float]:
    """Mean of the last ``window_size`` values, or None for an empty sequence."""
    if len(values) == 0:
        return None
    window = np.asarray(list(values)[-window_size:], dtype=float)
    return float(np.mean(window))


def weighted_moving_average(values: Sequence[float], window_size: int = 5) -> Optional[float]:
    """
    Linearly weighted mean of the last ``window_size`` values.

    The oldest value in the window has weight 1 and the most recent has
    weight ``len(window)``. Returns None for an empty sequence.
    """
    if len(values) == 0:
        return None
    window = np.asarray(list(values)[-window_size:], dtype=float)
    weights = np.arange(1, len(window) + 1, dtype=float)
    return float(np.average(window, weights=weights))


def is_significant_change(current: float, previous: float, variance: float) -> bool:
    return abs(current - previous) > variance * SIGNIFICANCE_FACTOR


def overall_confidence(factors: Mapping[str, float]) -> float:
    """Weighted mean of the known confidence factors; 0.5 if none are known."""
    weighted_sum = 0.0
    total_weight = 0.0

    for name, value in factors.items():
        weight = CONFIDENCE_FACTOR_WEIGHTS.get(name)
        if weight is None:
            continue
        weighted_sum += value * weight
        total_weight += weight

    if total_weight == 0:
        return 0.5
    return weighted_sum / total_weight


def describe_confidence(level) -> Dict[str, str]:
    """Display label and description; unknown levels read as medium."""
    if not isinstance(level, ConfidenceLevel):
        try:
            level = ConfidenceLevel(level)
        except ValueError:
            level = ConfidenceLevel.MEDIUM
    return dict(CONFIDENCE_DESCRIPTIONS[level])


def add_variance(
    base_value: float,
    variance_amount: float,
    value_range: Tuple[float, float],
    rng: Optional[np.random.Generator] = None
) -> float:
    """Jitter ``base_value`` by up to +/- ``variance_amount`` and clamp into range."""
    rng = rng or np.random.default_rng()
    jitter = (rng.random() - 0.5) * variance_amount * 2
    return float(np.clip(base_value + jitter, value_range[0], value_range[1]))
