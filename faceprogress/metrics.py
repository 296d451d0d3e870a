"""
Facial metric generation
========================
Produces a bounded, per-seed reproducible snapshot of named facial metrics.

No image analysis happens here: the caller derives a seed in [0, 1) from the
capture (see ``image_seed``), and each metric interpolates within its
configured baseline range. The variance of each sample is drawn from a
random generator; pass a seeded ``numpy.random.Generator`` to make the draw
reproducible as well.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .confidence import classify_confidence
from .models import MetricSample, Trend

logger = logging.getLogger(__name__)

# Offset applied per metric index so metrics sharing a seed do not move in lockstep
METRIC_SEED_OFFSET = 0.1

# Offset seeds saturate here instead of wrapping back to the baseline minimum
MAX_METRIC_SEED = float(np.nextafter(1.0, 0.0))

# Number of bytes sampled when deriving a seed from image data
SEED_SAMPLE_COUNT = 100

# Absolute change below which a metric is considered unchanged
TREND_STABLE_DELTA = 1.0


@dataclass(frozen=True)
class MetricDefinition:
    """Static configuration for one named metric"""
    id: str
    name: str
    baseline_range: Tuple[float, float]
    variance_range: Tuple[float, float]
    value_range: Tuple[float, float]
    higher_is_better: bool = True

    def __post_init__(self):
        for label, (low, high) in (
            ('baseline_range', self.baseline_range),
            ('variance_range', self.variance_range),
            ('value_range', self.value_range),
        ):
            if low > high:
                raise ValueError(f"{self.id}: {label} min {low} exceeds max {high}")

        # A zero-width variance range makes confidence classification undefined
        if self.variance_range[0] == self.variance_range[1]:
            raise ValueError(f"{self.id}: variance_range must have non-zero width")


METRIC_DEFINITIONS: Dict[str, MetricDefinition] = {d.id: d for d in (
    MetricDefinition(
        id='facialSymmetry',
        name='Facial Symmetry',
        baseline_range=(65.0, 92.0),
        variance_range=(3.0, 8.0),
        value_range=(0.0, 100.0),
    ),
    MetricDefinition(
        id='proportionalHarmony',
        name='Proportional Harmony',
        baseline_range=(-8.0, 8.0),
        variance_range=(1.0, 4.0),
        value_range=(-15.0, 15.0),
        higher_is_better=False,
    ),
    MetricDefinition(
        id='canthalTilt',
        name='Canthal Tilt',
        baseline_range=(-3.0, 8.0),
        variance_range=(0.5, 2.0),
        value_range=(-10.0, 15.0),
    ),
    MetricDefinition(
        id='skinTexture',
        name='Skin Texture',
        baseline_range=(55.0, 88.0),
        variance_range=(5.0, 12.0),
        value_range=(0.0, 100.0),
    ),
    MetricDefinition(
        id='skinClarity',
        name='Skin Clarity',
        baseline_range=(50.0, 90.0),
        variance_range=(4.0, 10.0),
        value_range=(0.0, 100.0),
    ),
    MetricDefinition(
        id='jawDefinition',
        name='Jaw Definition',
        baseline_range=(45.0, 85.0),
        variance_range=(3.0, 8.0),
        value_range=(0.0, 100.0),
    ),
    MetricDefinition(
        id='cheekboneProminence',
        name='Cheekbone Prominence',
        baseline_range=(40.0, 82.0),
        variance_range=(4.0, 9.0),
        value_range=(0.0, 100.0),
    ),
)}


def get_definition(metric_id: str) -> Optional[MetricDefinition]:
    return METRIC_DEFINITIONS.get(metric_id)


def image_seed(data: bytes) -> float:
    """
    Derive a seed in [0, 1) from raw image bytes.

    Roughly ``SEED_SAMPLE_COUNT`` evenly spaced bytes are folded into a
    31-bit hash, so the same image always yields the same seed.
    """
    if not data:
        return 0.0

    step = max(1, len(data) // SEED_SAMPLE_COUNT)
    seed = 0
    for byte in data[::step]:
        seed = (seed * 31 + byte) & 0x7FFFFFFF
    return seed / float(1 << 31)


def _generate_sample(
    definition: MetricDefinition,
    metric_seed: float,
    rng: np.random.Generator
) -> MetricSample:
    value_min, value_max = definition.value_range
    baseline_min, baseline_max = definition.baseline_range
    variance_min, variance_max = definition.variance_range

    base_value = baseline_min + metric_seed * (baseline_max - baseline_min)
    base_value = float(np.clip(base_value, value_min, value_max))

    variance = variance_min + rng.random() * (variance_max - variance_min)
    low = float(np.clip(base_value - variance, value_min, value_max))
    high = float(np.clip(base_value + variance, value_min, value_max))

    return MetricSample(
        id=definition.id,
        value=base_value,
        range=(low, high),
        confidence_level=classify_confidence(variance, definition.variance_range),
        variance=float(variance),
    )


def generate_metrics(
    seed: float,
    definitions: Optional[Sequence[MetricDefinition]] = None,
    rng: Optional[np.random.Generator] = None
) -> Dict[str, MetricSample]:
    """
    Generate one sample per metric definition.

    Metric ``i`` interpolates its baseline range at
    ``seed + i * METRIC_SEED_OFFSET``, capped just below 1.0, so a high
    seed pins later metrics at their baseline maximum.

    Args:
        seed: Capture seed in [0, 1)
        definitions: Metric definitions (defaults to every entry of
            ``METRIC_DEFINITIONS``)
        rng: Generator for the variance draw; unseeded when omitted

    Returns:
        Dict of metric id to MetricSample, in definition order
    """
    if not 0.0 <= seed < 1.0:
        raise ValueError(f"seed must be in [0, 1), got {seed}")

    if definitions is None:
        definitions = list(METRIC_DEFINITIONS.values())
    rng = rng or np.random.default_rng()

    samples = {}
    for index, definition in enumerate(definitions):
        metric_seed = min(seed + index * METRIC_SEED_OFFSET, MAX_METRIC_SEED)
        samples[definition.id] = _generate_sample(definition, metric_seed, rng)

    logger.debug("Generated %d metrics for seed %.6f", len(samples), seed)
    return samples


def calculate_baseline(
    captures: Iterable[Mapping[str, MetricSample]]
) -> Dict[str, MetricSample]:
    """
    Average several captures into a baseline snapshot.

    Each metric's value, range bounds and variance are averaged over the
    captures that contain it; the confidence label is re-derived from the
    mean variance when the metric has a known definition.
    """
    grouped: Dict[str, List[MetricSample]] = {}
    for capture in captures:
        for metric_id, sample in capture.items():
            grouped.setdefault(metric_id, []).append(sample)

    baseline = {}
    for metric_id, samples in grouped.items():
        values = np.array([s.value for s in samples])
        lows = np.array([s.range[0] for s in samples])
        highs = np.array([s.range[1] for s in samples])
        variance = float(np.mean([s.variance for s in samples]))

        definition = get_definition(metric_id)
        if definition is not None:
            level = classify_confidence(variance, definition.variance_range)
        else:
            level = samples[-1].confidence_level

        baseline[metric_id] = MetricSample(
            id=metric_id,
            value=float(np.mean(values)),
            range=(float(np.mean(lows)), float(np.mean(highs))),
            confidence_level=level,
            variance=variance,
        )

    return baseline


def metric_trend(change: float, definition: MetricDefinition) -> Trend:
    """Direction of a metric change relative to baseline."""
    if abs(change) < TREND_STABLE_DELTA:
        return Trend.STABLE
    improved = change > 0 if definition.higher_is_better else change < 0
    return Trend.IMPROVING if improved else Trend.DECLINING
