"""
Simulated tracking journey.

Drives the full capture pipeline (quality analysis, validation, trust,
metric generation, rate limiting) and daily challenges over a span of days,
then reports the resulting progress score.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import cv2
import numpy as np

from .anti_cheat import (
    UploadLedger,
    calculate_trust_score,
    check_suspicious_activity,
    detect_angle_manipulation,
    detect_filters,
    validate_photo,
)
from .challenges import todays_challenge
from .config import ProgressConfig
from .metrics import generate_metrics, image_seed
from .models import AppState, CaptureMetadata, TimelineEntry
from .quality import analyze_quality
from .scoring import calculate_progress_score, check_unlock_status, unlock_status_message

logger = logging.getLogger(__name__)


def synthetic_frame(rng: np.random.Generator, size: int = 128) -> np.ndarray:
    """A noisy, moderately lit BGR frame with a bright ellipse for a face."""
    base = rng.integers(60, 110)
    frame = rng.normal(base, 18, (size, size, 3)).clip(0, 255).astype(np.uint8)
    center = (size // 2, size // 2)
    cv2.ellipse(frame, center, (size // 4, size // 3), 0, 0, 360, (170, 180, 200), -1)
    return frame


def run_simulation(
    days: int = 21,
    capture_every: int = 2,
    seed: int = 0,
    start: Optional[datetime] = None,
    config: Optional[ProgressConfig] = None
) -> Dict[str, Any]:
    """
    Simulate ``days`` days of usage starting at ``start``.

    A capture is taken every ``capture_every`` days at 09:00 and the
    challenge of the day is completed every day except each fifth.

    Returns:
        Summary dict with the final state, score result and capture stats
    """
    config = config or ProgressConfig()
    rng = np.random.default_rng(seed)
    start = start or datetime(2024, 1, 1, 8, 0)

    state = AppState(created_at=start)
    ledger = UploadLedger()
    history = []
    rejected = 0

    for day in range(days):
        now = start + timedelta(days=day, hours=1)

        if day % capture_every == 0:
            limit = ledger.check_rate_limit(now)
            if not limit.allowed:
                rejected += 1
                logger.warning("Capture skipped: %s", limit.reason)
            else:
                frame = synthetic_frame(rng)
                quality = analyze_quality(frame)
                metadata = CaptureMetadata(timestamp=now, software="Camera")

                validation = validate_photo(quality.as_capture_quality(face_size=0.4))
                trust = calculate_trust_score(
                    validation,
                    detect_filters(metadata),
                    detect_angle_manipulation(metadata, history),
                )

                ok, encoded = cv2.imencode(".png", frame)
                payload = encoded.tobytes() if ok else frame.tobytes()
                metrics = generate_metrics(image_seed(payload), rng=rng)

                state.add_timeline_entry(TimelineEntry(
                    photo_ref=f"capture-{day:03d}",
                    timestamp=now,
                    confidence=trust.score,
                    metrics=metrics,
                ))
                ledger.record_upload(now)
                history.append(metadata)

        if day % 5 != 4:
            state.complete_challenge(todays_challenge(now.date()).id, now)

    end = start + timedelta(days=days)
    status = check_unlock_status(state, end, config)
    result = calculate_progress_score(state, end, config)
    suspicious = check_suspicious_activity([m.timestamp for m in history])

    logger.info("Simulation finished: %s", unlock_status_message(status))

    return {
        'state': state,
        'unlock_status': status,
        'result': result,
        'suspicious': suspicious,
        'captures': len(state.timeline),
        'challenges': len(state.challenges),
        'rejected_uploads': rejected,
        'average_confidence': (
            float(np.mean([e.confidence for e in state.timeline])) if state.timeline else 0.0
        ),
    }


def print_summary(summary: Dict[str, Any]) -> None:
    result = summary['result']

    print("\n" + "=" * 50)
    print("PROGRESS SUMMARY")
    print("=" * 50)
    print(f"Captures:           {summary['captures']}")
    print(f"Challenges:         {summary['challenges']}")
    print(f"Rejected uploads:   {summary['rejected_uploads']}")
    print(f"Avg confidence:     {summary['average_confidence']:.2f}")
    print(f"Suspicious cadence: {summary['suspicious'].is_suspicious}")

    if result.is_locked:
        print(f"Score:              locked ({result.unlock_progress:.0%} to unlock)")
    else:
        print(f"Score:              {result.score}/100 ({result.trend.value})")
        breakdown = result.breakdown
        print(f"  Consistency:      {breakdown.consistency}")
        print(f"  Challenges:       {breakdown.challenges}")
        print(f"  Quality:          {breakdown.quality}")
        print(f"  Improvement:      {breakdown.improvement}")
    print("=" * 50)
