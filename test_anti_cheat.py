"""
Unit tests for rate limiting and anti-cheat checks
"""

from datetime import datetime, timedelta

import pytest
from faceprogress.anti_cheat import (
    DAILY_LIMIT_REASON,
    HOURLY_LIMIT_REASON,
    UploadLedger,
    calculate_behavior_trust,
    calculate_trust_score,
    check_rate_limit,
    check_suspicious_activity,
    detect_angle_manipulation,
    detect_filters,
    is_editing_software,
    record_upload,
    validate_photo,
)
from faceprogress.config import RateLimitConfig
from faceprogress.models import (
    AngleResult,
    CaptureMetadata,
    CaptureQuality,
    ConfidenceLevel,
    FilterResult,
    ValidationResult,
)

MORNING = datetime(2024, 5, 10, 9, 0)
MIDNIGHT = datetime(2024, 5, 10, 0, 0)

GOOD_QUALITY = CaptureQuality(brightness=60, sharpness=70, contrast=55, face_size=0.4)


class TestUploadLedger:
    """Test hourly and daily upload caps."""

    def test_empty_ledger_allows(self):
        ledger = UploadLedger()
        result = check_rate_limit(ledger, MORNING)
        assert result.allowed
        assert result.reason is None

    def test_hourly_limit(self):
        """Ten uploads in one hour reject the eleventh."""
        ledger = UploadLedger()
        for i in range(10):
            now = MORNING + timedelta(minutes=5 * i)
            assert check_rate_limit(ledger, now).allowed
            record_upload(ledger, now)

        result = check_rate_limit(ledger, MORNING + timedelta(minutes=50))
        assert not result.allowed
        assert "hourly" in result.reason.lower()
        assert result.reason == HOURLY_LIMIT_REASON
        # Oldest upload in the window is 50 minutes old
        assert result.wait_minutes == 10

    def test_hourly_window_slides(self):
        ledger = UploadLedger()
        for i in range(10):
            record_upload(ledger, MORNING + timedelta(minutes=i))
        assert ledger.check_rate_limit(MORNING + timedelta(minutes=61)).allowed

    def test_daily_limit(self):
        """Twenty uploads spaced over an hour apart reject the 21st on the daily cap."""
        ledger = UploadLedger()
        start = MIDNIGHT + timedelta(minutes=5)
        for i in range(20):
            now = start + timedelta(minutes=65 * i)
            assert ledger.check_rate_limit(now).allowed
            ledger.record_upload(now)

        check_at = start + timedelta(minutes=65 * 19 + 20)
        result = ledger.check_rate_limit(check_at)
        assert not result.allowed
        assert result.reason == DAILY_LIMIT_REASON
        midnight_next = MIDNIGHT + timedelta(days=1)
        assert result.wait_minutes == int((midnight_next - check_at).total_seconds() // 60)

    def test_daily_count_resets_at_midnight(self):
        ledger = UploadLedger()
        for i in range(20):
            ledger.record_upload(MIDNIGHT + timedelta(hours=2, minutes=65 * i))
        next_day = MIDNIGHT + timedelta(days=1, minutes=10)
        assert ledger.check_rate_limit(next_day).allowed

    def test_prune_drops_old_entries(self):
        ledger = UploadLedger()
        ledger.record_upload(MORNING - timedelta(hours=30))
        ledger.record_upload(MORNING - timedelta(hours=2))
        ledger.prune(MORNING)
        assert ledger.uploads == [MORNING - timedelta(hours=2)]

    def test_injected_clock(self):
        current = [MORNING]
        ledger = UploadLedger(RateLimitConfig(max_uploads_per_hour=2), clock=lambda: current[0])
        ledger.record_upload()
        ledger.record_upload()
        assert not ledger.check_rate_limit().allowed

        current[0] = MORNING + timedelta(hours=2)
        assert ledger.check_rate_limit().allowed

    def test_remaining_counts(self):
        ledger = UploadLedger()
        for i in range(3):
            ledger.record_upload(MORNING + timedelta(minutes=i))
        now = MORNING + timedelta(minutes=5)
        assert ledger.remaining_hourly_uploads(now) == 7
        assert ledger.remaining_daily_uploads(now) == 17

    def test_ledgers_are_isolated(self):
        first, second = UploadLedger(), UploadLedger()
        first.record_upload(MORNING)
        assert len(first) == 1
        assert len(second) == 0

    def test_reset(self):
        ledger = UploadLedger()
        ledger.record_upload(MORNING)
        ledger.reset()
        assert len(ledger) == 0

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            RateLimitConfig(max_uploads_per_hour=0)


class TestSuspiciousActivity:
    """Test upload cadence checks."""

    def test_short_history_not_suspicious(self):
        result = check_suspicious_activity([MORNING, MORNING])
        assert not result.is_suspicious
        assert result.trust_score == 1.0

    def test_rapid_uploads(self):
        history = [MORNING + timedelta(seconds=10 * i) for i in range(5)]
        result = check_suspicious_activity(history)
        assert result.is_suspicious
        assert result.trust_score == 0.5

    def test_three_rapid_pairs_allowed(self):
        history = [MORNING + timedelta(seconds=10 * i) for i in range(4)]
        history.append(MORNING - timedelta(days=1, hours=3))
        assert not check_suspicious_activity(history).is_suspicious

    def test_same_hour_every_day(self):
        history = [MORNING + timedelta(days=i, minutes=i) for i in range(6)]
        result = check_suspicious_activity(history)
        assert result.is_suspicious
        assert result.trust_score == 0.7

    def test_same_hour_needs_more_than_five(self):
        history = [MORNING + timedelta(days=i) for i in range(5)]
        assert not check_suspicious_activity(history).is_suspicious


class TestPhotoValidation:
    """Test capture quality validation."""

    def test_good_photo(self):
        result = validate_photo(GOOD_QUALITY)
        assert result.is_valid
        assert not result.has_warnings
        assert result.confidence == 1.0

    def test_dark_and_blurry(self):
        result = validate_photo(CaptureQuality(brightness=10, sharpness=10, contrast=55))
        assert not result.is_valid
        assert {i.type for i in result.issues} == {'brightness_low', 'blur'}
        assert result.confidence == pytest.approx(0.4)

    def test_warnings_only(self):
        result = validate_photo(CaptureQuality(brightness=95, sharpness=70, contrast=20, face_size=0.9))
        assert result.is_valid
        assert result.has_warnings
        assert result.confidence == pytest.approx(0.7)

    def test_every_issue_at_once(self):
        result = validate_photo(CaptureQuality(brightness=0, sharpness=0, contrast=0, face_size=0.05))
        assert len(result.issues) == 4
        # Two errors and two warnings
        assert result.confidence == pytest.approx(0.2)

    def test_face_size_optional(self):
        result = validate_photo(CaptureQuality(brightness=60, sharpness=70, contrast=55))
        assert not any(i.type.startswith('face') for i in result.issues)


class TestFilterAndAngle:
    """Test metadata and cadence heuristics."""

    @pytest.mark.parametrize("software", ["Adobe Photoshop 25.0", "Facetune2", "VSCO"])
    def test_editing_software_detected(self, software):
        assert is_editing_software(software)
        result = detect_filters(CaptureMetadata(MORNING, software))
        assert result.is_probably_filtered
        assert result.overall_confidence == pytest.approx(0.55)

    def test_camera_software_clean(self):
        result = detect_filters(CaptureMetadata(MORNING, "iOS Camera"))
        assert not result.is_probably_filtered
        assert result.overall_confidence == 1.0

    def test_missing_software_clean(self):
        assert not detect_filters(CaptureMetadata(MORNING)).is_probably_filtered

    def test_rapid_captures_flagged(self):
        history = [CaptureMetadata(MORNING - timedelta(seconds=10 * i)) for i in range(1, 5)]
        result = detect_angle_manipulation(CaptureMetadata(MORNING), history)
        assert not result.is_consistent
        assert result.confidence_penalty == pytest.approx(0.15)

    def test_short_history_consistent(self):
        history = [CaptureMetadata(MORNING - timedelta(seconds=1))]
        assert detect_angle_manipulation(CaptureMetadata(MORNING), history).is_consistent

    def test_spaced_captures_consistent(self):
        history = [CaptureMetadata(MORNING - timedelta(days=i)) for i in range(1, 6)]
        assert detect_angle_manipulation(CaptureMetadata(MORNING), history).is_consistent


class TestTrustScore:
    """Test trust score composition and messaging priority."""

    def _clean(self):
        return (
            validate_photo(GOOD_QUALITY),
            FilterResult(False, [], 1.0),
            AngleResult(True),
        )

    def test_clean_capture(self):
        trust = calculate_trust_score(*self._clean())
        assert trust.score == 1.0
        assert trust.level == ConfidenceLevel.HIGH
        assert trust.message == 'High-quality capture suitable for analysis'

    def test_validation_failure_message_first(self):
        validation = validate_photo(CaptureQuality(brightness=10, sharpness=10, contrast=55))
        filters = detect_filters(CaptureMetadata(MORNING, "Meitu"))
        angle = AngleResult(False, [], 0.15)
        trust = calculate_trust_score(validation, filters, angle)

        # 0.4 * 0.55 - 0.15 = 0.07 -> floor 0.1
        assert trust.score == pytest.approx(0.1)
        assert trust.level == ConfidenceLevel.LOW
        assert trust.message == 'Photo quality issues may affect accuracy'

    def test_filter_message(self):
        validation, _, angle = self._clean()
        trust = calculate_trust_score(validation, detect_filters(CaptureMetadata(MORNING, "Snapseed")), angle)
        assert trust.score == pytest.approx(0.55)
        assert trust.level == ConfidenceLevel.MEDIUM
        assert trust.message == 'Possible image processing detected'

    def test_angle_message(self):
        validation = ValidationResult(True, True, [], 0.8)
        trust = calculate_trust_score(validation, FilterResult(False, [], 1.0), AngleResult(False, [], 0.15))
        assert trust.score == pytest.approx(0.65)
        assert trust.message == 'Capture conditions vary from baseline'

    def test_moderate_message(self):
        validation = ValidationResult(True, True, [], 0.7)
        trust = calculate_trust_score(validation, FilterResult(False, [], 1.0), AngleResult(True))
        assert trust.message == 'Moderate confidence in capture quality'

    def test_score_bounds(self):
        validation = ValidationResult(False, False, [], 0.1)
        trust = calculate_trust_score(validation, FilterResult(True, [], 0.1), AngleResult(False, [], 0.9))
        assert 0.1 <= trust.score <= 1.0


class TestBehaviorTrust:
    """Test usage-based trust."""

    def test_first_day_neutral(self):
        assert calculate_behavior_trust(3, 0, 1) == 0.5

    def test_steady_long_term_user(self):
        assert calculate_behavior_trust(20, 40, 30) == pytest.approx(1.0)

    def test_spammy_new_user(self):
        assert calculate_behavior_trust(50, 5, 0) == pytest.approx(0.5)
