"""持续状态判断单元测试"""

import logging

import pytest

from evaluators.fatigue_evaluator import FatigueEvaluator, SustainedConditionDetector
from models.data_models import MetricResult, TemporalTracker, ThresholdSet

DURATION = 3000
THRESHOLDS = ThresholdSet(ear_threshold=0.3, mar_threshold=0.7, is_calibrated=True)
OPEN_EYES = MetricResult(0.4)
CLOSED_EYES = MetricResult(0.2)
MOUTH_CLOSED = MetricResult(0.3)
MOUTH_OPEN = MetricResult(0.9)


@pytest.fixture
def detector():
    return SustainedConditionDetector(DURATION)


@pytest.fixture
def evaluator():
    return FatigueEvaluator(DURATION)


class TestSustainedConditionDetector:
    """测试单信号计时器"""

    def test_initially_not_tracking(self, detector):
        assert detector.is_tracking is False

    def test_start_time_recorded_once(self, detector):
        detector.update(True, 100.0)
        detector.update(True, 200.0)
        assert detector.tracker.condition_start_ms == 100.0

    def test_sustained_after_duration(self, detector):
        detector.update(True, 0.0)
        assert detector.update(True, DURATION + 1) is True

    def test_not_sustained_at_exact_duration(self, detector):
        detector.update(True, 0.0)
        assert detector.update(True, float(DURATION)) is False

    def test_single_false_frame_resets(self, detector):
        detector.update(True, 0.0)
        detector.update(True, 1000.0)
        assert detector.update(False, 1500.0) is False
        assert detector.is_tracking is False
        detector.update(True, 1600.0)
        assert detector.update(True, DURATION + 1) is False
        assert detector.update(True, 1600.0 + DURATION + 1) is True

    def test_drops_back_immediately(self, detector):
        detector.update(True, 0.0)
        assert detector.update(True, 5000.0) is True
        assert detector.update(False, 5001.0) is False

    def test_reset(self, detector):
        detector.update(True, 0.0)
        detector.reset()
        assert detector.tracker == TemporalTracker()

    def test_shared_tracker(self):
        tracker = TemporalTracker()
        detector = SustainedConditionDetector(DURATION, tracker)
        detector.update(True, 42.0)
        assert tracker.condition_start_ms == 42.0


class TestFatigueEvaluator:
    """测试 FatigueEvaluator.evaluate()"""

    def test_all_active(self, evaluator):
        result = evaluator.evaluate(OPEN_EYES, MOUTH_CLOSED, THRESHOLDS, 0.0)
        assert result.as_tuple() == ("Active", "Active", False)

    def test_eyes_closed_becomes_drowsy(self, evaluator):
        for t in range(0, DURATION + 1, 100):
            result = evaluator.evaluate(CLOSED_EYES, MOUTH_CLOSED, THRESHOLDS, float(t))
            assert result.eye_status == "Active"
        result = evaluator.evaluate(CLOSED_EYES, MOUTH_CLOSED, THRESHOLDS, DURATION + 50.0)
        assert result.as_tuple() == ("Drowsy", "Active", True)

    def test_mouth_open_becomes_yawning(self, evaluator):
        evaluator.evaluate(OPEN_EYES, MOUTH_OPEN, THRESHOLDS, 0.0)
        result = evaluator.evaluate(OPEN_EYES, MOUTH_OPEN, THRESHOLDS, DURATION + 1.0)
        assert result.as_tuple() == ("Active", "Yawning", True)

    def test_both_sustained(self, evaluator):
        evaluator.evaluate(CLOSED_EYES, MOUTH_OPEN, THRESHOLDS, 0.0)
        result = evaluator.evaluate(CLOSED_EYES, MOUTH_OPEN, THRESHOLDS, DURATION + 1.0)
        assert result.as_tuple() == ("Drowsy", "Yawning", True)

    def test_signals_are_independent(self, evaluator):
        evaluator.evaluate(CLOSED_EYES, MOUTH_OPEN, THRESHOLDS, 0.0)
        evaluator.evaluate(CLOSED_EYES, MOUTH_CLOSED, THRESHOLDS, 1000.0)
        result = evaluator.evaluate(CLOSED_EYES, MOUTH_OPEN, THRESHOLDS, DURATION + 1.0)
        assert result.as_tuple() == ("Drowsy", "Active", True)

    def test_threshold_boundaries_are_strict(self, evaluator):
        at_threshold = ThresholdSet(ear_threshold=0.4, mar_threshold=0.9, is_calibrated=False)
        result = evaluator.evaluate(OPEN_EYES, MOUTH_OPEN, at_threshold, 0.0)
        assert result.metrics.is_eyes_closed is False
        assert result.metrics.is_yawn is False

    def test_invalid_metric_is_inactive(self, evaluator):
        result = evaluator.evaluate(MetricResult.missing(), MOUTH_CLOSED, THRESHOLDS, 0.0)
        assert result.as_tuple() == ("Inactive", "Active", False)

    def test_invalid_metric_clears_tracker(self, evaluator):
        evaluator.evaluate(CLOSED_EYES, MOUTH_OPEN, THRESHOLDS, 0.0)
        evaluator.evaluate(MetricResult.degenerate(), MetricResult.missing(), THRESHOLDS, 1000.0)
        assert evaluator.eye_detector.is_tracking is False
        assert evaluator.mouth_detector.is_tracking is False

    def test_metrics_snapshot(self, evaluator):
        result = evaluator.evaluate(CLOSED_EYES, MOUTH_CLOSED, THRESHOLDS, 0.0, calibration_samples=9)
        assert result.metrics.ear == pytest.approx(0.2)
        assert result.metrics.mar == pytest.approx(0.3)
        assert result.metrics.is_eyes_closed is True
        assert result.metrics.ear_threshold == 0.3
        assert result.metrics.calibrated is True
        assert result.metrics.calibration_samples == 9

    def test_transition_logged(self, evaluator, caplog):
        with caplog.at_level(logging.INFO, logger="evaluators.fatigue_evaluator"):
            evaluator.evaluate(CLOSED_EYES, MOUTH_CLOSED, THRESHOLDS, 0.0)
            evaluator.evaluate(CLOSED_EYES, MOUTH_CLOSED, THRESHOLDS, DURATION + 1.0)
            evaluator.evaluate(OPEN_EYES, MOUTH_CLOSED, THRESHOLDS, DURATION + 2.0)
        assert "Drowsy" in caplog.text
        assert "闭眼状态解除" in caplog.text

    def test_reset(self, evaluator):
        evaluator.evaluate(CLOSED_EYES, MOUTH_OPEN, THRESHOLDS, 0.0)
        evaluator.reset()
        assert evaluator.eye_detector.is_tracking is False
        assert evaluator.mouth_detector.is_tracking is False
