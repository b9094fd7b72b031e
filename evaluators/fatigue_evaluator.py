"""持续状态判断模块：把逐帧的闭眼/张嘴信号转换为 Drowsy/Yawning 判定"""

import logging
from typing import Optional

from models.data_models import (
    EYE_ACTIVE,
    EYE_DROWSY,
    MOUTH_ACTIVE,
    MOUTH_YAWNING,
    STATUS_INACTIVE,
    FrameClassification,
    FrameMetrics,
    MetricResult,
    TemporalTracker,
    ThresholdSet,
)
from monitoring.config import SUSTAINED_DURATION_MS

logger = logging.getLogger(__name__)


class SustainedConditionDetector:
    """单一信号的持续状态计时器，任一帧条件不成立即清零"""

    def __init__(self, duration_ms: float = SUSTAINED_DURATION_MS,
                 tracker: Optional[TemporalTracker] = None):
        self.duration_ms = duration_ms
        self.tracker = tracker if tracker is not None else TemporalTracker()

    @property
    def is_tracking(self) -> bool:
        return self.tracker.condition_start_ms is not None

    def update(self, condition: bool, now_ms: float) -> bool:
        """
        用当前帧条件更新计时器。

        Args:
            condition: 本帧条件是否成立
            now_ms: 当前时间戳（毫秒）

        Returns:
            条件是否已持续超过 duration_ms
        """
        if not condition:
            self.tracker.condition_start_ms = None
            return False

        if self.tracker.condition_start_ms is None:
            self.tracker.condition_start_ms = now_ms

        return now_ms - self.tracker.condition_start_ms > self.duration_ms

    def reset(self):
        self.tracker.condition_start_ms = None


class FatigueEvaluator:
    """维护眼睛、嘴巴两个计时器，输出单帧分类和综合报警标志。"""

    def __init__(self, duration_ms: float = SUSTAINED_DURATION_MS):
        self.eye_detector = SustainedConditionDetector(duration_ms)
        self.mouth_detector = SustainedConditionDetector(duration_ms)
        self._prev_eye_status = EYE_ACTIVE
        self._prev_mouth_status = MOUTH_ACTIVE

    def evaluate(
        self,
        ear: MetricResult,
        mar: MetricResult,
        thresholds: ThresholdSet,
        now_ms: float,
        calibration_samples: int = 0,
    ) -> FrameClassification:
        """
        综合判断本帧状态。

        指标无效的信号输出 Inactive，并按条件不成立处理（计时器清零）。

        Args:
            ear: 双眼平均 EAR
            mar: MAR
            thresholds: 当前阈值
            now_ms: 当前时间戳（毫秒）
            calibration_samples: 已累积的校准样本数，仅用于诊断输出

        Returns:
            FrameClassification
        """
        eyes_closed = ear.is_valid and ear.value < thresholds.ear_threshold
        is_yawn = mar.is_valid and mar.value > thresholds.mar_threshold

        drowsy = self.eye_detector.update(eyes_closed, now_ms)
        yawning = self.mouth_detector.update(is_yawn, now_ms)

        if not ear.is_valid:
            eye_status = STATUS_INACTIVE
        else:
            eye_status = EYE_DROWSY if drowsy else EYE_ACTIVE

        if not mar.is_valid:
            mouth_status = STATUS_INACTIVE
        else:
            mouth_status = MOUTH_YAWNING if yawning else MOUTH_ACTIVE

        self._log_transitions(eye_status, mouth_status)

        metrics = FrameMetrics(
            ear=ear.value,
            mar=mar.value,
            is_eyes_closed=eyes_closed,
            is_yawn=is_yawn,
            ear_threshold=thresholds.ear_threshold,
            mar_threshold=thresholds.mar_threshold,
            calibrated=thresholds.is_calibrated,
            calibration_samples=calibration_samples,
        )
        return FrameClassification(
            eye_status=eye_status,
            mouth_status=mouth_status,
            alert_required=drowsy or yawning,
            metrics=metrics,
        )

    def _log_transitions(self, eye_status: str, mouth_status: str):
        if eye_status != self._prev_eye_status:
            if eye_status == EYE_DROWSY:
                logger.warning("持续闭眼，判定为 Drowsy")
            elif self._prev_eye_status == EYE_DROWSY:
                logger.info("闭眼状态解除")
        if mouth_status != self._prev_mouth_status:
            if mouth_status == MOUTH_YAWNING:
                logger.warning("持续张嘴，判定为 Yawning")
            elif self._prev_mouth_status == MOUTH_YAWNING:
                logger.info("哈欠状态解除")
        self._prev_eye_status = eye_status
        self._prev_mouth_status = mouth_status

    def reset(self):
        """重置两个计时器"""
        self.eye_detector.reset()
        self.mouth_detector.reset()
        self._prev_eye_status = EYE_ACTIVE
        self._prev_mouth_status = MOUTH_ACTIVE
