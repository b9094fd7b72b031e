"""逐帧调度模块：管理会话生命周期，先校准后检测，每帧输出一次分类结果"""

import logging
import time
from typing import Callable, Optional

from calibration.baseline_calibrator import BaselineCalibrator, ThresholdProvider
from detectors.eye_analyzer import average_eye_openness
from detectors.mouth_analyzer import mouth_openness_ratio
from evaluators.fatigue_evaluator import FatigueEvaluator
from models.data_models import (
    STATUS_CALIBRATING,
    STATUS_INACTIVE,
    CalibrationState,
    FrameClassification,
    FrameMetrics,
    LandmarkFrame,
)
from monitoring.config import MonitorConfig

logger = logging.getLogger(__name__)

ResultCallback = Callable[[str, str, bool], None]

PHASE_STOPPED = "stopped"
PHASE_CALIBRATING = "calibrating"
PHASE_DETECTING = "detecting"


class SessionNotActiveError(RuntimeError):
    """会话未启动或已停止时仍提交帧"""


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class FrameOrchestrator:
    """驱动 校准 -> 检测 两阶段流程，持有单个会话的全部可变状态。"""

    def __init__(
        self,
        config: Optional[MonitorConfig] = None,
        on_result: Optional[ResultCallback] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Args:
            config: 监测参数，默认使用 MonitorConfig()
            on_result: 每处理一帧调用一次 (eye_status, mouth_status, alert_required)
            clock: 返回毫秒时间戳的函数，默认 time.monotonic
        """
        self.config = config if config is not None else MonitorConfig()
        self.on_result = on_result
        self._clock = clock or monotonic_ms

        self.calibration_state = CalibrationState()
        self.calibrator = BaselineCalibrator(self.calibration_state)
        self.threshold_provider = ThresholdProvider(self.calibration_state, self.config)
        self.evaluator = FatigueEvaluator(self.config.sustained_duration_ms)

        self._active = False
        self._session_start_ms: Optional[float] = None
        self._calibration_logged = False

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def phase(self) -> str:
        if not self._active:
            return PHASE_STOPPED
        if self._in_calibration_window(self._clock()):
            return PHASE_CALIBRATING
        return PHASE_DETECTING

    def start_session(self, now_ms: Optional[float] = None):
        """开始新会话：清空校准和计时器，记录起始时间。"""
        now = self._clock() if now_ms is None else now_ms
        self.calibrator.reset()
        self.threshold_provider.config = self.config
        self.evaluator = FatigueEvaluator(self.config.sustained_duration_ms)
        self._session_start_ms = now
        self._calibration_logged = False
        self._active = True
        logger.info("监测会话开始，校准时长 %.0f ms", self.config.calibration_window_ms)

    def stop_session(self):
        """结束会话并丢弃全部会话状态。"""
        if not self._active:
            return
        self._active = False
        self._session_start_ms = None
        self.calibrator.reset()
        self.evaluator.reset()
        logger.info("监测会话结束")

    def _in_calibration_window(self, now_ms: float) -> bool:
        return now_ms - self._session_start_ms < self.config.calibration_window_ms

    def process_landmarks(
        self, landmarks: Optional[LandmarkFrame], now_ms: Optional[float] = None
    ) -> FrameClassification:
        """
        处理一帧关键点并输出分类。

        Args:
            landmarks: 单张人脸的关键点；None 或空序列表示未检测到人脸
            now_ms: 帧时间戳（毫秒），默认取 clock()

        Returns:
            FrameClassification

        Raises:
            SessionNotActiveError: 会话未启动
        """
        if not self._active:
            raise SessionNotActiveError("会话未启动，无法处理帧")

        now = self._clock() if now_ms is None else now_ms

        if landmarks is None or len(landmarks) == 0:
            # 只输出 Inactive，不清空持续计时器
            result = FrameClassification(STATUS_INACTIVE, STATUS_INACTIVE, False)
        elif self._in_calibration_window(now):
            self.calibrator.accumulate(landmarks)
            result = FrameClassification(STATUS_CALIBRATING, STATUS_CALIBRATING, False)
        else:
            if not self._calibration_logged:
                self._log_calibration_outcome()
            result = self.evaluator.evaluate(
                average_eye_openness(landmarks),
                mouth_openness_ratio(landmarks),
                self.threshold_provider.thresholds(),
                now,
                calibration_samples=self.calibration_state.sample_count,
            )

        if self.on_result is not None:
            self.on_result(*result.as_tuple())
        return result

    def analyze_frame(self, landmarks: LandmarkFrame) -> FrameMetrics:
        """计算单帧诊断指标，不改变任何状态"""
        ear = average_eye_openness(landmarks)
        mar = mouth_openness_ratio(landmarks)
        thresholds = self.threshold_provider.thresholds()
        return FrameMetrics(
            ear=ear.value,
            mar=mar.value,
            is_eyes_closed=ear.is_valid and ear.value < thresholds.ear_threshold,
            is_yawn=mar.is_valid and mar.value > thresholds.mar_threshold,
            ear_threshold=thresholds.ear_threshold,
            mar_threshold=thresholds.mar_threshold,
            calibrated=thresholds.is_calibrated,
            calibration_samples=self.calibration_state.sample_count,
        )

    def _log_calibration_outcome(self):
        self._calibration_logged = True
        thresholds = self.threshold_provider.thresholds()
        if thresholds.is_calibrated:
            logger.info(
                "校准完成: 样本 %d, EAR 阈值 %.3f, MAR 阈值 %.3f",
                self.calibration_state.sample_count,
                thresholds.ear_threshold,
                thresholds.mar_threshold,
            )
        else:
            logger.warning(
                "校准样本不足 (%d < %d)，使用静态阈值",
                self.calibration_state.sample_count,
                self.config.min_calibration_samples,
            )
