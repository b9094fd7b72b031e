"""基线校准模块，在会话初期累积 EAR/MAR 均值并据此给出个性化阈值"""

import logging
from typing import Optional

from detectors.eye_analyzer import average_eye_openness
from detectors.mouth_analyzer import mouth_openness_ratio
from models.data_models import CalibrationState, LandmarkFrame, ThresholdSet
from monitoring.config import MonitorConfig

logger = logging.getLogger(__name__)


class BaselineCalibrator:
    """以增量均值方式累积正常状态下的 EAR/MAR 基线"""

    def __init__(self, state: Optional[CalibrationState] = None):
        self.state = state if state is not None else CalibrationState()

    def accumulate(self, frame: LandmarkFrame) -> bool:
        """
        计算双眼平均 EAR 与 MAR 并计入基线。

        Args:
            frame: 整帧关键点

        Returns:
            是否计入；任一指标无效时丢弃该帧，状态不变
        """
        ear = average_eye_openness(frame)
        mar = mouth_openness_ratio(frame)
        if not (ear.is_valid and mar.is_valid):
            logger.debug("校准样本无效已丢弃: ear=%s, mar=%s", ear.status, mar.status)
            return False
        return self.add_sample(ear.value, mar.value)

    def add_sample(self, ear: float, mar: float) -> bool:
        """计入一组已计算好的 EAR/MAR"""
        state = self.state
        state.sample_count += 1
        n = state.sample_count

        if state.ear_baseline is None:
            state.ear_baseline = ear
        else:
            state.ear_baseline += (ear - state.ear_baseline) / n

        if state.mar_baseline is None:
            state.mar_baseline = mar
        else:
            state.mar_baseline += (mar - state.mar_baseline) / n

        return True

    def reset(self):
        """清空基线与样本数"""
        self.state.ear_baseline = None
        self.state.mar_baseline = None
        self.state.sample_count = 0


class ThresholdProvider:
    """根据校准状态给出当前生效的阈值，每次调用都读取最新基线"""

    def __init__(self, state: CalibrationState, config: Optional[MonitorConfig] = None):
        self.state = state
        self.config = config if config is not None else MonitorConfig()

    @property
    def is_calibrated(self) -> bool:
        return self.state.sample_count >= self.config.min_calibration_samples

    def current_eye_threshold(self) -> float:
        if self.is_calibrated and self.state.ear_baseline is not None:
            return self.state.ear_baseline * self.config.ear_calibration_factor
        return self.config.ear_threshold

    def current_mouth_threshold(self) -> float:
        if self.is_calibrated and self.state.mar_baseline is not None:
            return self.state.mar_baseline * self.config.mar_calibration_factor
        return self.config.mar_threshold

    def thresholds(self) -> ThresholdSet:
        return ThresholdSet(
            ear_threshold=self.current_eye_threshold(),
            mar_threshold=self.current_mouth_threshold(),
            is_calibrated=self.is_calibrated,
        )
