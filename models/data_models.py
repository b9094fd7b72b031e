"""核心数据模型定义"""

import math
from dataclasses import dataclass
from typing import NamedTuple, Optional, Sequence

# 眼睛状态
EYE_ACTIVE = "Active"
EYE_DROWSY = "Drowsy"

# 嘴巴状态
MOUTH_ACTIVE = "Active"
MOUTH_YAWNING = "Yawning"

# 眼睛、嘴巴共用状态
STATUS_CALIBRATING = "Calibrating"
STATUS_INACTIVE = "Inactive"

# 指标计算结果状态
METRIC_OK = "ok"
METRIC_MISSING = "missing"
METRIC_DEGENERATE = "degenerate"


class Point(NamedTuple):
    """归一化坐标的人脸关键点，z 可选"""
    x: float
    y: float
    z: Optional[float] = None


# 按 FaceMesh 编号排列的关键点序列，下标即解剖位置
LandmarkFrame = Sequence[Point]


@dataclass(frozen=True)
class MetricResult:
    """
    EAR/MAR 计算结果。

    status 为 "ok" 时 value 为有效数值；
    "missing" 表示关键点缺失或非数值，"degenerate" 表示参考距离为零。
    非 ok 时 value 固定为 NaN。
    """
    value: float
    status: str = METRIC_OK

    @property
    def is_valid(self) -> bool:
        return self.status == METRIC_OK and math.isfinite(self.value)

    @classmethod
    def missing(cls) -> "MetricResult":
        return cls(math.nan, METRIC_MISSING)

    @classmethod
    def degenerate(cls) -> "MetricResult":
        return cls(math.nan, METRIC_DEGENERATE)


@dataclass
class CalibrationState:
    """单个监测会话的基线校准状态"""
    ear_baseline: Optional[float] = None
    mar_baseline: Optional[float] = None
    sample_count: int = 0


@dataclass(frozen=True)
class ThresholdSet:
    """当前生效的判定阈值"""
    ear_threshold: float
    mar_threshold: float
    is_calibrated: bool


@dataclass
class TemporalTracker:
    """持续状态计时器，条件不成立时清空"""
    condition_start_ms: Optional[float] = None


@dataclass(frozen=True)
class FrameMetrics:
    """单帧诊断信息"""
    ear: float
    mar: float
    is_eyes_closed: bool
    is_yawn: bool
    ear_threshold: float
    mar_threshold: float
    calibrated: bool
    calibration_samples: int


@dataclass(frozen=True)
class FrameClassification:
    """单帧分类输出"""
    eye_status: str
    mouth_status: str
    alert_required: bool
    metrics: Optional[FrameMetrics] = None

    def as_tuple(self):
        return self.eye_status, self.mouth_status, self.alert_required
