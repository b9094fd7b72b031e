"""监测参数配置"""

import json
import logging
import numbers
from dataclasses import asdict, dataclass, fields
from typing import Optional

logger = logging.getLogger(__name__)

# 未校准时的静态阈值
EAR_THRESHOLD = 0.41  # 越低对闭眼越敏感
MAR_THRESHOLD = 0.80  # 越高越不易误报哈欠

# 校准后阈值 = 基线 * 系数
EAR_CALIBRATION_FACTOR = 0.75
MAR_CALIBRATION_FACTOR = 1.40

MIN_CALIBRATION_SAMPLES = 5
CALIBRATION_WINDOW_MS = 2000

# 闭眼/张嘴需持续超过该时长才判定为 Drowsy/Yawning。
# 原有说明写的是 1 秒，实际判定逻辑使用 3 秒；此处保留 3 秒，待产品确认。
SUSTAINED_DURATION_MS = 3000


@dataclass
class MonitorConfig:
    """可调参数，默认值与模块常量一致"""
    ear_threshold: float = EAR_THRESHOLD
    mar_threshold: float = MAR_THRESHOLD
    ear_calibration_factor: float = EAR_CALIBRATION_FACTOR
    mar_calibration_factor: float = MAR_CALIBRATION_FACTOR
    min_calibration_samples: int = MIN_CALIBRATION_SAMPLES
    calibration_window_ms: float = CALIBRATION_WINDOW_MS
    sustained_duration_ms: float = SUSTAINED_DURATION_MS

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """校验参数类型与取值，非法时抛出 ValueError"""
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise ValueError(f"{f.name} 必须为数值: {value!r}")
        if not isinstance(self.min_calibration_samples, numbers.Integral):
            raise ValueError(
                f"min_calibration_samples 必须为整数: {self.min_calibration_samples!r}"
            )
        for name in ("ear_threshold", "mar_threshold",
                     "ear_calibration_factor", "mar_calibration_factor"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} 必须为正数: {getattr(self, name)}")
        if self.min_calibration_samples < 1:
            raise ValueError(
                f"min_calibration_samples 至少为 1: {self.min_calibration_samples}"
            )
        for name in ("calibration_window_ms", "sustained_duration_ms"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} 不能为负数: {getattr(self, name)}")

    def to_dict(self) -> dict:
        return asdict(self)

    def updated(self, data: dict) -> "MonitorConfig":
        """返回合并 data 后的新配置，缺失或为 null 的字段保持原值"""
        values = self.to_dict()
        for f in fields(self):
            if f.name in data and data[f.name] is not None:
                values[f.name] = data[f.name]
        return MonitorConfig(**values)


def load_config(config_path: Optional[str]) -> MonitorConfig:
    """从 JSON 配置文件加载参数，缺失字段使用默认值。"""
    config = MonitorConfig()

    if config_path is None:
        return config

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.warning("配置文件不存在 %s，使用默认参数", config_path)
        return config
    except json.JSONDecodeError:
        logger.warning("配置文件格式错误 %s，使用默认参数", config_path)
        return config

    if not isinstance(data, dict):
        logger.warning("配置文件内容不是对象 %s，使用默认参数", config_path)
        return config

    return config.updated(data)
