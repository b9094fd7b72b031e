"""关键点索引表与二维几何工具"""

import math
import numbers
from typing import Optional, Tuple

from models.data_models import LandmarkFrame

# 关键点索引常量（MediaPipe FaceMesh 编号）
# 眼睛顺序: 外眼角, 上眼睑1, 上眼睑2, 内眼角, 下眼睑2, 下眼睑1
LEFT_EYE_INDICES = [33, 160, 158, 133, 153, 144]
RIGHT_EYE_INDICES = [263, 387, 385, 362, 380, 373]

MOUTH_INDICES = [13, 14, 78, 308, 82, 312, 87, 317]

# 嘴巴 8 个索引按位置对应的角色。
# 命名沿用既有约定，并不严格对应解剖位置（例如 78 实际是内唇角），
# 但 MAR 数值依赖这一映射，修改会改变阈值行为。
MOUTH_ROLES = (
    "upper_1",
    "upper_2",
    "lower_1",
    "right_corner_1",
    "right_corner_2",  # 未参与计算
    "lower_2",
    "lower_3",
    "left_corner",
)

Coord = Tuple[float, float]


def _is_number(v) -> bool:
    return (
        isinstance(v, numbers.Real)
        and not isinstance(v, bool)
        and math.isfinite(v)
    )


def get_point(frame: LandmarkFrame, idx: int) -> Optional[Coord]:
    """
    取出指定下标关键点的 (x, y) 坐标。

    支持带 x/y 属性的对象（Point、MediaPipe landmark）和长度不小于 2 的序列。

    Returns:
        (x, y)；下标越界、坐标缺失或非数值时返回 None
    """
    if frame is None or idx < 0:
        return None
    try:
        lm = frame[idx]
    except (IndexError, KeyError, TypeError):
        return None
    if lm is None:
        return None

    if hasattr(lm, "x") and hasattr(lm, "y"):
        x, y = lm.x, lm.y
    else:
        try:
            x, y = lm[0], lm[1]
        except (IndexError, KeyError, TypeError):
            return None

    if not (_is_number(x) and _is_number(y)):
        return None
    return float(x), float(y)


def dist_2d(a: Coord, b: Coord) -> float:
    """二维欧氏距离（忽略 z）"""
    return math.dist(a, b)
