"""嘴巴状态分析模块，负责计算 MAR 值"""

from typing import Sequence

from detectors.landmarks import MOUTH_INDICES, MOUTH_ROLES, dist_2d, get_point
from models.data_models import LandmarkFrame, MetricResult


def mouth_openness_ratio(
    frame: LandmarkFrame, mouth_indices: Sequence[int] = MOUTH_INDICES
) -> MetricResult:
    """
    计算 MAR 值。

    角色映射见 MOUTH_ROLES。公式:
    MAR = ((|upper_1-lower_1| + |upper_2-lower_2| + |upper_1-lower_3|) / 3)
          / |left_corner-right_corner_1|

    Args:
        frame: 整帧关键点
        mouth_indices: 8 个嘴巴关键点下标

    Returns:
        MetricResult；关键点缺失时为 missing，嘴宽为零时为 degenerate
    """
    if len(mouth_indices) < len(MOUTH_ROLES):
        return MetricResult.missing()

    pts = {}
    for role, idx in zip(MOUTH_ROLES, mouth_indices):
        p = get_point(frame, idx)
        if p is None:
            return MetricResult.missing()
        pts[role] = p

    mouth_width = dist_2d(pts["left_corner"], pts["right_corner_1"])
    if mouth_width == 0.0:
        return MetricResult.degenerate()

    v1 = dist_2d(pts["upper_1"], pts["lower_1"])
    v2 = dist_2d(pts["upper_2"], pts["lower_2"])
    v3 = dist_2d(pts["upper_1"], pts["lower_3"])

    return MetricResult(((v1 + v2 + v3) / 3.0) / mouth_width)
