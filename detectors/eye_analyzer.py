"""眼睛状态分析模块，负责计算 EAR 值"""

from typing import Sequence

from detectors.landmarks import LEFT_EYE_INDICES, RIGHT_EYE_INDICES, dist_2d, get_point
from models.data_models import LandmarkFrame, MetricResult


def eye_openness_ratio(frame: LandmarkFrame, eye_indices: Sequence[int]) -> MetricResult:
    """
    计算单只眼睛的 EAR 值。

    公式: EAR = (|p2-p6| + |p3-p5|) / (2 * |p1-p4|)

    Args:
        frame: 整帧关键点
        eye_indices: 6 个眼睛轮廓关键点下标，顺序为
                     外眼角, 上眼睑1, 上眼睑2, 内眼角, 下眼睑2, 下眼睑1

    Returns:
        MetricResult；关键点缺失时为 missing，|p1-p4| 为零时为 degenerate
    """
    if len(eye_indices) < 6:
        return MetricResult.missing()

    points = [get_point(frame, i) for i in eye_indices[:6]]
    if any(p is None for p in points):
        return MetricResult.missing()

    p1, p2, p3, p4, p5, p6 = points

    vertical_1 = dist_2d(p2, p6)
    vertical_2 = dist_2d(p3, p5)
    horizontal = dist_2d(p1, p4)

    if horizontal == 0.0:
        return MetricResult.degenerate()

    return MetricResult((vertical_1 + vertical_2) / (2.0 * horizontal))


def average_eye_openness(
    frame: LandmarkFrame,
    left_indices: Sequence[int] = LEFT_EYE_INDICES,
    right_indices: Sequence[int] = RIGHT_EYE_INDICES,
) -> MetricResult:
    """双眼 EAR 平均值，任一只眼无效时返回该眼的失败结果"""
    left = eye_openness_ratio(frame, left_indices)
    if not left.is_valid:
        return left
    right = eye_openness_ratio(frame, right_indices)
    if not right.is_valid:
        return right
    return MetricResult((left.value + right.value) / 2.0)
