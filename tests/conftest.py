import sys
import os
import threading
import time

# Add project root to sys.path so tests can import from all modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from hypothesis import settings

from detectors.landmarks import LEFT_EYE_INDICES, MOUTH_INDICES, RIGHT_EYE_INDICES
from models.data_models import Point

# CI profile: more examples for thorough testing
settings.register_profile("ci", max_examples=200)
# Dev profile: fewer examples for faster iteration
settings.register_profile("dev", max_examples=100)
# Default to dev profile
settings.load_profile("dev")

NUM_LANDMARKS = 478


def _place_eye(points, indices, x0, y0, width, ear):
    """按目标 EAR 摆放 6 个眼睛关键点：EAR = 2h / width"""
    h = ear * width / 2.0
    p1, p2, p3, p4, p5, p6 = indices
    points[p1] = Point(x0, y0, 0.0)
    points[p4] = Point(x0 + width, y0, 0.0)
    points[p2] = Point(x0 + width / 3.0, y0 - h, 0.0)
    points[p6] = Point(x0 + width / 3.0, y0 + h, 0.0)
    points[p3] = Point(x0 + 2 * width / 3.0, y0 - h, 0.0)
    points[p5] = Point(x0 + 2 * width / 3.0, y0 + h, 0.0)


def _place_mouth(points, mar, width=0.2):
    """按目标 MAR 摆放 8 个嘴巴关键点，三组竖直距离相同"""
    u1, u2, l1, r1, r2, l2, l3, lc = MOUTH_INDICES
    gap = mar * width
    top = 0.65
    points[lc] = Point(0.4, 0.7, 0.0)
    points[r1] = Point(0.4 + width, 0.7, 0.0)
    points[r2] = Point(0.55, 0.72, 0.0)
    points[u1] = Point(0.5, top, 0.0)
    points[l1] = Point(0.5, top + gap, 0.0)
    points[l3] = Point(0.5, top + gap, 0.0)
    points[u2] = Point(0.52, top, 0.0)
    points[l2] = Point(0.52, top + gap, 0.0)


def build_frame(ear=0.3, mar=0.3):
    """生成双眼 EAR 与 MAR 为指定值的整帧关键点"""
    points = [Point(0.5, 0.5, 0.0) for _ in range(NUM_LANDMARKS)]
    _place_eye(points, LEFT_EYE_INDICES, 0.30, 0.40, 0.10, ear)
    _place_eye(points, RIGHT_EYE_INDICES, 0.60, 0.40, 0.10, ear)
    _place_mouth(points, mar)
    return points


@pytest.fixture
def frame_factory():
    """工厂 fixture，按目标 EAR/MAR 生成关键点帧"""
    return build_frame


class SlowDetector:
    """detect() 耗时较长的检测器，记录 close() 之后是否仍在使用"""

    def __init__(self, delay=0.2, result=None):
        self.delay = delay
        self.result = result
        self.started = threading.Event()
        self.closed = False
        self.finished = False
        self.used_after_close = False

    def detect(self, image):
        self.started.set()
        time.sleep(self.delay)
        if self.closed:
            self.used_after_close = True
        self.finished = True
        return self.result

    def close(self):
        self.closed = True


@pytest.fixture
def slow_detector():
    return SlowDetector()
