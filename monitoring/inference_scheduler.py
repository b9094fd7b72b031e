"""关键点推理调度：保证同一时刻最多一个推理请求在途"""

import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Optional

from models.data_models import FrameClassification
from monitoring.frame_orchestrator import FrameOrchestrator

logger = logging.getLogger(__name__)

STATE_STOPPED = "stopped"
STATE_IDLE = "idle"
STATE_IN_FLIGHT = "in_flight"


class InferenceScheduler:
    """
    由外部逐帧节拍驱动的推理调度器。

    每次 tick() 先回收上一次请求的结果交给 FrameOrchestrator，再提交新帧；
    上一次请求尚未完成时本次节拍直接跳过，不排队也不阻塞。
    所有会话状态只在调用 tick() 的线程上修改。
    """

    def __init__(self, detector, orchestrator: FrameOrchestrator,
                 executor: Optional[Executor] = None):
        """
        Args:
            detector: 提供 detect(image) -> Optional[LandmarkFrame] 的关键点检测器
            orchestrator: 帧调度器
            executor: 执行推理的 Executor，默认单线程 ThreadPoolExecutor
        """
        self.detector = detector
        self.orchestrator = orchestrator
        self._executor = executor
        self._owns_executor = executor is None
        self._pending: Optional[Future] = None
        # stop() 时已在执行、无法取消的请求，由 close() 等待其结束
        self._draining: Optional[Future] = None
        self._running = False
        self.deferred_ticks = 0

    @property
    def state(self) -> str:
        if not self._running:
            return STATE_STOPPED
        if self._pending is not None:
            return STATE_IN_FLIGHT
        return STATE_IDLE

    def start(self):
        """开始新会话"""
        if self._running:
            return
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="landmark-inference"
            )
        self.deferred_ticks = 0
        self.orchestrator.start_session()
        self._running = True

    def stop(self):
        """停止会话；返回后不再提交检测请求，也不再修改会话状态。"""
        if not self._running:
            return
        self._running = False
        if self._pending is not None:
            # 在途请求的结果直接丢弃
            if not self._pending.cancel():
                self._draining = self._pending
            self._pending = None
        self.orchestrator.stop_session()

    def close(self):
        """
        停止并释放自建的线程池。

        返回前等待正在执行的检测请求结束，调用方随后可以安全关闭检测器。
        """
        self.stop()
        self._wait_draining()
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _wait_draining(self):
        future, self._draining = self._draining, None
        if future is None:
            return
        try:
            future.result()
        except Exception:
            logger.debug("停止后结束的检测请求失败", exc_info=True)

    def tick(self, image) -> Optional[FrameClassification]:
        """
        处理一次调度节拍。

        Args:
            image: 当前视频帧；为 None 时只回收结果，不提交新请求

        Returns:
            本次节拍回收到的分类结果；无结果时返回 None
        """
        if not self._running:
            return None

        result = None
        if self._pending is not None:
            if not self._pending.done():
                self.deferred_ticks += 1
                return None
            future, self._pending = self._pending, None
            result = self._collect(future)

        if image is not None and self._running:
            self._pending = self._executor.submit(self.detector.detect, image)

        return result

    def _collect(self, future: Future) -> Optional[FrameClassification]:
        if future.cancelled():
            return None
        try:
            landmarks = future.result()
        except Exception:
            logger.exception("关键点检测失败，跳过该帧")
            return None
        return self.orchestrator.process_landmarks(landmarks)
