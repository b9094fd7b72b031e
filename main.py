"""疲劳监测系统入口文件"""

import argparse
import logging
import sys

import cv2

from detectors.face_detector import FaceDetector
from models.data_models import EYE_DROWSY, MOUTH_YAWNING
from monitoring.config import MonitorConfig, load_config
from monitoring.frame_orchestrator import FrameOrchestrator
from monitoring.inference_scheduler import InferenceScheduler

logger = logging.getLogger(__name__)

_WINDOW_NAME = "Drowsiness Monitor"
_GREEN = (0, 255, 0)
_RED = (0, 0, 255)
_YELLOW = (0, 255, 255)


class DetectionSystem:
    """协调摄像头、关键点检测器和帧调度器的主循环。"""

    def __init__(self, config: MonitorConfig, camera_index: int = 0):
        self.config = config
        self.camera_index = camera_index
        self._cap = None
        self._latest = None

        self.face_detector = FaceDetector()
        self.orchestrator = FrameOrchestrator(config=config, on_result=self._on_result)
        self.scheduler = InferenceScheduler(self.face_detector, self.orchestrator)

    def _on_result(self, eye_status, mouth_status, alert_required):
        self._latest = (eye_status, mouth_status, alert_required)

    def run(self):
        """启动主检测循环。"""
        self._cap = cv2.VideoCapture(self.camera_index)

        try:
            if not self._cap.isOpened():
                logger.error("无法打开摄像头 %d", self.camera_index)
                sys.exit(1)

            self.scheduler.start()
            self._main_loop()
        finally:
            self.stop()

    def _main_loop(self):
        """视频流处理主循环。"""
        while True:
            ret, frame = self._cap.read()
            if not ret:
                continue

            # 推理结果在下一次节拍回收
            self.scheduler.tick(frame.copy())

            cv2.imshow(_WINDOW_NAME, self._draw_overlay(frame))

            # 按 q 退出
            if cv2.waitKey(1) & 0xFF == ord("q"):
                break

    def _draw_overlay(self, frame):
        """在帧上绘制当前状态和报警提示。"""
        h = frame.shape[0]
        if self._latest is not None:
            eye_status, mouth_status, alert_required = self._latest
            eye_color = _RED if eye_status == EYE_DROWSY else _GREEN
            mouth_color = _RED if mouth_status == MOUTH_YAWNING else _GREEN
            cv2.putText(frame, f"Eyes: {eye_status}", (10, 30),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.7, eye_color, 2)
            cv2.putText(frame, f"Mouth: {mouth_status}", (10, 60),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.7, mouth_color, 2)
            if alert_required:
                cv2.putText(frame, "DROWSINESS ALERT!", (10, h - 20),
                            cv2.FONT_HERSHEY_SIMPLEX, 1.0, _RED, 3)
        else:
            cv2.putText(frame, "Waiting for detector...", (10, 30),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.7, _YELLOW, 2)
        return frame

    def stop(self):
        """停止会话、释放摄像头和检测器。"""
        self.scheduler.close()
        if self._cap is not None and self._cap.isOpened():
            self._cap.release()
        cv2.destroyAllWindows()
        self.face_detector.close()


def build_arg_parser():
    parser = argparse.ArgumentParser(description="疲劳监测系统")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON 参数配置文件路径",
    )
    parser.add_argument(
        "--camera",
        type=int,
        default=0,
        help="摄像头编号",
    )
    parser.add_argument(
        "--sustained-ms",
        type=float,
        default=None,
        help="闭眼/张嘴需持续的毫秒数，覆盖配置文件",
    )
    return parser


def resolve_config(args) -> MonitorConfig:
    """配置文件 + 命令行覆盖"""
    config = load_config(args.config)
    if args.sustained_ms is not None:
        config = config.updated({"sustained_duration_ms": args.sustained_ms})
    return config


def main(argv=None):
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = build_arg_parser().parse_args(argv)
    system = DetectionSystem(resolve_config(args), camera_index=args.camera)
    system.run()


if __name__ == "__main__":
    main()
