"""Flask Web 接口 - 疲劳监测系统"""

import datetime
import logging
import math
import threading

import cv2
from flask import Flask, jsonify, request

from detectors.face_detector import FaceDetector
from models.data_models import (
    EYE_DROWSY,
    MOUTH_YAWNING,
    STATUS_INACTIVE,
    FrameClassification,
)
from monitoring.config import MonitorConfig
from monitoring.frame_orchestrator import FrameOrchestrator
from monitoring.inference_scheduler import InferenceScheduler

logger = logging.getLogger(__name__)

app = Flask(__name__)


def _idle_data():
    return {
        "eye_status": STATUS_INACTIVE,
        "mouth_status": STATUS_INACTIVE,
        "alert_required": False,
        "monitoring": False,
        "metrics": None,
    }


class WebMonitorSystem:
    """Web 版监测系统，后台线程读取摄像头并按帧驱动推理调度器。"""

    MAX_LOG_ENTRIES = 200

    def __init__(self, config=None, detector_factory=FaceDetector,
                 capture_factory=cv2.VideoCapture, camera_index=0):
        self.config = config if config is not None else MonitorConfig()
        self._detector_factory = detector_factory
        self._capture_factory = capture_factory
        self.camera_index = camera_index

        self._cap = None
        self._detector = None
        self._scheduler = None
        self._thread = None
        self._running = False
        self._lock = threading.Lock()
        self._latest_data = _idle_data()
        self._logs = []
        self._log_lock = threading.Lock()
        self._prev = FrameClassification(STATUS_INACTIVE, STATUS_INACTIVE, False)

    @property
    def running(self):
        return self._running

    def start(self):
        """启动摄像头、检测器和处理线程。"""
        with self._lock:
            if self._running:
                return True
            cap = self._capture_factory(self.camera_index)
            if not cap.isOpened():
                cap.release()
                self._add_log("danger", "无法打开摄像头")
                return False

            self._cap = cap
            self._detector = self._detector_factory()
            orchestrator = FrameOrchestrator(config=self.config)
            self._scheduler = InferenceScheduler(self._detector, orchestrator)
            self._scheduler.start()
            self._latest_data = dict(_idle_data(), monitoring=True)
            self._running = True

        self._add_log("info", "监测启动，开始校准")
        self._thread = threading.Thread(target=self._process_loop, daemon=True)
        self._thread.start()
        return True

    def stop(self):
        """停止监测；返回后不会再有帧修改会话状态。"""
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._scheduler.close()

        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None

        with self._lock:
            if self._cap is not None and self._cap.isOpened():
                self._cap.release()
            self._cap = None
            if self._detector is not None:
                self._detector.close()
            self._detector = None
            self._scheduler = None
            self._latest_data = _idle_data()
            self._prev = FrameClassification(STATUS_INACTIVE, STATUS_INACTIVE, False)
        self._add_log("info", "监测已停止")

    def _process_loop(self):
        """后台处理循环。"""
        while self._running:
            cap = self._cap
            if cap is None or not cap.isOpened():
                break
            ret, frame = cap.read()
            if not ret:
                continue
            self.process_frame(frame)

    def process_frame(self, frame):
        """把一帧交给调度器，并记录回收到的结果"""
        with self._lock:
            if not self._running:
                return None
            result = self._scheduler.tick(frame)
            if result is None:
                return None
            self._latest_data = self._to_data(result)
            self._check_state_changes(result)
        return result

    @staticmethod
    def _to_data(result):
        metrics = None
        if result.metrics is not None:
            m = result.metrics
            metrics = {
                "ear": round(m.ear, 4) if math.isfinite(m.ear) else None,
                "mar": round(m.mar, 4) if math.isfinite(m.mar) else None,
                "ear_threshold": round(m.ear_threshold, 4),
                "mar_threshold": round(m.mar_threshold, 4),
                "calibrated": m.calibrated,
                "calibration_samples": m.calibration_samples,
            }
        return {
            "eye_status": result.eye_status,
            "mouth_status": result.mouth_status,
            "alert_required": result.alert_required,
            "monitoring": True,
            "metrics": metrics,
        }

    def _add_log(self, level, message):
        """添加一条系统日志。level: info / warning / danger"""
        entry = {
            "time": datetime.datetime.now().strftime("%H:%M:%S"),
            "level": level,
            "message": message,
        }
        getattr(logger, "error" if level == "danger" else level)(message)
        with self._log_lock:
            self._logs.append(entry)
            if len(self._logs) > self.MAX_LOG_ENTRIES:
                self._logs = self._logs[-self.MAX_LOG_ENTRIES:]

    def _check_state_changes(self, result):
        """检测状态变化并记录日志。调用方需持有 _lock。"""
        prev = self._prev

        face_now = result.eye_status != STATUS_INACTIVE
        face_before = prev.eye_status != STATUS_INACTIVE
        if face_now and not face_before:
            self._add_log("info", "检测到人脸")
        elif face_before and not face_now:
            self._add_log("warning", "人脸丢失")

        if result.eye_status == EYE_DROWSY and prev.eye_status != EYE_DROWSY:
            self._add_log("warning", "持续闭眼")
        if result.mouth_status == MOUTH_YAWNING and prev.mouth_status != MOUTH_YAWNING:
            self._add_log("warning", "持续打哈欠")

        if result.alert_required and not prev.alert_required:
            self._add_log("danger", "疲劳警告！")
        elif prev.alert_required and not result.alert_required:
            self._add_log("info", "疲劳状态解除")

        self._prev = result

    def get_logs(self, since=0):
        """获取日志，since 为起始索引。"""
        with self._log_lock:
            return self._logs[since:], len(self._logs)

    def get_data(self):
        with self._lock:
            return dict(self._latest_data)

    def update_config(self, data):
        """更新参数，下次启动会话时生效。非法取值抛出 ValueError。"""
        new_config = self.config.updated(data)
        with self._lock:
            self.config = new_config
        self._add_log("info", "参数已更新，下次启动生效")
        return new_config


# 全局监测系统实例
system = WebMonitorSystem()


# ---- Flask 路由 ----

@app.route("/api/start", methods=["POST"])
def api_start():
    ok = system.start()
    return jsonify({"success": ok, "message": "监测已启动" if ok else "无法打开摄像头"})


@app.route("/api/stop", methods=["POST"])
def api_stop():
    system.stop()
    return jsonify({"success": True, "message": "监测已停止"})


@app.route("/api/data")
def api_data():
    return jsonify(system.get_data())


@app.route("/api/config", methods=["GET"])
def api_get_config():
    return jsonify(system.config.to_dict())


@app.route("/api/config", methods=["POST"])
def api_config():
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        return jsonify({"success": False, "message": "请求体必须是 JSON 对象"}), 400
    try:
        config = system.update_config(data)
    except (TypeError, ValueError) as e:
        return jsonify({"success": False, "message": str(e)}), 400
    return jsonify({"success": True, "message": "配置已更新", "config": config.to_dict()})


@app.route("/api/logs")
def api_logs():
    since = request.args.get("since", 0, type=int)
    logs, total = system.get_logs(since)
    return jsonify({"logs": logs, "total": total})


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app.run(host="0.0.0.0", port=5000, debug=False, threaded=True)
