from __future__ import annotations

import dataclasses
import logging
import time
from typing import Any, Callable, List, Optional

from detection.yolo_tiny import YoloTinyDetector
from inference.backend import Detector, ModelRunner
from inference.onnx_backend import OnnxModelRunner
from models.config import Config, ModelConfig
from models.detection import Detection
from models.frame import FrameData
from models.telemetry import SessionTelemetry
from runtime.scheduler import Admission, InferenceScheduler


class DetectionService:
    """
    Frame ingest for a live detector.

    The producer calls handle_frame() for every captured frame; admitted frames
    are detected on the scheduler's worker and the consumer receives each
    cycle's detections through `on_detections`.
    """

    def __init__(
        self,
        detector: Detector,
        on_detections: Callable[[List[Detection]], None],
        min_interval: float = 0.12,
        clock: Callable[[], float] = time.monotonic,
        deliver: Optional[Callable[[Callable[[], None]], Any]] = None,
    ):
        self.detector = detector
        self.scheduler = InferenceScheduler(
            work=self._run_cycle,
            on_result=on_detections,
            min_interval=min_interval,
            clock=clock,
            deliver=deliver,
        )
        self.frames_seen = 0

    def handle_frame(self, frame_data: FrameData) -> Admission:
        self.frames_seen += 1
        admission = self.scheduler.submit(frame_data)
        if admission is not Admission.ADMITTED:
            logging.debug(f"Frame {frame_data.frame_index} dropped: {admission.value}")
        return admission

    def telemetry(self, base: Optional[SessionTelemetry] = None) -> SessionTelemetry:
        """Host telemetry with the measured detection throughput filled in."""
        return dataclasses.replace(base or SessionTelemetry(), od_fps=self.scheduler.throughput())

    def _run_cycle(self, frame_data: FrameData) -> List[Detection]:
        started = time.perf_counter()
        detections = self.detector.detect(frame_data.frame)
        elapsed_ms = (time.perf_counter() - started) * 1000.0

        summary = ", ".join(f"{d.label}:{d.score:.2f}" for d in detections[:5])
        logging.debug(
            f"[DETECT] frame={frame_data.frame_index} n={len(detections)} "
            f"took={elapsed_ms:.1f}ms [{summary}] telemetry={self.telemetry(frame_data.telemetry).to_dict()}"
        )
        return detections

    def close(self) -> None:
        self.scheduler.close()
        logging.info(f"Detection service stopped: frames={self.frames_seen} stats={self.scheduler.stats.to_dict()}")


def create_runner_from_config(model_cfg: ModelConfig, input_size: int) -> ModelRunner:
    """Build the configured model runner. Fails hard on unknown backends."""
    if model_cfg.backend == "onnx":
        return OnnxModelRunner(model_cfg.path, input_size=input_size, providers=model_cfg.providers)
    raise ValueError(f"Unknown model backend: {model_cfg.backend}")


def create_service_from_config(
    config: Config,
    on_detections: Callable[[List[Detection]], None],
    runner: Optional[ModelRunner] = None,
) -> DetectionService:
    """Wire runner, decoder and scheduler from a typed Config."""
    if runner is None:
        runner = create_runner_from_config(config.model, config.decoder.input_size)
    detector = YoloTinyDetector(runner, config.decoder)
    return DetectionService(
        detector,
        on_detections,
        min_interval=config.scheduler.min_interval,
    )
