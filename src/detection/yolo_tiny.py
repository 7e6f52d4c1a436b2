"""
YOLOv3-Tiny detector: model runner + anchor decoding + NMS.
"""

from __future__ import annotations

import logging
from typing import List

import numpy as np

from inference.backend import Detector, ModelRunner
from inference.decoder import AnchorBoxDecoder
from models.config import DecoderConfig
from models.detection import Detection


class YoloTinyDetector(Detector):
    """
    Detector returning normalized detections for one frame.

    Exceptions from the runner propagate; the scheduler owns recovery.
    """

    def __init__(self, runner: ModelRunner, config: DecoderConfig):
        self.runner = runner
        self.decoder = AnchorBoxDecoder(config)
        logging.info(
            f"YOLOv3-Tiny detector initialized: classes={config.num_classes} "
            f"score>={config.score_threshold} iou<={config.iou_threshold}"
        )

    def detect(self, frame: np.ndarray) -> List[Detection]:
        tensors = self.runner.run(frame)
        return self.decoder.decode_outputs(tensors)
