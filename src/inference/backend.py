"""
Inference backend interfaces.

A ModelRunner is the black-box network: image in, raw output tensors out.
A Detector turns a frame into normalized detections.
"""

from __future__ import annotations

from typing import List, Protocol, Sequence

import numpy as np

from models.detection import Detection
from models.tensor import RawTensor


class ModelRunner(Protocol):
    def run(self, frame: np.ndarray) -> Sequence[RawTensor]:
        ...


class Detector(Protocol):
    def detect(self, frame: np.ndarray) -> List[Detection]:
        ...
