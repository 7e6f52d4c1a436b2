"""
ONNX Runtime model runner.

Runs a YOLOv3-Tiny export and returns its raw heads. onnxruntime is imported
lazily so the decoding core stays usable (and testable) without it.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

import cv2
import numpy as np

from models.tensor import RawTensor
from .backend import ModelRunner


def preprocess(frame: np.ndarray, input_size: int) -> np.ndarray:
    """
    BGR frame -> 1x3xSxS float32 RGB tensor in [0, 1].

    The frame is stretched to the square input ("scale fill"), so normalized
    box coordinates map straight back onto the frame.
    """
    resized = cv2.resize(frame, (input_size, input_size), interpolation=cv2.INTER_LINEAR)
    rgb = cv2.cvtColor(resized, cv2.COLOR_BGR2RGB)
    x = rgb.astype(np.float32) / 255.0
    return np.transpose(x, (2, 0, 1))[None, ...]


class OnnxModelRunner(ModelRunner):
    def __init__(
        self,
        model_path: str,
        input_size: int = 416,
        providers: Optional[Sequence[str]] = None,
        session: Any = None,
    ):
        self.model_path = model_path
        self.input_size = input_size
        if session is None:
            try:
                import onnxruntime as ort  # type: ignore
            except Exception as e:  # pragma: no cover
                raise ImportError(
                    "onnxruntime is not installed. Install with `pip install onnxruntime` "
                    "or provide another model runner."
                ) from e
            session = ort.InferenceSession(
                model_path,
                providers=list(providers) if providers else ["CPUExecutionProvider"],
            )
        self._session = session
        self._input_name = self._session.get_inputs()[0].name
        logging.info(f"ONNX model runner ready: {model_path} (input {input_size}x{input_size})")

    def run(self, frame: np.ndarray) -> List[RawTensor]:
        x = preprocess(frame, self.input_size)
        outputs = self._session.run(None, {self._input_name: x})
        return [RawTensor.from_array(np.asarray(out)) for out in outputs]
