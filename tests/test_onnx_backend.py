"""
Tests for the ONNX Runtime model runner, using an injected session.
"""

from types import SimpleNamespace

import numpy as np
from unittest.mock import MagicMock

from inference.onnx_backend import OnnxModelRunner, preprocess


def _session(outputs):
    session = MagicMock()
    session.get_inputs.return_value = [SimpleNamespace(name="images")]
    session.run.return_value = outputs
    return session


class TestPreprocess:
    def test_shape_and_range(self):
        frame = np.full((480, 640, 3), 255, dtype=np.uint8)

        x = preprocess(frame, 416)

        assert x.shape == (1, 3, 416, 416)
        assert x.dtype == np.float32
        assert float(x.max()) == 1.0

    def test_bgr_to_rgb(self):
        frame = np.zeros((32, 32, 3), dtype=np.uint8)
        frame[:, :, 0] = 255  # blue in BGR

        x = preprocess(frame, 16)

        assert np.all(x[0, 2] == 1.0)
        assert np.all(x[0, 0] == 0.0)


class TestOnnxModelRunner:
    def test_run_returns_raw_tensors(self):
        outputs = [
            np.zeros((1, 255, 13, 13), dtype=np.float32),
            np.zeros((1, 255, 26, 26), dtype=np.float16),
        ]
        session = _session(outputs)
        runner = OnnxModelRunner("yolov3-tiny.onnx", input_size=416, session=session)

        tensors = runner.run(np.zeros((240, 320, 3), dtype=np.uint8))

        feed = session.run.call_args[0][1]
        assert list(feed) == ["images"]
        assert feed["images"].shape == (1, 3, 416, 416)
        assert [t.shape for t in tensors] == [(1, 255, 13, 13), (1, 255, 26, 26)]
        assert [t.encoding for t in tensors] == ["float32", "float16"]

    def test_custom_input_size(self):
        session = _session([])
        runner = OnnxModelRunner("m.onnx", input_size=320, session=session)

        assert runner.run(np.zeros((10, 10, 3), dtype=np.uint8)) == []
        assert session.run.call_args[0][1]["images"].shape == (1, 3, 320, 320)
