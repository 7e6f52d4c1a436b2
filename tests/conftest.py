"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.config import DecoderConfig  # noqa: E402

CHANNELS = 255
VALUES_PER_ANCHOR = 85


@pytest.fixture
def decoder_config():
    """Reference YOLOv3-Tiny decoder settings."""
    return DecoderConfig(score_threshold=0.45, iou_threshold=0.45)


@pytest.fixture
def make_head():
    """
    Factory for a synthetic head in logical (C, H, W) order.

    Every value starts at -inf, so no anchor is active. `hot` lists
    (row, col, slot, class_index) cells to switch on with strong objectness and
    class logits and zero box offsets.
    """
    def _make(grid, hot=(), logit=10.0):
        head = np.full((CHANNELS, grid, grid), -np.inf, dtype=np.float32)
        for row, col, slot, cls in hot:
            base = slot * VALUES_PER_ANCHOR
            head[base:base + 4, row, col] = 0.0
            head[base + 4, row, col] = logit
            head[base + 5 + cls, row, col] = logit
        return head
    return _make


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "model": {
            "backend": "onnx",
            "path": "models/yolov3-tiny.onnx",
        },
        "decoder": {
            "num_classes": 80,
            "input_size": 416,
            "score_threshold": 0.3,
            "iou_threshold": 0.45,
        },
        "scheduler": {
            "min_interval": 0.12,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
model:
  backend: "onnx"
  path: "models/yolov3-tiny.onnx"

decoder:
  score_threshold: 0.45
  iou_threshold: 0.45
  grid_to_mask:
    13: [3, 4, 5]
    26: [0, 1, 2]

scheduler:
  min_interval: 0.12

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir
