"""
Typed models for the detection core.

Detections, raw tensors, frames, telemetry and configuration.
"""

from .detection import Detection, Rect, UNKNOWN_CLASS
from .tensor import RawTensor
from .frame import FrameData
from .telemetry import SessionTelemetry
from .config import (
    Config,
    DecoderConfig,
    ModelConfig,
    SchedulerConfig,
)

__all__ = [
    # Detection
    "Detection",
    "Rect",
    "UNKNOWN_CLASS",
    # Tensors and frames
    "RawTensor",
    "FrameData",
    "SessionTelemetry",
    # Config
    "Config",
    "DecoderConfig",
    "ModelConfig",
    "SchedulerConfig",
]
