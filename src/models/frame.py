"""
FrameData model for frames offered to the detector.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from models.telemetry import SessionTelemetry


@dataclass(frozen=True)
class FrameData:
    """
    A captured frame plus the metadata that travels with it.

    Attributes:
        frame: Image payload as a numpy array (BGR, HxWx3).
        timestamp: Monotonic capture time in seconds.
        frame_index: Sequential frame number since start.
        source: Identifier for the camera/video source.
        telemetry: Optional host telemetry captured with this frame.
    """
    frame: np.ndarray
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None
    telemetry: Optional[SessionTelemetry] = None
