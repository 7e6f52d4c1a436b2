"""
Session telemetry supplied by the host application.

The detection core never interprets these values; they are carried through
logging next to the detections of a cycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class SessionTelemetry:
    """
    Device telemetry snapshot.

    Attributes:
        thermal: Thermal state name reported by the host (e.g. "nominal").
        battery: Battery level in [0, 1], or a negative value if unknown.
        od_fps: Object-detection throughput in cycles per second, if measured.
    """
    thermal: str = "unknown"
    battery: float = -1.0
    od_fps: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "thermal": self.thermal,
            "battery": self.battery,
            "od_fps": self.od_fps,
        }
