"""
Detection models for object detection results.

All rectangles are normalized to the model input: (x, y, width, height) with
origin at the top-left and coordinates in [0, 1].
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

# Class index used when an upstream detector only reports a label.
UNKNOWN_CLASS = -1


@dataclass(frozen=True)
class Rect:
    """
    A normalized rectangle.

    Attributes:
        x: Left edge.
        y: Top edge.
        width: Width (may be non-positive for degenerate boxes).
        height: Height (may be non-positive for degenerate boxes).
    """
    x: float
    y: float
    width: float
    height: float

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        if self.width <= 0 or self.height <= 0:
            return 0.0
        return self.width * self.height

    def intersection(self, other: "Rect") -> Optional["Rect"]:
        """Return the overlapping rectangle, or None if they do not overlap."""
        x1 = max(self.x, other.x)
        y1 = max(self.y, other.y)
        x2 = min(self.x2, other.x2)
        y2 = min(self.y2, other.y2)
        if not all(math.isfinite(v) for v in (x1, y1, x2, y2)):
            return None
        if x2 <= x1 or y2 <= y1:
            return None
        return Rect(x=x1, y=y1, width=x2 - x1, height=y2 - y1)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x, y, width, height) tuple."""
        return (self.x, self.y, self.width, self.height)

    @classmethod
    def from_bottom_left(cls, x: float, y: float, w: float, h: float) -> "Rect":
        """Create from a normalized rect whose origin is the bottom-left corner."""
        return cls(x=x, y=1.0 - y - h, width=w, height=h)


@dataclass(frozen=True)
class Detection:
    """
    A single detection.

    Attributes:
        class_index: Class index from the detector, or UNKNOWN_CLASS.
        label: Human-readable class name.
        score: Final confidence (0-1).
        rect: Normalized bounding box, top-left origin.
    """
    class_index: int
    label: str
    score: float
    rect: Rect

    def to_record(self) -> dict:
        """Plain-data form handed to logging/recording collaborators."""
        return {
            "label": self.label,
            "score": round(float(self.score), 4),
            "bbox": [round(float(v), 4) for v in self.rect.as_tuple()],
        }
