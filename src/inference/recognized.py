"""
Adapter for platform detectors that already return labelled boxes.

Such detectors report normalized boxes with a bottom-left origin and no class
index, so the results are flipped to top-left and tagged UNKNOWN_CLASS.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Tuple

from models.detection import UNKNOWN_CLASS, Detection, Rect


@dataclass(frozen=True)
class RecognizedObject:
    """
    A result from an upstream detector.

    bbox is (x, y, width, height), normalized, origin bottom-left.
    """
    label: str
    confidence: float
    bbox: Tuple[float, float, float, float]


def detections_from_recognized(
    objects: Iterable[RecognizedObject],
    min_confidence: float = 0.30,
    max_boxes: int = 20,
) -> List[Detection]:
    """Convert, filter by confidence and keep the `max_boxes` best detections."""
    dets = [
        Detection(
            class_index=UNKNOWN_CLASS,
            label=obj.label,
            score=float(obj.confidence),
            rect=Rect.from_bottom_left(*obj.bbox),
        )
        for obj in objects
        if obj.confidence >= min_confidence
    ]
    dets.sort(key=lambda d: d.score, reverse=True)
    return dets[:max_boxes]
