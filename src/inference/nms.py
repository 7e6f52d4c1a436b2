"""
Intersection-over-Union and greedy per-class non-max suppression.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from models.detection import Detection, Rect


def iou(a: Rect, b: Rect) -> float:
    """IoU of two normalized rectangles; 0 for empty or degenerate inputs."""
    if a.area <= 0 or b.area <= 0:
        return 0.0
    inter = a.intersection(b)
    if inter is None:
        return 0.0
    inter_area = inter.area
    union = a.area + b.area - inter_area
    return inter_area / union if union > 0 else 0.0


def non_max_suppression(
    detections: List[Detection],
    iou_threshold: float = 0.45,
    max_detections: Optional[int] = None,
) -> List[Detection]:
    """
    Greedy NMS, applied independently within each class.

    A candidate survives if its IoU with every already-kept detection of the
    same class is <= iou_threshold. Boxes of different classes never suppress
    each other. Results are grouped by class in first-seen order, each group
    sorted by descending score.

    Args:
        detections: Candidates from all heads.
        iou_threshold: Overlap above which the lower-scored box is dropped.
        max_detections: Optional cap on the result, keeping the best scores.
    """
    grouped: Dict[int, List[Detection]] = {}
    for det in detections:
        grouped.setdefault(det.class_index, []).append(det)

    out: List[Detection] = []
    for group in grouped.values():
        kept: List[Detection] = []
        for det in sorted(group, key=lambda d: d.score, reverse=True):
            if all(iou(det.rect, k.rect) <= iou_threshold for k in kept):
                kept.append(det)
        out.extend(kept)

    if max_detections is not None and len(out) > max_detections:
        out = sorted(out, key=lambda d: d.score, reverse=True)[:max_detections]
    return out
