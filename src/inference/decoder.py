"""
Anchor-box decoding for YOLOv3-Tiny style detection heads.

Each head predicts, per grid cell and per anchor, 5 box values
(tx, ty, tw, th, objectness) followed by one logit per class. The decoder turns
one head into normalized candidate detections; NMS across heads happens in
decode_outputs().
"""

from __future__ import annotations

import logging
from typing import List, Sequence

import numpy as np

from models.config import DecoderConfig
from models.detection import Detection, Rect
from models.tensor import RawTensor
from inference.nms import non_max_suppression
from inference.tensor_view import TensorView


def sigmoid(x):
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-x))


class AnchorBoxDecoder:
    """
    Decode detection heads into candidate detections.

    Example:
        decoder = AnchorBoxDecoder(DecoderConfig(score_threshold=0.3))
        detections = decoder.decode_outputs(raw_tensors)
    """

    def __init__(self, config: DecoderConfig):
        self.config = config

    def view(self, tensor: RawTensor):
        """Wrap a raw tensor in a TensorView for this model, or None."""
        return TensorView.create(tensor, self.config.expected_channels)

    def decode(self, view: TensorView) -> List[Detection]:
        """
        Decode one head.

        Returns an empty list for heads this model does not describe (wrong
        channel count or a grid size with no anchor mask).
        """
        cfg = self.config
        if view.channels != cfg.expected_channels:
            logging.debug(f"Skipping head: {view.channels} channels, expected {cfg.expected_channels}")
            return []
        mask = cfg.mask_for(view.grid_h) or cfg.mask_for(view.grid_w)
        if mask is None:
            logging.debug(f"Skipping head: no anchor mask for grid {view.grid_h}x{view.grid_w}")
            return []

        grid = view.grid()
        grid_h, grid_w = view.grid_h, view.grid_w
        vpa = cfg.values_per_anchor
        nc = cfg.num_classes

        # (order key, detection) per surviving candidate
        found = []
        for slot, anchor_index in enumerate(mask):
            block = grid[:, :, slot * vpa:(slot + 1) * vpa]
            objectness = sigmoid(block[:, :, 4])

            rows, cols = np.nonzero(objectness >= cfg.objectness_gate)
            if rows.size == 0:
                continue
            cand = block[rows, cols]
            obj = objectness[rows, cols]

            probs = sigmoid(cand[:, 5:5 + nc])
            best = probs.argmax(axis=1)
            scores = obj * probs[np.arange(probs.shape[0]), best]

            keep = scores >= cfg.score_threshold
            if not np.any(keep):
                continue
            rows, cols, cand, best, scores = rows[keep], cols[keep], cand[keep], best[keep], scores[keep]

            anchor_w, anchor_h = cfg.anchors[anchor_index]
            bx = (sigmoid(cand[:, 0]) + cols) / grid_w
            by = (sigmoid(cand[:, 1]) + rows) / grid_h
            with np.errstate(over="ignore", invalid="ignore"):
                bw = anchor_w * np.exp(cand[:, 2]) / cfg.input_size
                bh = anchor_h * np.exp(cand[:, 3]) / cfg.input_size
                x1, x2 = bx - bw / 2, bx + bw / 2
                y1, y2 = by - bh / 2, by + bh / 2

            # Overflowed exp() gives non-finite edges; those boxes carry no geometry.
            finite = np.isfinite(x1) & np.isfinite(x2) & np.isfinite(y1) & np.isfinite(y2)
            x1, x2 = np.clip(x1, 0.0, 1.0), np.clip(x2, 0.0, 1.0)
            y1, y2 = np.clip(y1, 0.0, 1.0), np.clip(y2, 0.0, 1.0)
            valid = finite & (x2 - x1 > 0) & (y2 - y1 > 0)

            for i in np.flatnonzero(valid):
                rect = Rect(
                    x=float(x1[i]),
                    y=float(y1[i]),
                    width=float(x2[i] - x1[i]),
                    height=float(y2[i] - y1[i]),
                )
                class_index = int(best[i])
                order = (int(rows[i]) * grid_w + int(cols[i])) * len(mask) + slot
                found.append((order, Detection(
                    class_index=class_index,
                    label=cfg.label_for(class_index),
                    score=float(scores[i]),
                    rect=rect,
                )))

        found.sort(key=lambda item: item[0])
        return [det for _, det in found]

    def decode_outputs(self, tensors: Sequence[RawTensor]) -> List[Detection]:
        """
        Decode every head of one inference cycle and suppress duplicates.

        Heads are processed largest first; a head that cannot be read is
        skipped without affecting the others.
        """
        candidates: List[Detection] = []
        for tensor in sorted(tensors, key=lambda t: t.count, reverse=True):
            view = self.view(tensor)
            if view is None:
                logging.debug(f"Skipping unreadable tensor with shape {tuple(tensor.shape)}")
                continue
            candidates.extend(self.decode(view))

        return non_max_suppression(
            candidates,
            iou_threshold=self.config.iou_threshold,
            max_detections=self.config.max_detections,
        )
