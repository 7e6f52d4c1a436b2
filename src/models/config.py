"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from models.labels import COCO_LABELS

# Standard YOLOv3 anchors for a 416x416 input, (width, height) in input pixels.
DEFAULT_ANCHORS: Tuple[Tuple[float, float], ...] = (
    (10, 14), (23, 27), (37, 58),
    (81, 82), (135, 169), (344, 319),
)

# YOLOv3-Tiny: the coarse 13x13 head uses the large anchors, 26x26 the small ones.
DEFAULT_GRID_TO_MASK: Tuple[Tuple[int, Tuple[int, ...]], ...] = (
    (13, (3, 4, 5)),
    (26, (0, 1, 2)),
)

ANCHORS_PER_HEAD = 3


@dataclass(frozen=True)
class DecoderConfig:
    """
    Anchor-box decoder configuration.

    Read-only once constructed; the worker thread shares it with the producer.
    `grid_to_mask` may be passed as a mapping and is stored as sorted
    (grid size, anchor indices) pairs.
    """
    num_classes: int = 80
    input_size: int = 416
    anchors: Tuple[Tuple[float, float], ...] = DEFAULT_ANCHORS
    grid_to_mask: Tuple[Tuple[int, Tuple[int, ...]], ...] = DEFAULT_GRID_TO_MASK
    score_threshold: float = 0.45
    iou_threshold: float = 0.45
    objectness_gate: float = 0.01
    max_detections: Optional[int] = None
    labels: Tuple[str, ...] = COCO_LABELS

    def __post_init__(self):
        if isinstance(self.grid_to_mask, Mapping):
            pairs = tuple(sorted((int(k), tuple(int(i) for i in v)) for k, v in self.grid_to_mask.items()))
            object.__setattr__(self, "grid_to_mask", pairs)
        if self.num_classes <= 0:
            raise ValueError("num_classes must be positive")
        if self.input_size <= 0:
            raise ValueError("input_size must be positive")
        for grid, mask in self.grid_to_mask:
            if len(mask) != ANCHORS_PER_HEAD:
                raise ValueError(f"mask for grid {grid} must list {ANCHORS_PER_HEAD} anchor indices")
            for idx in mask:
                if not 0 <= idx < len(self.anchors):
                    raise ValueError(f"mask for grid {grid} references missing anchor {idx}")
        if self.max_detections is not None and self.max_detections <= 0:
            raise ValueError("max_detections must be positive")

    def mask_for(self, grid: int) -> Optional[Tuple[int, ...]]:
        """Anchor indices for a head with this grid size, or None."""
        for size, mask in self.grid_to_mask:
            if size == grid:
                return mask
        return None

    @property
    def values_per_anchor(self) -> int:
        return self.num_classes + 5

    @property
    def expected_channels(self) -> int:
        return ANCHORS_PER_HEAD * self.values_per_anchor

    def label_for(self, class_index: int) -> str:
        if 0 <= class_index < len(self.labels):
            return self.labels[class_index]
        return f"cls{class_index}"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DecoderConfig":
        """Adapter: Create from config dictionary."""
        anchors = d.get("anchors")
        grid_to_mask = d.get("grid_to_mask")
        labels = d.get("labels")
        return cls(
            num_classes=d.get("num_classes", 80),
            input_size=d.get("input_size", 416),
            anchors=tuple((float(w), float(h)) for w, h in anchors) if anchors else DEFAULT_ANCHORS,
            grid_to_mask=grid_to_mask or DEFAULT_GRID_TO_MASK,
            score_threshold=d.get("score_threshold", 0.45),
            iou_threshold=d.get("iou_threshold", 0.45),
            objectness_gate=d.get("objectness_gate", 0.01),
            max_detections=d.get("max_detections"),
            labels=tuple(labels) if labels else COCO_LABELS,
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "num_classes": self.num_classes,
            "input_size": self.input_size,
            "anchors": [list(a) for a in self.anchors],
            "grid_to_mask": {k: list(v) for k, v in self.grid_to_mask},
            "score_threshold": self.score_threshold,
            "iou_threshold": self.iou_threshold,
            "objectness_gate": self.objectness_gate,
        }
        if self.max_detections is not None:
            d["max_detections"] = self.max_detections
        if self.labels != COCO_LABELS:
            d["labels"] = list(self.labels)
        return d


@dataclass
class SchedulerConfig:
    """Inference scheduler configuration."""
    min_interval: float = 0.12

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SchedulerConfig":
        return cls(min_interval=d.get("min_interval", 0.12))

    def to_dict(self) -> Dict[str, Any]:
        return {"min_interval": self.min_interval}


@dataclass
class ModelConfig:
    """Model runner configuration."""
    backend: str = "onnx"
    path: str = ""
    providers: Optional[List[str]] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelConfig":
        return cls(
            backend=d.get("backend", "onnx"),
            path=d.get("path", ""),
            providers=d.get("providers"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"backend": self.backend, "path": self.path}
        if self.providers is not None:
            d["providers"] = self.providers
        return d


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    model: ModelConfig = field(default_factory=ModelConfig)
    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    log_path: str = "logs/detector.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            model=ModelConfig.from_dict(d.get("model", {}) or {}),
            decoder=DecoderConfig.from_dict(d.get("decoder", {}) or {}),
            scheduler=SchedulerConfig.from_dict(d.get("scheduler", {}) or {}),
            log_path=d.get("log_path", "logs/detector.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or passing to existing code)."""
        return {
            "model": self.model.to_dict(),
            "decoder": self.decoder.to_dict(),
            "scheduler": self.scheduler.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
