"""
Live object detection over a video source.

Reads frames with OpenCV, feeds them to the rate-limited YOLOv3-Tiny detection
service and logs the detections of every completed cycle.

Usage:
    python src/main.py --config config/config.yaml --source video.mp4

Arguments:
    --config: Path to configuration file
    --source: Video file path or camera index
    --max-frames: Stop after this many frames (0 = until the source ends)
"""

import os
import sys
import argparse
import logging
import time
import yaml
import cv2
from typing import Dict, Any, List, Tuple, Optional

from models.config import Config
from models.detection import Detection
from models.frame import FrameData
from ops.logging import setup_logging
from runtime.services import create_service_from_config


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['model', 'decoder', 'scheduler', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    model = config.get('model') or {}
    if model.get('backend', 'onnx') != 'onnx':
        return False, "model.backend must be: onnx"
    if not isinstance(model.get('path'), str) or not model.get('path'):
        return False, "model.path is required"

    decoder = config.get('decoder') or {}
    for key in ('score_threshold', 'iou_threshold', 'objectness_gate'):
        if key in decoder:
            value = decoder[key]
            if not _is_number(value) or not (0 <= value <= 1):
                return False, f"decoder.{key} must be between 0 and 1"
    for key in ('num_classes', 'input_size'):
        if key in decoder:
            value = decoder[key]
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                return False, f"decoder.{key} must be a positive integer"
    if 'max_detections' in decoder and decoder['max_detections'] is not None:
        value = decoder['max_detections']
        if not isinstance(value, int) or value <= 0:
            return False, "decoder.max_detections must be a positive integer"

    anchors = decoder.get('anchors')
    if anchors is not None:
        if not isinstance(anchors, list) or not all(
            isinstance(a, list) and len(a) == 2 and all(_is_number(v) and v > 0 for v in a)
            for a in anchors
        ):
            return False, "decoder.anchors must be a list of [width, height] pairs"
    anchor_count = len(anchors) if anchors is not None else 6

    grid_to_mask = decoder.get('grid_to_mask')
    if grid_to_mask is not None:
        if not isinstance(grid_to_mask, dict) or not grid_to_mask:
            return False, "decoder.grid_to_mask must map grid sizes to anchor indices"
        for grid, mask in grid_to_mask.items():
            if not isinstance(mask, list) or len(mask) != 3:
                return False, f"decoder.grid_to_mask[{grid}] must list 3 anchor indices"
            if not all(isinstance(i, int) and 0 <= i < anchor_count for i in mask):
                return False, f"decoder.grid_to_mask[{grid}] references an unknown anchor"

    labels = decoder.get('labels')
    if labels is not None and not (isinstance(labels, list) and all(isinstance(l, str) for l in labels)):
        return False, "decoder.labels must be a list of strings"

    scheduler = config.get('scheduler') or {}
    if 'min_interval' in scheduler:
        value = scheduler['min_interval']
        if not _is_number(value) or value < 0:
            return False, "scheduler.min_interval must be a non-negative number of seconds"

    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


def open_source(source: str) -> cv2.VideoCapture:
    """Open a video file, or a camera when `source` is an integer index."""
    cap = cv2.VideoCapture(int(source) if source.isdigit() else source)
    if not cap.isOpened():
        raise RuntimeError(f"Could not open video source: {source}")
    return cap


def log_detections(detections: List[Detection]) -> None:
    if not detections:
        logging.debug("No detections")
        return
    records = [d.to_record() for d in detections]
    logging.info(f"{len(records)} detection(s): {records}")


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='YOLOv3-Tiny live detector')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--source', type=str, default='0',
                        help='Video file path or camera index')
    parser.add_argument('--max-frames', type=int, default=0,
                        help='Stop after this many frames (0 = no limit)')
    args = parser.parse_args()

    raw_config = load_config(args.config)
    is_valid, error = validate_config(raw_config)
    if not is_valid:
        logging.error(f"Invalid configuration: {error}")
        sys.exit(1)

    config = Config.from_dict(raw_config)
    setup_logging(config.log_path, config.log_level)
    logging.info(f"Starting detector with model {config.model.path}")

    service = create_service_from_config(config, log_detections)
    cap = open_source(args.source)
    frame_index = 0
    try:
        while True:
            ok, frame = cap.read()
            if not ok:
                logging.info("Video source exhausted")
                break
            frame_index += 1
            service.handle_frame(FrameData(frame=frame, timestamp=time.monotonic(), frame_index=frame_index))
            if args.max_frames and frame_index >= args.max_frames:
                break
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
    finally:
        cap.release()
        service.close()


if __name__ == "__main__":
    main()
