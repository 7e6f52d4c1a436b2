"""
Detection module.

Turns frames into normalized detections.
"""

from .yolo_tiny import YoloTinyDetector

__all__ = ['YoloTinyDetector']
