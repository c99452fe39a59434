"""
VIN Scanner Detection Module
============================

Decoding of object-detector output tensors into normalized bounding boxes.
"""

from .geometry import BoundingBox, iou
from .letterbox import LetterboxTransform, map_from_roi, DEFAULT_ROI
from .nms import non_max_suppression, DEFAULT_IOU_THRESHOLD
from .decoder import (
    DetectionDecoder,
    DetectionResult,
    TensorLayout,
    detect_layout,
    DEFAULT_MODEL_INPUT_SIZE,
    DEFAULT_CONFIDENCE_FLOOR,
)

__all__ = [
    "BoundingBox",
    "iou",
    "LetterboxTransform",
    "map_from_roi",
    "DEFAULT_ROI",
    "non_max_suppression",
    "DEFAULT_IOU_THRESHOLD",
    "DetectionDecoder",
    "DetectionResult",
    "TensorLayout",
    "detect_layout",
    "DEFAULT_MODEL_INPUT_SIZE",
    "DEFAULT_CONFIDENCE_FLOOR",
]
