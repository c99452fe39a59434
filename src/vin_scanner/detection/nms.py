"""Greedy non-maximum suppression for single-class detections."""

import logging
from typing import List, Sequence

from .geometry import BoundingBox, iou

logger = logging.getLogger(__name__)

DEFAULT_IOU_THRESHOLD = 0.45


def non_max_suppression(
    boxes: Sequence[BoundingBox],
    iou_threshold: float = DEFAULT_IOU_THRESHOLD,
) -> List[BoundingBox]:
    """
    Remove overlapping lower-confidence duplicates.

    Boxes are taken in descending confidence order (``sorted`` is stable,
    so ties keep input order). Each kept box removes every remaining box
    whose IoU with it exceeds ``iou_threshold``.

    Args:
        boxes: Decoded boxes
        iou_threshold: Overlap above which a box is a duplicate

    Returns:
        Kept boxes in selection order (highest confidence first)
    """
    remaining = sorted(boxes, key=lambda b: b.confidence, reverse=True)
    kept: List[BoundingBox] = []

    while remaining:
        current = remaining.pop(0)
        kept.append(current)
        remaining = [b for b in remaining if iou(current, b) <= iou_threshold]

    if len(kept) != len(boxes):
        logger.debug(f"NMS kept {len(kept)}/{len(boxes)} boxes (iou_threshold={iou_threshold})")
    return kept
