"""
Detection Tensor Decoding
=========================

Decodes the raw output of a YOLO-style detector into normalized,
de-letterboxed bounding boxes.

The output tensor has shape [1, dimA, dimB]. One axis holds candidates
(thousands), the other holds properties:
    [cx, cy, w, h]                      geometry only
    [cx, cy, w, h, obj]                 + objectness
    [cx, cy, w, h, obj, cls_0, ...]     + per-class scores

Exports disagree on axis order ([1, 8400, 6] vs [1, 6, 8400]), so the
layout is detected from the shape at decode time.

Usage:
    decoder = DetectionDecoder(model_input_size=640)
    result = decoder.detect(output, image_width=1280, image_height=960)
    for box in result.boxes:
        print(box.left, box.top, box.right, box.bottom, box.confidence)
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

import numpy as np

from ..core.exceptions import ConfigurationError, TensorShapeError
from .geometry import BoundingBox
from .letterbox import LetterboxTransform
from .nms import DEFAULT_IOU_THRESHOLD, non_max_suppression

logger = logging.getLogger(__name__)

# Properties-axis sizes of known exports: geometry+objectness(+1 class)
# and geometry+objectness+80 COCO classes (with and without objectness)
KNOWN_PROPERTY_COUNTS: FrozenSet[int] = frozenset({5, 6, 84, 85})

DEFAULT_MODEL_INPUT_SIZE = 640

# Very low thresholds flood NMS with low-quality boxes
DEFAULT_CONFIDENCE_FLOOR = 0.25

GEOMETRY_SLOTS = 4
OBJECTNESS_SLOT = 4
FIRST_CLASS_SLOT = 5


@contextmanager
def _timer():
    """Context manager for timing operations."""
    start = time.perf_counter()
    elapsed = {'ms': 0.0}
    yield elapsed
    elapsed['ms'] = (time.perf_counter() - start) * 1000


@dataclass(frozen=True)
class TensorLayout:
    """Which tensor axis holds properties and which holds candidates."""
    properties_count: int
    candidates_count: int
    properties_first: bool


@dataclass
class DetectionResult:
    """Structured detection result."""
    boxes: List[BoundingBox]
    layout: Optional[TensorLayout] = None
    raw_count: int = 0
    max_confidence: float = 0.0
    processing_time_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'boxes': [b.to_dict() for b in self.boxes],
            'raw_count': self.raw_count,
            'max_confidence': self.max_confidence,
            'processing_time_ms': self.processing_time_ms,
            'layout': None if self.layout is None else {
                'properties_count': self.layout.properties_count,
                'candidates_count': self.layout.candidates_count,
                'properties_first': self.layout.properties_first,
            },
        }


def detect_layout(shape: Sequence[int]) -> TensorLayout:
    """
    Work out the axis layout of a [1, dimA, dimB] detection tensor.

    The properties axis is the one whose size is a known property count;
    dimA wins if both are. Otherwise the smaller axis is properties.

    Raises:
        TensorShapeError: If the tensor is not rank 3, has a batch size
            other than 1, or has fewer than four properties
    """
    if len(shape) != 3:
        raise TensorShapeError(f"Unexpected output tensor rank: {tuple(shape)}")
    if int(shape[0]) != 1:
        raise TensorShapeError(f"Expected batch size 1, got shape {tuple(shape)}")

    dim_a, dim_b = int(shape[1]), int(shape[2])

    if dim_a in KNOWN_PROPERTY_COUNTS:
        properties_first = True
    elif dim_b in KNOWN_PROPERTY_COUNTS:
        properties_first = False
    else:
        properties_first = dim_a <= dim_b

    if properties_first:
        layout = TensorLayout(properties_count=dim_a, candidates_count=dim_b, properties_first=True)
    else:
        layout = TensorLayout(properties_count=dim_b, candidates_count=dim_a, properties_first=False)

    if layout.properties_count < GEOMETRY_SLOTS:
        raise TensorShapeError(
            f"Properties axis has {layout.properties_count} slots, need at least "
            f"{GEOMETRY_SLOTS} for box geometry (shape={tuple(shape)})"
        )
    return layout


class DetectionDecoder:
    """
    Decodes detector output tensors into bounding boxes.

    Thread Safety: This class is thread-safe for concurrent use; it holds
    only immutable configuration.
    """

    def __init__(
        self,
        model_input_size: int = DEFAULT_MODEL_INPUT_SIZE,
        confidence_floor: float = DEFAULT_CONFIDENCE_FLOOR,
        iou_threshold: float = DEFAULT_IOU_THRESHOLD,
        coordinates_normalized: bool = True,
    ):
        """
        Initialize decoder.

        Args:
            model_input_size: Side of the model's square input in pixels
            confidence_floor: Lowest confidence threshold ever applied
            iou_threshold: Default NMS overlap threshold
            coordinates_normalized: Geometry is stored in [0, 1] and must be
                multiplied by ``model_input_size``; False if the export
                already emits model pixels

        Raises:
            ConfigurationError: If a parameter is out of range
        """
        if model_input_size <= 0:
            raise ConfigurationError(f"model_input_size must be positive, got {model_input_size}")
        if not 0.0 <= confidence_floor <= 1.0:
            raise ConfigurationError(f"confidence_floor must be in [0, 1], got {confidence_floor}")
        if not 0.0 <= iou_threshold <= 1.0:
            raise ConfigurationError(f"iou_threshold must be in [0, 1], got {iou_threshold}")

        self.model_input_size = model_input_size
        self.confidence_floor = confidence_floor
        self.iou_threshold = iou_threshold
        self.coordinates_normalized = coordinates_normalized

    def effective_threshold(self, requested: Optional[float] = None) -> float:
        if requested is None:
            return self.confidence_floor
        return max(requested, self.confidence_floor)

    def decode(
        self,
        tensor: Any,
        image_width: int,
        image_height: int,
        confidence_threshold: Optional[float] = None,
    ) -> List[BoundingBox]:
        """
        Decode a tensor into unordered, non-degenerate boxes (before NMS).

        Args:
            tensor: Array-like of shape [1, dimA, dimB]
            image_width: Width of the frame fed to the model
            image_height: Height of the frame fed to the model
            confidence_threshold: Requested threshold, raised to the floor

        Returns:
            Boxes in normalized frame coordinates; empty if nothing passed

        Raises:
            TensorShapeError: If the tensor shape breaks the contract
        """
        return self._decode(tensor, image_width, image_height, confidence_threshold).boxes

    def decode_with_stats(
        self,
        tensor: Any,
        image_width: int,
        image_height: int,
        confidence_threshold: Optional[float] = None,
    ) -> DetectionResult:
        """Like :meth:`decode`, returning layout and confidence statistics."""
        return self._decode(tensor, image_width, image_height, confidence_threshold)

    def detect(
        self,
        tensor: Any,
        image_width: int,
        image_height: int,
        confidence_threshold: Optional[float] = None,
        iou_threshold: Optional[float] = None,
    ) -> DetectionResult:
        """
        Decode a tensor and suppress duplicate boxes.

        Returns:
            DetectionResult whose boxes are in NMS selection order
        """
        iou_threshold = self.iou_threshold if iou_threshold is None else iou_threshold

        with _timer() as elapsed:
            result = self._decode(tensor, image_width, image_height, confidence_threshold)
            result.boxes = non_max_suppression(result.boxes, iou_threshold)

        result.processing_time_ms = elapsed['ms']
        logger.info(
            f"Detection completed in {result.processing_time_ms:.1f}ms, "
            f"raw={result.raw_count}, nms={len(result.boxes)}"
        )
        return result

    def _decode(
        self,
        tensor: Any,
        image_width: int,
        image_height: int,
        confidence_threshold: Optional[float],
    ) -> DetectionResult:
        with _timer() as elapsed:
            output = np.asarray(tensor, dtype=np.float32)
            layout = detect_layout(output.shape)
            threshold = self.effective_threshold(confidence_threshold)
            transform = LetterboxTransform.compute(image_width, image_height, self.model_input_size)

            logger.debug(
                f"Output tensor shape={output.shape}, props={layout.properties_count}, "
                f"num={layout.candidates_count}, propsFirst={layout.properties_first}, "
                f"threshold={threshold}"
            )

            # One row per candidate
            rows = output[0].T if layout.properties_first else output[0]
            boxes, max_confidence = self._decode_rows(rows, threshold, transform)

        if not boxes and max_confidence > 0.0:
            logger.warning(
                f"No boxes detected; max confidence was {max_confidence:.3f} "
                f"(threshold={threshold})"
            )

        return DetectionResult(
            boxes=boxes,
            layout=layout,
            raw_count=len(boxes),
            max_confidence=max_confidence,
            processing_time_ms=elapsed['ms'],
        )

    def _decode_rows(
        self,
        rows: np.ndarray,
        threshold: float,
        transform: LetterboxTransform,
    ) -> Tuple[List[BoundingBox], float]:
        if rows.shape[0] == 0:
            return [], 0.0

        properties = rows.shape[1]
        scale = float(self.model_input_size) if self.coordinates_normalized else 1.0

        cx = rows[:, 0] * scale
        cy = rows[:, 1] * scale
        w = rows[:, 2] * scale
        h = rows[:, 3] * scale

        if properties > OBJECTNESS_SLOT:
            objectness = rows[:, OBJECTNESS_SLOT]
        else:
            objectness = np.ones(rows.shape[0], dtype=np.float32)

        if properties > FIRST_CLASS_SLOT:
            class_score = rows[:, FIRST_CLASS_SLOT:].max(axis=1)
        else:
            class_score = np.ones(rows.shape[0], dtype=np.float32)

        confidence = objectness * class_score
        if np.isnan(confidence).all():
            return [], 0.0
        max_confidence = float(np.nanmax(confidence))

        keep = confidence >= threshold
        if not np.any(keep):
            return [], max_confidence

        cx, cy, w, h, confidence = cx[keep], cy[keep], w[keep], h[keep], confidence[keep]

        # Model space corners, then the same letterbox inverse for all four
        left, top = transform.map_points(cx - w / 2, cy - h / 2)
        right, bottom = transform.map_points(cx + w / 2, cy + h / 2)

        valid = (right > left) & (bottom > top)
        dropped = int(valid.size - np.count_nonzero(valid))
        if dropped:
            logger.debug(f"Discarded {dropped} degenerate boxes after unletterboxing")

        boxes = [
            BoundingBox(
                left=float(l),
                top=float(t),
                right=float(r),
                bottom=float(b),
                confidence=float(c),
            )
            for l, t, r, b, c in zip(left[valid], top[valid], right[valid], bottom[valid], confidence[valid])
        ]
        return boxes, max_confidence
