"""
Bounding box type and rectangle math.

Coordinates are normalized to [0, 1] relative to the analyzed image.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class BoundingBox:
    """A detected region in normalized image coordinates."""
    left: float
    top: float
    right: float
    bottom: float
    confidence: float = 0.0

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def center_x(self) -> float:
        return self.left + self.width / 2

    @property
    def center_y(self) -> float:
        return self.top + self.height / 2

    @property
    def area(self) -> float:
        return self.width * self.height

    def is_degenerate(self) -> bool:
        return self.right <= self.left or self.bottom <= self.top

    def to_pixel_coordinates(self, image_width: int, image_height: int) -> 'BoundingBox':
        """Scale to pixel coordinates of an image of the given size."""
        return BoundingBox(
            left=self.left * image_width,
            top=self.top * image_height,
            right=self.right * image_width,
            bottom=self.bottom * image_height,
            confidence=self.confidence,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'left': self.left,
            'top': self.top,
            'right': self.right,
            'bottom': self.bottom,
            'confidence': self.confidence,
        }


def intersection_area(a: BoundingBox, b: BoundingBox) -> float:
    inter_w = max(0.0, min(a.right, b.right) - max(a.left, b.left))
    inter_h = max(0.0, min(a.bottom, b.bottom) - max(a.top, b.top))
    return inter_w * inter_h


def iou(a: BoundingBox, b: BoundingBox) -> float:
    """
    Intersection-over-Union of two boxes.

    Returns 0.0 when the union area is not positive.
    """
    inter = intersection_area(a, b)
    union = a.area + b.area - inter
    if union <= 0.0:
        return 0.0
    return inter / union


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))
