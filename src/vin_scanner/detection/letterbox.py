"""
Letterbox Mapping
=================

Detection models take a fixed square input. Frames are scaled to fit and
centered on a padded square ("letterboxed"); this module undoes that
mapping so model-space coordinates become normalized content coordinates.

Example (1280x960 frame, 640 model):
    scale_factor=0.5, padded 640x480, pad_left=0, pad_top=80
    model point (320, 320) -> content (0.5, 0.5)
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ..core.exceptions import ConfigurationError
from .geometry import BoundingBox, clamp

# Centered horizontal strip used when detection runs on a crop of the frame
DEFAULT_ROI = BoundingBox(left=0.04, top=0.44, right=0.96, bottom=0.56, confidence=1.0)


@dataclass(frozen=True)
class LetterboxTransform:
    """Scale-to-fit and center-pad parameters for one image size."""
    scale_factor: float
    padded_width: int
    padded_height: int
    pad_left: float
    pad_top: float
    model_size: int

    @classmethod
    def compute(cls, width: int, height: int, model_size: int) -> 'LetterboxTransform':
        """
        Derive the transform for an image of ``width`` x ``height``.

        Raises:
            ConfigurationError: If any dimension is not positive
        """
        if width <= 0 or height <= 0:
            raise ConfigurationError(f"Image size must be positive, got {width}x{height}")
        if model_size <= 0:
            raise ConfigurationError(f"Model size must be positive, got {model_size}")

        scale_factor = min(model_size / width, model_size / height)
        # At least one pixel so extreme aspect ratios never divide by zero
        padded_width = max(1, int(round(width * scale_factor)))
        padded_height = max(1, int(round(height * scale_factor)))

        return cls(
            scale_factor=scale_factor,
            padded_width=padded_width,
            padded_height=padded_height,
            pad_left=(model_size - padded_width) / 2,
            pad_top=(model_size - padded_height) / 2,
            model_size=model_size,
        )

    def map_point(self, x: float, y: float) -> Tuple[float, float]:
        """Map a model-pixel point to clamped normalized content coordinates."""
        return (
            clamp((x - self.pad_left) / self.padded_width),
            clamp((y - self.pad_top) / self.padded_height),
        )

    def map_points(self, xs: np.ndarray, ys: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Vectorized :meth:`map_point` over arrays of model-pixel coordinates."""
        return (
            np.clip((xs - self.pad_left) / self.padded_width, 0.0, 1.0),
            np.clip((ys - self.pad_top) / self.padded_height, 0.0, 1.0),
        )

    def map_box(self, left: float, top: float, right: float, bottom: float) -> Tuple[float, float, float, float]:
        """Map model-pixel corners; the result may be degenerate after clamping."""
        content_left, content_top = self.map_point(left, top)
        content_right, content_bottom = self.map_point(right, bottom)
        return content_left, content_top, content_right, content_bottom


def map_from_roi(box: BoundingBox, roi: BoundingBox) -> BoundingBox:
    """
    Re-express a box detected inside a ROI crop in full-image coordinates.

    Args:
        box: Box normalized to the ROI crop
        roi: ROI normalized to the full image

    Returns:
        Box normalized to the full image, same confidence
    """
    return BoundingBox(
        left=roi.left + box.left * roi.width,
        top=roi.top + box.top * roi.height,
        right=roi.left + box.right * roi.width,
        bottom=roi.top + box.bottom * roi.height,
        confidence=box.confidence,
    )
