"""
VIN Scan Pipeline
=================

Ties detection decoding and VIN validation together for one camera frame.

The OCR engine is an external collaborator: callers pass a ``read_text``
callable that returns the text inside a box (or None/blank if nothing
was read). Boxes are tried in descending confidence order and the first
valid VIN wins.

Usage:
    from vin_scanner.pipeline import VINScanPipeline

    pipeline = VINScanPipeline()
    result = pipeline.scan(output_tensor, 1280, 960, read_text=my_ocr)
    if result:
        print(result.vin, result.confidence)
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

from ..config import ScannerConfig, get_config
from ..core.validator import VinValidationResult, VinValidator
from ..detection.decoder import DetectionDecoder, DetectionResult
from ..detection.geometry import BoundingBox
from ..detection.letterbox import map_from_roi

logger = logging.getLogger(__name__)

TextReader = Callable[[BoundingBox], Optional[str]]


@dataclass
class ScanResult:
    """A validated VIN read from a detected region."""
    vin: str
    confidence: float
    box: BoundingBox
    validation: VinValidationResult
    raw_text: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'vin': self.vin,
            'confidence': self.confidence,
            'box': self.box.to_dict(),
            'validation': self.validation.to_dict(),
            'raw_text': self.raw_text,
        }


class VINScanPipeline:
    """
    Detection + validation pipeline for a single frame.

    Thread Safety: This class is thread-safe for concurrent use as long as
    the ``read_text`` callables passed in are.
    """

    def __init__(
        self,
        config: Optional[ScannerConfig] = None,
        decoder: Optional[DetectionDecoder] = None,
        validator: Optional[VinValidator] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            config: Scanner configuration (global config if None)
            decoder: Pre-built decoder, overrides config.detection
            validator: Pre-built validator, overrides config.validation

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        self.config = (config or get_config()).validate()

        det = self.config.detection
        self.decoder = decoder or DetectionDecoder(
            model_input_size=det.model_input_size,
            confidence_floor=det.confidence_floor,
            iou_threshold=det.iou_threshold,
            coordinates_normalized=det.coordinates_normalized,
        )

        val = self.config.validation
        self.validator = validator or VinValidator(
            min_digits=val.min_digits,
            max_permutation_depth=val.max_permutation_depth,
            checksum_policy=val.checksum_policy,
        )

        logger.debug(
            f"Pipeline initialized: model_input_size={self.decoder.model_input_size}, "
            f"policy={self.validator.checksum_policy.value}"
        )

    def detect(
        self,
        tensor: Any,
        image_width: int,
        image_height: int,
        confidence_threshold: Optional[float] = None,
        roi: Optional[BoundingBox] = None,
    ) -> DetectionResult:
        """
        Decode and de-duplicate detections for one frame.

        Args:
            tensor: Detector output of shape [1, dimA, dimB]
            image_width: Width of the image fed to the detector
            image_height: Height of the image fed to the detector
            confidence_threshold: Requested threshold (raised to the floor)
            roi: If the detector ran on a crop, the crop's normalized
                rectangle in the full frame; boxes are mapped back to it

        Returns:
            DetectionResult with boxes in full-frame normalized coordinates
        """
        result = self.decoder.detect(tensor, image_width, image_height, confidence_threshold)
        if roi is not None:
            result.boxes = [map_from_roi(box, roi) for box in result.boxes]
        return result

    def validate_text(self, text: str) -> VinValidationResult:
        """Validate one OCR string."""
        return self.validator.validate(text)

    def read_vin(
        self,
        boxes: Iterable[BoundingBox],
        read_text: TextReader,
    ) -> Optional[ScanResult]:
        """
        OCR boxes in descending confidence order until one yields a valid VIN.

        Exceptions raised by ``read_text`` propagate to the caller.

        Args:
            boxes: Detected boxes
            read_text: OCR adapter returning the text inside a box

        Returns:
            The first valid ScanResult, or None
        """
        for box in sorted(boxes, key=lambda b: b.confidence, reverse=True):
            text = read_text(box)
            if text is None or not text.strip():
                continue

            validation = self.validator.validate(text)
            logger.debug(f"Box conf={box.confidence:.3f}: '{text}' -> {validation.to_dict()}")

            if validation.is_valid:
                logger.info(f"Valid VIN from box: {validation.vin} (conf={box.confidence:.3f})")
                return ScanResult(
                    vin=validation.vin,
                    confidence=box.confidence,
                    box=box,
                    validation=validation,
                    raw_text=text,
                )

        return None

    def scan(
        self,
        tensor: Any,
        image_width: int,
        image_height: int,
        read_text: TextReader,
        confidence_threshold: Optional[float] = None,
        roi: Optional[BoundingBox] = None,
    ) -> Optional[ScanResult]:
        """Detect regions in a frame and return the first valid VIN read from them."""
        detection = self.detect(tensor, image_width, image_height, confidence_threshold, roi)
        if not detection.boxes:
            logger.debug("No VIN regions detected")
            return None
        return self.read_vin(detection.boxes, read_text)
