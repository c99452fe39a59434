"""
VIN Scanner
===========

Extracts a validated VIN from noisy detector and OCR output.

Package Structure:
    vin_scanner/
    ├── core/           # VIN constants, checksum, normalization, validation
    ├── detection/      # Tensor decoding, letterbox mapping, NMS
    ├── pipeline/       # Frame-level detection + validation
    ├── config.py       # Environment/file driven settings
    └── cli.py          # Command line interface

Quick Start:
    # Validation
    from vin_scanner import validate
    result = validate("VIN: 1HGBH41JXMN109186")
    print(result.is_valid, result.vin)

    # Detection
    from vin_scanner import DetectionDecoder
    decoder = DetectionDecoder(model_input_size=640)
    boxes = decoder.detect(output_tensor, 1280, 960).boxes

Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "VIN Scanner Team"

# Core exports (lightweight, always available)
from .core import (
    VINScannerError,
    ConfigurationError,
    TensorShapeError,
    VINConstants,
    VIN_LENGTH,
    VIN_VALID_CHARS,
    ErrorReason,
    ChecksumPolicy,
    VinValidationResult,
    VinValidator,
    validate,
    clean_vin,
    validate_checksum,
    validate_checksum_with_permutations,
    calculate_check_digit,
    decode_vin,
)
from .detection import (
    BoundingBox,
    LetterboxTransform,
    DetectionDecoder,
    DetectionResult,
    non_max_suppression,
)

__all__ = [
    "__version__",
    "__author__",
    # Errors
    "VINScannerError",
    "ConfigurationError",
    "TensorShapeError",
    # Core
    "VINConstants",
    "VIN_LENGTH",
    "VIN_VALID_CHARS",
    "ErrorReason",
    "ChecksumPolicy",
    "VinValidationResult",
    "VinValidator",
    "validate",
    "clean_vin",
    "validate_checksum",
    "validate_checksum_with_permutations",
    "calculate_check_digit",
    "decode_vin",
    # Detection
    "BoundingBox",
    "LetterboxTransform",
    "DetectionDecoder",
    "DetectionResult",
    "non_max_suppression",
]


# Lazy import for the pipeline (pulls in configuration)
def __getattr__(name: str):
    """Lazy import for pipeline modules."""
    if name == "VINScanPipeline":
        from .pipeline import VINScanPipeline
        return VINScanPipeline
    elif name == "ScanResult":
        from .pipeline import ScanResult
        return ScanResult
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
