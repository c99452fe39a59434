"""
VIN Scanner Core Module
=======================

Core VIN utilities, constants, text normalization and validation logic.
Single Source of Truth for all VIN-related functionality.
"""

from .exceptions import (
    VINScannerError,
    ConfigurationError,
    TensorShapeError,
)
from .vin_utils import (
    # Constants
    VINConstants,
    VIN_LENGTH,
    VIN_VALID_CHARS,
    VIN_INVALID_CHARS,
    # Checksum
    calculate_check_digit,
    validate_checksum,
    validate_checksum_with_permutations,
    find_checksum_variant,
    # Decoding
    decode_vin,
)
from .normalizer import (
    ErrorReason,
    VinExtraction,
    strip_leading_label,
    correct_ocr_errors,
    extract_vin,
    normalize,
    clean_vin,
)
from .validator import (
    ChecksumPolicy,
    DEFAULT_CHECKSUM_POLICY,
    VinValidationResult,
    VinValidator,
    validate,
    get_validator,
)

__all__ = [
    # Errors
    "VINScannerError",
    "ConfigurationError",
    "TensorShapeError",
    # Constants
    "VINConstants",
    "VIN_LENGTH",
    "VIN_VALID_CHARS",
    "VIN_INVALID_CHARS",
    # Checksum
    "calculate_check_digit",
    "validate_checksum",
    "validate_checksum_with_permutations",
    "find_checksum_variant",
    # Decoding
    "decode_vin",
    # Normalization
    "ErrorReason",
    "VinExtraction",
    "strip_leading_label",
    "correct_ocr_errors",
    "extract_vin",
    "normalize",
    "clean_vin",
    # Validation
    "ChecksumPolicy",
    "DEFAULT_CHECKSUM_POLICY",
    "VinValidationResult",
    "VinValidator",
    "validate",
    "get_validator",
]
