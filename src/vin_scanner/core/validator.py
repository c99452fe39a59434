"""
VIN Validation
==============

Policy-level validation of OCR text: normalization, format checks, a
digit-count heuristic, and the ISO 3779 checksum with a bounded search
over ambiguous characters.

Two checksum policies exist for text whose format is valid but whose
checksum fails:
- STRICT: reject (``is_valid=False``)
- LENIENT: accept with ``error_reason=CHECKSUM_FAILED`` kept as a warning

Usage:
    from vin_scanner.core.validator import validate
    result = validate("VIN: 1HGBH41JXMN109186")
    print(result.is_valid)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from .exceptions import ConfigurationError
from .normalizer import ErrorReason, normalize
from .vin_utils import (
    DEFAULT_MAX_PERMUTATION_DEPTH,
    VIN_INVALID_CHARS,
    VIN_LENGTH,
    find_checksum_variant,
)

logger = logging.getLogger(__name__)


class ChecksumPolicy(str, Enum):
    """How a format-valid VIN with a failing checksum is treated."""
    STRICT = 'strict'
    LENIENT = 'lenient'


DEFAULT_CHECKSUM_POLICY = ChecksumPolicy.STRICT
DEFAULT_MIN_DIGITS = 5

ERROR_MESSAGES: Dict[ErrorReason, str] = {
    ErrorReason.NO_SEVENTEEN_CHARACTER_VIN: "No valid 17-character VIN found in the text",
    ErrorReason.INVALID_CHARACTERS_IN_MIDDLE: "Invalid characters found in middle of VIN",
    ErrorReason.WRONG_LENGTH: "VIN must be 17 characters long",
    ErrorReason.PROHIBITED_CHARACTER: "VIN contains invalid characters (I, O, or Q)",
    ErrorReason.INSUFFICIENT_DIGITS: "VIN likely invalid (insufficient digits)",
    ErrorReason.CHECKSUM_FAILED: "Invalid VIN checksum",
}


@dataclass(frozen=True)
class VinValidationResult:
    """Result of VIN validation."""
    is_valid: bool
    checksum_valid: bool = False
    format_valid: bool = False
    was_trimmed: bool = False
    error_reason: Optional[ErrorReason] = None
    vin: str = ''

    @property
    def error_message(self) -> Optional[str]:
        if self.error_reason is None:
            return None
        return ERROR_MESSAGES[self.error_reason]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'vin': self.vin,
            'is_valid': self.is_valid,
            'checksum_valid': self.checksum_valid,
            'format_valid': self.format_valid,
            'was_trimmed': self.was_trimmed,
            'error_reason': self.error_reason.value if self.error_reason else None,
            'error_message': self.error_message,
        }


class VinValidator:
    """
    Validates OCR text as a VIN.

    Thread Safety: instances are immutable after construction and safe
    to share across threads.
    """

    def __init__(
        self,
        min_digits: int = DEFAULT_MIN_DIGITS,
        max_permutation_depth: int = DEFAULT_MAX_PERMUTATION_DEPTH,
        checksum_policy: Union[str, ChecksumPolicy] = DEFAULT_CHECKSUM_POLICY,
    ):
        """
        Initialize validator.

        Args:
            min_digits: Minimum digit count for the junk-text heuristic
            max_permutation_depth: Ambiguous substitutions allowed in the
                checksum search
            checksum_policy: 'strict' or 'lenient'

        Raises:
            ConfigurationError: If any argument is out of range
        """
        if isinstance(checksum_policy, str) and not isinstance(checksum_policy, ChecksumPolicy):
            try:
                checksum_policy = ChecksumPolicy(checksum_policy.lower())
            except ValueError:
                valid = [p.value for p in ChecksumPolicy]
                raise ConfigurationError(
                    f"Invalid checksum policy: '{checksum_policy}'. Valid policies: {valid}"
                )
        if not 0 <= min_digits <= VIN_LENGTH:
            raise ConfigurationError(f"min_digits must be in [0, {VIN_LENGTH}], got {min_digits}")
        if max_permutation_depth < 0:
            raise ConfigurationError(
                f"max_permutation_depth must be >= 0, got {max_permutation_depth}"
            )

        self.min_digits = min_digits
        self.max_permutation_depth = max_permutation_depth
        self.checksum_policy = checksum_policy

    def validate(self, text: str) -> VinValidationResult:
        """
        Validate raw OCR text.

        Args:
            text: Raw text, possibly with a label, noise and OCR confusions

        Returns:
            VinValidationResult; never raises for bad text
        """
        logger.debug(f"Validating text: '{text}'")
        extraction = normalize(text)
        was_trimmed = extraction.was_trimmed

        if extraction.vin is None:
            return self._reject(extraction.error_reason, was_trimmed)

        vin = extraction.vin

        # Extraction only yields 17 valid characters; these guard the contract
        if len(vin) != VIN_LENGTH:
            return self._reject(ErrorReason.WRONG_LENGTH, was_trimmed, vin)

        if any(c in VIN_INVALID_CHARS for c in vin):
            return self._reject(ErrorReason.PROHIBITED_CHARACTER, was_trimmed, vin)

        digit_count = sum(1 for c in vin if c.isdigit())
        if digit_count < self.min_digits:
            return self._reject(ErrorReason.INSUFFICIENT_DIGITS, was_trimmed, vin)

        if find_checksum_variant(vin, self.max_permutation_depth) is not None:
            return VinValidationResult(
                is_valid=True,
                checksum_valid=True,
                format_valid=True,
                was_trimmed=was_trimmed,
                vin=vin,
            )

        accepted = self.checksum_policy == ChecksumPolicy.LENIENT
        if accepted:
            logger.warning(f"Checksum validation failed for '{vin}', accepting as valid format")
        else:
            logger.debug(f"Checksum validation failed for '{vin}'")

        return VinValidationResult(
            is_valid=accepted,
            checksum_valid=False,
            format_valid=True,
            was_trimmed=was_trimmed,
            error_reason=ErrorReason.CHECKSUM_FAILED,
            vin=vin,
        )

    def clean_vin(self, text: str) -> str:
        """Return the cleaned VIN string, or '' if none can be extracted."""
        return normalize(text).vin or ''

    @staticmethod
    def _reject(
        reason: Optional[ErrorReason],
        was_trimmed: bool,
        vin: str = '',
    ) -> VinValidationResult:
        result = VinValidationResult(
            is_valid=False,
            format_valid=False,
            was_trimmed=was_trimmed,
            error_reason=reason or ErrorReason.NO_SEVENTEEN_CHARACTER_VIN,
            vin=vin,
        )
        logger.debug(f"Rejected: {result}")
        return result


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

_default_validator = VinValidator()


def validate(text: str) -> VinValidationResult:
    """Validate text with the default (strict) validator."""
    return _default_validator.validate(text)


def get_validator() -> VinValidator:
    """Get the default validator instance."""
    return _default_validator
