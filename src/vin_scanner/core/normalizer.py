"""
VIN Text Normalization
======================

Turns raw OCR text into a clean 17-character VIN candidate.

Processing steps:
1. Strip an optional leading label ("VIN:", "vin no -", "VIN#", ...)
2. Replace I/O/Q, which a VIN never contains, with 1/0/0
3. Trim non-alphanumeric noise from both ends, reject embedded separators,
   and pick the first 17-character run of valid VIN characters

The label is stripped before OCR correction so "VIN" does not become "V1N".
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from .vin_utils import VIN_LENGTH

logger = logging.getLogger(__name__)


class ErrorReason(str, Enum):
    """Why a piece of text did not yield a valid VIN."""
    NO_SEVENTEEN_CHARACTER_VIN = 'no_seventeen_character_vin'
    INVALID_CHARACTERS_IN_MIDDLE = 'invalid_characters_in_middle'
    WRONG_LENGTH = 'wrong_length'
    PROHIBITED_CHARACTER = 'prohibited_character'
    INSUFFICIENT_DIGITS = 'insufficient_digits'
    CHECKSUM_FAILED = 'checksum_failed'


# Characters that never appear in a VIN -> the digit OCR confused them with
INVALID_CHAR_FIXES: Dict[str, str] = {
    'I': '1', 'i': '1',
    'O': '0', 'o': '0',
    'Q': '0', 'q': '0',
}

_LABEL_PATTERN = re.compile(
    r'^\s*VIN(?:\s*(?:NUMBER|NO|#))?\s*[:#=–—\-]?\s*',
    re.IGNORECASE,
)
_LEADING_NOISE = re.compile(r'^[^A-Z0-9]+')
_TRAILING_NOISE = re.compile(r'[^A-Z0-9]+$')
_NON_ALNUM = re.compile(r'[^A-Z0-9]')
_VIN_PATTERN = re.compile(r'[A-HJ-NPR-Z0-9]{%d}' % VIN_LENGTH)


@dataclass(frozen=True)
class VinExtraction:
    """Outcome of extracting a VIN candidate from text."""
    vin: Optional[str]
    was_trimmed: bool = False
    error_reason: Optional[ErrorReason] = None

    @property
    def found(self) -> bool:
        return self.vin is not None


def strip_leading_label(text: str) -> str:
    """Remove a leading "VIN", "VIN NUMBER:", "vin no -", "VIN#" style label."""
    return _LABEL_PATTERN.sub('', text, count=1)


def correct_ocr_errors(text: str) -> str:
    """Replace I, O and Q (either case) with 1, 0 and 0."""
    return ''.join(INVALID_CHAR_FIXES.get(c, c) for c in text)


def extract_vin(text: str) -> VinExtraction:
    """
    Extract a 17-character VIN candidate from already-corrected text.

    Noise at the start and end is trimmed and reported through
    ``was_trimmed``. A separator left inside the trimmed text means the
    string is not a salvageable VIN and no candidate is returned.

    Args:
        text: Text after label stripping and OCR correction

    Returns:
        VinExtraction with the candidate or the reason there is none
    """
    normalized = text.strip().upper()
    trimmed = _TRAILING_NOISE.sub('', _LEADING_NOISE.sub('', normalized))
    was_trimmed = normalized != trimmed

    if _NON_ALNUM.search(trimmed):
        logger.debug(f"Invalid characters found in middle of VIN: '{trimmed}'")
        return VinExtraction(
            vin=None,
            was_trimmed=was_trimmed,
            error_reason=ErrorReason.INVALID_CHARACTERS_IN_MIDDLE,
        )

    match = _VIN_PATTERN.search(trimmed)
    if match is None:
        return VinExtraction(
            vin=None,
            was_trimmed=was_trimmed,
            error_reason=ErrorReason.NO_SEVENTEEN_CHARACTER_VIN,
        )

    return VinExtraction(vin=match.group(0), was_trimmed=was_trimmed)


def normalize(text: str) -> VinExtraction:
    """Run the full label-strip, correction and extraction pipeline."""
    if not isinstance(text, str):
        raise TypeError(f"Expected string, got {type(text).__name__}")

    extraction = extract_vin(correct_ocr_errors(strip_leading_label(text)))
    logger.debug(f"Normalized '{text}' -> {extraction}")
    return extraction


def clean_vin(text: str) -> str:
    """Return the extracted VIN, or an empty string when there is none."""
    return normalize(text).vin or ''
